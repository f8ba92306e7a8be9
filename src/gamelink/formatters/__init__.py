"""Rich formatting helpers for connection status."""

from .status import (
    format_banner_markup,
    format_banner_text,
    format_status_line_markup,
    get_banner_message,
    get_status_icon,
    get_status_text,
    should_show_banner,
)

__all__ = [
    "format_banner_markup",
    "format_banner_text",
    "format_status_line_markup",
    "get_banner_message",
    "get_status_icon",
    "get_status_text",
    "should_show_banner",
]
