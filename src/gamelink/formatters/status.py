"""
Formatting helpers for the connection status banner and status lines.
"""

from __future__ import annotations

from typing import Optional

from rich.markup import escape
from rich.text import Text

from gamelink.domain.types import ConnectionSnapshot, ConnectionState
from gamelink.utils import format_duration_ms, format_time_hhmmss, now_ms

CONNECTED_BANNER_MS = 3000


def get_status_icon(state: ConnectionState) -> str:
    """Return the emoji used for the given connection state."""
    status_icons = {
        ConnectionState.CONNECTED: "🟢",
        ConnectionState.DISCONNECTED: "⚪",
        ConnectionState.CONNECTING: "🟡",
        ConnectionState.RECONNECTING: "🟠",
        ConnectionState.FAILED: "🔴",
    }
    return status_icons.get(state, "⚪")


def get_status_text(state: ConnectionState) -> str:
    """Return the Rich markup representing the connection state."""
    status_texts = {
        ConnectionState.CONNECTED: "[green]Connected[/]",
        ConnectionState.DISCONNECTED: "[dim]Disconnected[/]",
        ConnectionState.CONNECTING: "[yellow]Connecting...[/]",
        ConnectionState.RECONNECTING: "[yellow]Reconnecting...[/]",
        ConnectionState.FAILED: "[red]Failed[/]",
    }
    return status_texts.get(state, "[dim]Unknown[/]")


def get_banner_message(snapshot: ConnectionSnapshot) -> str:
    """Return the plain banner sentence for a snapshot."""
    state = snapshot.state
    if state == ConnectionState.CONNECTING:
        return "Connecting to server..."
    if state == ConnectionState.RECONNECTING:
        if snapshot.retry_attempt > 0:
            return f"Connection lost. Reconnecting... (Attempt {snapshot.retry_attempt})"
        return "Connection lost. Reconnecting..."
    if state == ConnectionState.FAILED:
        return "Unable to connect. Check your internet connection."
    if state == ConnectionState.CONNECTED:
        return "Connected!"
    return "Disconnected"


def format_banner_markup(snapshot: ConnectionSnapshot) -> str:
    """
    Build the banner markup, including latency, queue size or a retry hint.
    """
    details: list[str] = []
    state = snapshot.state

    if state == ConnectionState.CONNECTED and snapshot.metrics.last_ping_time is not None:
        details.append(f"[dim]{snapshot.metrics.latency_ms}ms[/]")

    if state in (ConnectionState.FAILED, ConnectionState.RECONNECTING):
        if snapshot.next_retry_in_ms is not None:
            details.append(f"[dim]next try in {format_duration_ms(snapshot.next_retry_in_ms)}[/]")
        elif state == ConnectionState.FAILED and snapshot.circuit_breaker_until is not None:
            remaining = max(0, snapshot.circuit_breaker_until - now_ms())
            details.append(f"[dim]next try in {format_duration_ms(remaining)}[/]")

    if state == ConnectionState.FAILED:
        if snapshot.error_message:
            details.append(f"[red]{escape(snapshot.error_message)}[/]")

    if snapshot.queued_messages and state != ConnectionState.CONNECTED:
        details.append(f"[dim]{snapshot.queued_messages} queued[/]")

    if state in (ConnectionState.FAILED, ConnectionState.DISCONNECTED):
        details.append("[bold]type 'reconnect' to retry[/]")

    icon = get_status_icon(state)
    line = f"{icon} {get_banner_message(snapshot)}"
    if details:
        line += f" [dim]|[/] {' [dim]|[/] '.join(details)}"
    return line


def format_banner_text(snapshot: ConnectionSnapshot) -> Text:
    """Return the Rich Text banner for a snapshot."""
    return Text.from_markup(format_banner_markup(snapshot))


def format_status_line_markup(snapshot: ConnectionSnapshot) -> str:
    """Build a one-line status summary for the ``status`` command."""
    parts = [f"{get_status_icon(snapshot.state)} {get_status_text(snapshot.state)}"]
    if snapshot.retry_attempt:
        parts.append(f"attempt {snapshot.retry_attempt}")
    if snapshot.consecutive_failures:
        parts.append(f"{snapshot.consecutive_failures} failures")
    parts.append(f"latency {snapshot.metrics.latency_ms}ms")
    parts.append(f"loss {snapshot.metrics.packet_loss:.0%}")
    parts.append(f"queued {snapshot.queued_messages}")
    parts.append(f"last connected {format_time_hhmmss(snapshot.last_connected_at)}")
    return " [dim]|[/] ".join(parts)


def should_show_banner(
    snapshot: ConnectionSnapshot,
    has_been_connected: bool,
    now: Optional[int] = None,
) -> bool:
    """
    Decide whether the banner is visible.

    Hidden while idle before the first connection and shown in every other
    non-connected state. Once connected it stays up for a short confirmation
    window.
    """
    if snapshot.state == ConnectionState.DISCONNECTED:
        return has_been_connected
    if snapshot.state != ConnectionState.CONNECTED:
        return True
    if snapshot.last_connected_at is None:
        return False
    now = now_ms() if now is None else now
    return now - snapshot.last_connected_at < CONNECTED_BANNER_MS
