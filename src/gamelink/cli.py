"""Interactive Typer-based CLI for exercising a game server connection."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from gamelink.config import ClientSettings, load_client_settings, settings_from_env
from gamelink.connection import ConnectionManager
from gamelink.domain.events import CircuitBreakerTripped, ConnectionStateChanged, ReconnectScheduled
from gamelink.factory import ConnectionFactory
from gamelink.formatters import format_banner_text, format_status_line_markup
from gamelink.logger import get_logger, setup_logger
from gamelink.utils import format_duration_ms

logger = get_logger("cli")
app = typer.Typer()
console = Console()

CommandHandler = Callable[[ConnectionManager, str], None]


def _handle_emit(manager: ConnectionManager, payload: str) -> None:
    parts = payload.split(maxsplit=1)
    event = parts[0] if parts else ""
    if not event:
        typer.echo("❌ Please specify an event name.")
        return

    data: object = None
    priority = 0
    if len(parts) > 1:
        rest = parts[1].strip()
        head, _, tail = rest.rpartition(" ")
        if head and tail.lstrip("-").isdigit():
            rest, priority = head, int(tail)
        try:
            data = json.loads(rest)
        except json.JSONDecodeError:
            typer.echo("❌ Invalid JSON payload.")
            return

    was_connected = manager.is_connected
    manager.emit(event, data, priority=priority)
    if was_connected:
        typer.echo(f"➡️  Sent '{event}'")
    else:
        typer.echo(f"📥 Queued '{event}' ({manager.queued_messages} waiting)")


def _handle_status(manager: ConnectionManager, _: str) -> None:
    console.print(format_status_line_markup(manager.snapshot()))


def _handle_connect(manager: ConnectionManager, _: str) -> None:
    manager.connect()


def _handle_reconnect(manager: ConnectionManager, _: str) -> None:
    manager.reconnect()


def _handle_disconnect(manager: ConnectionManager, _: str) -> None:
    manager.disconnect()


def _handle_offline(manager: ConnectionManager, _: str) -> None:
    manager.notify_offline()


def _handle_online(manager: ConnectionManager, _: str) -> None:
    manager.notify_online()


COMMANDS: Dict[str, CommandHandler] = {
    "emit": _handle_emit,
    "status": _handle_status,
    "connect": _handle_connect,
    "reconnect": _handle_reconnect,
    "disconnect": _handle_disconnect,
    "offline": _handle_offline,
    "online": _handle_online,
}


def _sanitize_command(text: str) -> str:
    """Normalize command text by removing carriage returns and trimming whitespace."""
    return text.replace("\r", "").strip()


def _read_command(prompt: str) -> str:
    """Read a command from stdin, ensuring carriage returns are stripped."""
    typer.echo(prompt, nl=False)
    sys.stdout.flush()

    line = sys.stdin.readline()
    if line == "":
        raise EOFError
    return _sanitize_command(line)


def _dispatch_command(manager: ConnectionManager, command: str) -> bool:
    command = _sanitize_command(command)

    if not command:
        return True

    if command == "quit":
        return False

    parts = command.split(maxsplit=1)
    name = parts[0]
    handler = COMMANDS.get(name)
    if handler is None:
        typer.echo("❌ Unknown command. Try 'status', 'emit <event> [json] [priority]', or 'quit'.")
        return True

    payload = _sanitize_command(parts[1]) if len(parts) > 1 else ""
    handler(manager, payload)
    return True


def _attach_printers(manager: ConnectionManager, listen: List[str]) -> None:
    def on_state(_: ConnectionStateChanged) -> None:
        console.print(format_banner_text(manager.snapshot()))

    def on_scheduled(event: ReconnectScheduled) -> None:
        console.print(
            f"[dim]↻ attempt {event.attempt} in {format_duration_ms(event.delay_ms)}[/]"
        )

    def on_tripped(event: CircuitBreakerTripped) -> None:
        console.print(
            f"[red]⛔ {event.consecutive_failures} consecutive failures, cooling down[/]"
        )

    manager.event_bus.subscribe(ConnectionStateChanged, on_state)
    manager.event_bus.subscribe(ReconnectScheduled, on_scheduled)
    manager.event_bus.subscribe(CircuitBreakerTripped, on_tripped)

    for event_name in listen:
        def on_server_event(*args: object, _name: str = event_name) -> None:
            rendered = ", ".join(json.dumps(a, default=str) for a in args)
            console.print(f"[cyan]⬅️  {_name}[/] {rendered}")

        manager.on(event_name, on_server_event)


async def _interactive_loop(manager: ConnectionManager) -> None:
    typer.echo("")
    typer.echo("🃏 Interactive game connection")
    typer.echo("Commands:")
    typer.echo("  emit <event> [json] [priority]  Send (or queue) an event")
    typer.echo("  status                          Show connection status")
    typer.echo("  connect                         Open the connection")
    typer.echo("  reconnect                       Force a fresh connection attempt")
    typer.echo("  disconnect                      Close and stop retrying")
    typer.echo("  offline | online                Simulate network loss and recovery")
    typer.echo("  quit                            Exit the client")
    typer.echo("")

    while True:
        try:
            command = await asyncio.to_thread(_read_command, "game> ")
        except (KeyboardInterrupt, EOFError):
            typer.echo("\n👋 Goodbye!")
            break

        should_continue = _dispatch_command(manager, command)
        if not should_continue:
            break


def _resolve_settings(
    server_url: Optional[str],
    token: Optional[str],
    config_path: Optional[Path],
) -> ClientSettings:
    settings = load_client_settings(config_path) if config_path else settings_from_env()

    overrides: dict[str, object] = {}
    if server_url:
        overrides["url"] = server_url
    if token:
        overrides["auth_token"] = token
    if overrides:
        settings = settings.model_copy(
            update={"server": settings.server.model_copy(update=overrides)}
        )
    return settings


def run_cli(settings: ClientSettings, listen: List[str]) -> None:
    async def runner() -> None:
        manager = ConnectionFactory().create_manager(settings)
        _attach_printers(manager, listen)
        try:
            manager.connect()
            await _interactive_loop(manager)
        except Exception as exc:
            typer.echo(f"❌ Error: {exc}")
            logger.exception("Fatal error in CLI")
        finally:
            await manager.shutdown()

    asyncio.run(runner())


@app.command()
def main(
    server_url: Optional[str] = typer.Option(
        None,
        "--server-url",
        help="Base URL of the game server (default: GAMELINK_SERVER_URL)",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Session JWT sent in the Socket.IO handshake (default: GAMELINK_AUTH_TOKEN)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="JSON settings file; overrides GAMELINK_* variables",
    ),
    listen: List[str] = typer.Option(
        [],
        "--listen",
        help="Server event to print when received (repeatable)",
    ),
    debug: bool = typer.Option(False, "--debug", help="Log at DEBUG level to stderr"),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Log file path (default: GAMELINK_LOG_FILE or ~/.gamelink/gamelink.log)",
    ),
) -> None:
    """Connect to a game server and launch the interactive CLI."""
    load_dotenv()
    setup_logger(
        log_file=log_file,
        log_level="DEBUG" if debug else "INFO",
        console_output=debug,
    )

    try:
        settings = _resolve_settings(server_url, token, config_path)
    except Exception as exc:
        typer.echo(f"❌ Invalid settings: {exc}")
        raise typer.Exit(code=1)

    run_cli(settings, listen)


if __name__ == "__main__":
    app()
