import json
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from gamelink import cli


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "setup_logger", lambda **kwargs: calls.append(kwargs))
    return calls


def make_manager(connected=False):
    manager = MagicMock()
    manager.is_connected = connected
    manager.queued_messages = 1
    return manager


def test_dispatch_emit_with_payload_and_priority():
    manager = make_manager()

    assert cli._dispatch_command(manager, 'emit play_card {"cardId": "7H"} 5') is True

    manager.emit.assert_called_once_with("play_card", {"cardId": "7H"}, priority=5)


def test_dispatch_emit_without_payload():
    manager = make_manager(connected=True)

    cli._dispatch_command(manager, "emit ready")

    manager.emit.assert_called_once_with("ready", None, priority=0)


def test_dispatch_emit_invalid_json(capsys):
    manager = make_manager()

    cli._dispatch_command(manager, "emit chat {oops")

    manager.emit.assert_not_called()
    assert "Invalid JSON" in capsys.readouterr().out


def test_dispatch_lifecycle_commands():
    manager = make_manager()

    cli._dispatch_command(manager, "connect")
    cli._dispatch_command(manager, "reconnect\r")
    cli._dispatch_command(manager, "  disconnect ")
    cli._dispatch_command(manager, "offline")
    cli._dispatch_command(manager, "online")

    manager.connect.assert_called_once()
    manager.reconnect.assert_called_once()
    manager.disconnect.assert_called_once()
    manager.notify_offline.assert_called_once()
    manager.notify_online.assert_called_once()


def test_dispatch_quit_and_unknown():
    manager = make_manager()
    assert cli._dispatch_command(manager, "quit") is False
    assert cli._dispatch_command(manager, "shuffle") is True
    assert cli._dispatch_command(manager, "") is True


def test_main_applies_overrides(monkeypatch):
    captured = {}
    monkeypatch.setattr(cli, "run_cli", lambda settings, listen: captured.update(settings=settings, listen=listen))

    result = CliRunner().invoke(
        cli.app,
        ["--server-url", "http://cards.example", "--token", "jwt", "--listen", "game_updated"],
    )

    assert result.exit_code == 0
    assert captured["settings"].server.url == "http://cards.example"
    assert captured["settings"].server.auth_token == "jwt"
    assert captured["listen"] == ["game_updated"]


def test_main_reads_config_file(monkeypatch, tmp_path):
    captured = {}
    monkeypatch.setattr(cli, "run_cli", lambda settings, listen: captured.update(settings=settings))
    path = tmp_path / "gamelink.json"
    path.write_text(json.dumps({"connection": {"maxDelayMs": 7000}}))

    result = CliRunner().invoke(cli.app, ["--config", str(path)])

    assert result.exit_code == 0
    assert captured["settings"].connection.max_delay_ms == 7000


def test_main_rejects_missing_config(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "run_cli", lambda settings, listen: None)

    result = CliRunner().invoke(cli.app, ["--config", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Invalid settings" in result.output


def test_main_configures_logging(monkeypatch, logging_calls, tmp_path):
    monkeypatch.setattr(cli, "run_cli", lambda settings, listen: None)
    log_file = str(tmp_path / "client.log")

    result = CliRunner().invoke(cli.app, ["--debug", "--log-file", log_file])

    assert result.exit_code == 0
    assert logging_calls == [{"log_file": log_file, "log_level": "DEBUG", "console_output": True}]
