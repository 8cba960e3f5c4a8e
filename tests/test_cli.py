"""Tests for redact.cli — entry point, app resolution, run and routes commands."""

import sys
import types
from unittest.mock import MagicMock, patch

import pytest

from redact.app import App
from redact.cli import main
from redact.cli._resolve import resolve_app
from redact.config import AppConfig


@pytest.fixture
def fake_app(monkeypatch: pytest.MonkeyPatch) -> App:
    """Register a fake module with a redact App and a factory."""
    app = App(AppConfig(port=4000, log_level="warning"))
    app.routes(
        {"path": "/", "GET": "Welcome"},
        {"path": "/users/:id", "GET": lambda body, req: {"id": req.params["id"]}},
    )
    app.socket({"path": "/chat"})

    mod = types.ModuleType("_fake_redact_app")
    mod.app = app  # type: ignore[attr-defined]
    mod.factory = lambda: App()  # type: ignore[attr-defined]
    mod.broken_factory = lambda: 1 / 0  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_redact_app", mod)
    return app


class TestCLIHelp:
    @pytest.mark.parametrize("argv", [["--help"], ["run", "--help"], ["routes", "--help"]])
    def test_help_exits_zero(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 0

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "redact" in capsys.readouterr().out

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("redact ")

    def test_run_missing_app(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run"])
        assert exc_info.value.code == 2


class TestResolveApp:
    def test_explicit_attribute(self, fake_app: App) -> None:
        assert resolve_app("_fake_redact_app:app") is fake_app

    def test_default_attribute(self, fake_app: App) -> None:
        assert resolve_app("_fake_redact_app") is fake_app

    def test_factory_is_called(self, fake_app: App) -> None:
        assert isinstance(resolve_app("_fake_redact_app:factory"), App)

    def test_factory_error_is_type_error(self, fake_app: App) -> None:
        with pytest.raises(TypeError, match="raised an error"):
            resolve_app("_fake_redact_app:broken_factory")

    def test_not_an_app(self, fake_app: App) -> None:
        with pytest.raises(TypeError, match="not a redact.App"):
            resolve_app("_fake_redact_app:not_an_app")

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("_no_such_module_anywhere:app")


class TestRedactRun:
    @patch("redact.cli._run.logging.basicConfig")
    @patch.object(App, "listen")
    def test_uses_config_defaults(
        self, mock_listen: MagicMock, mock_logging: MagicMock, fake_app: App
    ) -> None:
        main(["run", "_fake_redact_app:app"])
        mock_listen.assert_called_once_with(None, host=None)
        assert mock_logging.call_args.kwargs["level"] == "WARNING"

    @patch("redact.cli._run.logging.basicConfig")
    @patch.object(App, "listen")
    def test_overrides(
        self, mock_listen: MagicMock, mock_logging: MagicMock, fake_app: App
    ) -> None:
        main(
            [
                "run",
                "_fake_redact_app:app",
                "--host",
                "0.0.0.0",
                "--port",
                "9000",
                "--log-level",
                "debug",
            ]
        )
        mock_listen.assert_called_once_with(9000, host="0.0.0.0")
        assert mock_logging.call_args.kwargs["level"] == "DEBUG"

    def test_bad_import_exits_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_no_such_module_anywhere:app"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestRedactRoutes:
    def test_lists_http_and_socket_routes(
        self, fake_app: App, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["routes", "_fake_redact_app:app"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["METHOD", "PATH", "HANDLER"]
        body = "\n".join(lines[2:])
        assert "GET     /           <literal 'Welcome'>" in body
        assert "/users/:id" in body
        assert "SOCKET  /chat" in body

    def test_empty_app(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        mod = types.ModuleType("_empty_redact_app")
        mod.app = App()  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_empty_redact_app", mod)
        main(["routes", "_empty_redact_app"])
        assert "No routes registered." in capsys.readouterr().out
