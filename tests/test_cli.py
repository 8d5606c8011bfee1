"""Tests for repo_host.cli.main."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import repo_host.lib.config as config_module
from repo_host.cli.main import build_parser, main
from repo_host.server.app import app, get_config


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("REPO_HOST_PORT", "REPO_HOST_REPOS_ROOT", "REPO_HOST_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *a, **k: False)
    yield
    app.dependency_overrides.clear()


class TestParser:
    def test_defaults_leave_config_to_env(self) -> None:
        args = build_parser().parse_args([])
        assert args.port is None
        assert args.host is None
        assert args.blame_strategy is None
        assert args.verbose is None

    def test_rejects_unknown_blame_strategy(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--blame-strategy", "newest"])


class TestMain:
    @patch("repo_host.cli.main.configure_logging")
    @patch("repo_host.cli.main.uvicorn.run")
    def test_runs_uvicorn_with_config(
        self, mock_run: MagicMock, mock_logging: MagicMock, tmp_path: Path
    ) -> None:
        root = tmp_path / "repos"

        main(["--port", "4000", "--repos-root", str(root), "-v"])

        mock_logging.assert_called_once_with(True)
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] is app
        assert mock_run.call_args.kwargs["port"] == 4000
        assert mock_run.call_args.kwargs["host"] == "0.0.0.0"
        assert root.is_dir()
        assert app.dependency_overrides[get_config]().repos_root == root

    @patch("repo_host.cli.main.uvicorn.run")
    def test_invalid_port_exits(
        self, mock_run: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit):
            main(["--port", "0"])
        assert "Invalid port" in capsys.readouterr().err
        mock_run.assert_not_called()
