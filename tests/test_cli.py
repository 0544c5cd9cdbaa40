"""
Tests for the portfolio-server.py launcher.
"""

import importlib.util
from pathlib import Path
from unittest.mock import MagicMock

import pytest


LAUNCHER = Path(__file__).resolve().parent.parent / "portfolio-server.py"


@pytest.fixture
def launcher(monkeypatch):
    """The launcher module with uvicorn.run and logging setup stubbed out."""
    spec = importlib.util.spec_from_file_location("portfolio_server_launcher", LAUNCHER)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.setattr(module.uvicorn, "run", MagicMock())
    monkeypatch.setattr(module, "setup_logging_from_config", MagicMock())
    return module


@pytest.fixture
def env_file(clean_env, tmp_path):
    path = tmp_path / ".env"
    path.write_text("MEXC_API_KEY=cli_key\nMEXC_SECRET_KEY=cli_secret\n")
    return str(path)


class TestMain:
    """Tests for main()."""

    def test_defaults(self, launcher, env_file):
        """Without overrides the server runs on the configured address."""
        assert launcher.main(["--env", env_file]) == 0

        run = launcher.uvicorn.run
        run.assert_called_once()
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert run.call_args.kwargs["port"] == 10000
        launcher.setup_logging_from_config.assert_called_once()

    def test_overrides(self, launcher, env_file):
        """Command line options override the environment."""
        rc = launcher.main([
            "--env", env_file,
            "--host", "127.0.0.1",
            "--port", "8080",
            "--log-level", "debug",
            "--metrics",
        ])

        assert rc == 0
        run = launcher.uvicorn.run
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["port"] == 8080

        config = launcher.setup_logging_from_config.call_args.args[0]
        assert config.logging.level == "DEBUG"
        assert config.metrics.enabled == True

        app = run.call_args.args[0]
        assert app.state.service.metrics is not None

    def test_missing_credentials(self, launcher, clean_env, tmp_path):
        """A config without credentials exits with 1 before serving."""
        empty = tmp_path / "empty.env"
        empty.write_text("")

        assert launcher.main(["--env", str(empty)]) == 1
        launcher.uvicorn.run.assert_not_called()

    def test_invalid_log_level(self, launcher, env_file):
        """An unknown --log-level is rejected instead of reaching loguru."""
        assert launcher.main(["--env", env_file, "--log-level", "bogus"]) == 1
        launcher.uvicorn.run.assert_not_called()
        launcher.setup_logging_from_config.assert_not_called()

    def test_port_out_of_range(self, launcher, env_file):
        """--port is validated like PORT."""
        assert launcher.main(["--env", env_file, "--port", "70000"]) == 1
        launcher.uvicorn.run.assert_not_called()

    def test_port_zero_is_applied(self, launcher, env_file):
        """--port 0 is not mistaken for an absent option."""
        assert launcher.main(["--env", env_file, "--port", "0"]) == 1
        launcher.uvicorn.run.assert_not_called()
