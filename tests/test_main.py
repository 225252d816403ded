"""
Tests for the command line.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from docker_proper.errors import TransportError
from docker_proper.main import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "config.json")


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("docker_proper.main.daemon.setup_logging") as setup:
        yield setup


class TestCli:
    """Option handling"""

    def test_options_reach_the_daemon(self, config_file):
        with patch("docker_proper.main.daemon.run_daemon") as run_daemon:
            result = runner.invoke(app, [
                "--config", config_file, "--ca", "672h", "--ia", "1w", "-r", "1h", "--dry-run", "-u",
                "-a", "tcp://127.0.0.1:2375",
            ])
        assert result.exit_code == 0, result.output
        cfg, settings, interval = run_daemon.call_args[0]
        assert cfg["docker_host"] == "tcp://127.0.0.1:2375"
        assert settings.max_container_age == timedelta(hours=672)
        assert settings.max_image_age == timedelta(weeks=1)
        assert settings.dry_run
        assert settings.allow_missing_finish_time
        assert interval == timedelta(hours=1)

    def test_defaults_run_once(self, config_file):
        with patch("docker_proper.main.daemon.run_daemon") as run_daemon:
            result = runner.invoke(app, ["--config", config_file])
        assert result.exit_code == 0, result.output
        _, settings, interval = run_daemon.call_args[0]
        assert interval == timedelta(0)
        assert not settings.dry_run

    def test_invalid_duration(self, config_file):
        with patch("docker_proper.main.daemon.run_daemon") as run_daemon:
            result = runner.invoke(app, ["--config", config_file, "--ca", "soon"])
        assert result.exit_code != 0
        run_daemon.assert_not_called()

    def test_fatal_error_exits_with_code_1(self, config_file):
        with patch("docker_proper.main.daemon.run_daemon", side_effect=TransportError("refused")):
            result = runner.invoke(app, ["--config", config_file])
        assert result.exit_code == 1

    def test_tui_receives_command_line_overrides(self, config_file):
        """--tui hands the overridden config and settings to the app"""
        with patch("docker_proper.tui.ProperApp") as app_cls, \
                patch("docker_proper.main.daemon.run_daemon") as run_daemon:
            result = runner.invoke(app, [
                "--config", config_file, "--tui", "--dry-run", "-u", "--ca", "2d", "-a", "tcp://1.2.3.4:2375",
            ])
        assert result.exit_code == 0, result.output
        run_daemon.assert_not_called()
        kwargs = app_cls.call_args.kwargs
        assert kwargs["settings"].dry_run
        assert kwargs["settings"].allow_missing_finish_time
        assert kwargs["settings"].max_container_age == timedelta(days=2)
        assert kwargs["cfg"]["docker_host"] == "tcp://1.2.3.4:2375"
        app_cls.return_value.run.assert_called_once_with()
