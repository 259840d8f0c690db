"""
Unit tests for the config CLI commands.
"""

import pytest
import yaml
from click.testing import CliRunner

from examnotify.cli.main import cli
from examnotify.config import ClientConfig


class TestConfigCommands:
    """Tests for config show/set/path."""

    @pytest.fixture
    def cli_runner(self):
        """Create a Click CLI runner."""
        return CliRunner()

    def test_path(self, cli_runner, isolated_home, tmp_path):
        result = cli_runner.invoke(cli, ["config", "path"])

        assert result.exit_code == 0
        assert str(tmp_path / "home-config" / "client-config.yaml") in result.output

    def test_show_defaults(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "reconnection_attempts: 5" in result.output
        assert "Resolved API URL: http://localhost:4000/api" in result.output
        assert "Resolved real-time URL: http://localhost:4000" in result.output

    def test_show_resolves_page_url(self, cli_runner, isolated_home, monkeypatch):
        monkeypatch.setenv("EXAMNOTIFY_PAGE_URL", "http://10.1.1.9:3000/")

        result = cli_runner.invoke(cli, ["config", "show"])

        assert "Resolved API URL: http://10.1.1.9:4000/api" in result.output

    def test_set_value_saved(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ["config", "set", "reconnection_attempts", "9"])

        assert result.exit_code == 0
        assert "reconnection_attempts updated." in result.output

        config = ClientConfig()
        with open(config.config_path) as f:
            assert yaml.safe_load(f)["reconnection_attempts"] == 9

    def test_set_unknown_key(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ["config", "set", "theme", "dark"])

        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_set_invalid_value(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ["config", "set", "dedup_keep_entries", "500"])

        assert result.exit_code == 1
        assert "dedup_keep_entries" in result.output
        assert not ClientConfig().config_path.exists()

    def test_set_zero_reconnection_attempts_rejected(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ["config", "set", "reconnection_attempts", "0"])

        assert result.exit_code == 1
        assert "reconnection_attempts must be at least 1" in result.output
        assert not ClientConfig().config_path.exists()
