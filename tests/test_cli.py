"""Tests for Backstop CLI commands."""

import importlib
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from backstop import __version__
from backstop.cli import app
from backstop.cli import helpers as cli_helpers

runner = CliRunner()

# The commands package re-exports each command function under its module name.
probe_module = importlib.import_module("backstop.cli.commands.probe")


class TestVersionCommand:
    """Tests for the --version flag."""

    def test_version_shows_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"Backstop v{__version__}" in result.stdout


class TestGlobalOptions:
    def test_log_level_recorded(self) -> None:
        result = runner.invoke(app, ["--log-level", "debug", "backoff"])
        assert result.exit_code == 0
        assert cli_helpers._log_config.level == "DEBUG"
        assert cli_helpers._log_config.configured is True

    def test_invalid_log_level(self) -> None:
        result = runner.invoke(app, ["--log-level", "loud", "backoff"])
        assert result.exit_code == 2

    def test_invalid_log_format(self) -> None:
        result = runner.invoke(app, ["--log-format", "xml", "backoff"])
        assert result.exit_code == 2


class TestClassifyCommand:
    """Tests for the classify command."""

    def test_server_error_panel(self) -> None:
        result = runner.invoke(app, ["classify", "--status", "503", "-m", "upstream down"])
        assert result.exit_code == 0
        assert "Server Error" in result.stdout
        assert "server" in result.stdout

    def test_json_output(self) -> None:
        result = runner.invoke(
            app,
            ["classify", "-s", "401", "-m", "expired", "--request-id", "req-1", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["kind"] == "authentication"
        assert data["severity"] == "high"
        assert data["correlation_id"] == "req-1"
        assert [a["kind"] for a in data["recovery_actions"]] == ["reauthenticate"]

    def test_code_only(self) -> None:
        result = runner.invoke(
            app, ["classify", "-s", "402", "-c", "QUOTA_EXCEEDED", "-m", "used", "-j"]
        )
        assert json.loads(result.stdout)["kind"] == "quota_exceeded"

    def test_exception_keyword(self) -> None:
        result = runner.invoke(app, ["classify", "--exception", "-m", "Request timed out", "-j"])
        data = json.loads(result.stdout)
        assert data["kind"] == "timeout"
        assert data["context"]["exception_type"] == "RuntimeError"

    def test_plain_message(self) -> None:
        result = runner.invoke(app, ["classify", "-m", "Could not save", "-j"])
        data = json.loads(result.stdout)
        assert data["kind"] == "unknown"
        assert data["severity"] == "low"
        assert data["user_message"] == "Could not save"

    def test_offline_flag(self) -> None:
        result = runner.invoke(app, ["classify", "--exception", "-m", "odd", "--offline", "-j"])
        data = json.loads(result.stdout)
        assert data["context"]["was_offline"] is True


class TestConfigCommand:
    """Tests for the config command."""

    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "backstop.yaml"
        path.write_text("retry:\n  max_attempts: 4\n")
        result = runner.invoke(app, ["config", str(path)])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.stdout

    def test_json_output(self, tmp_path: Path) -> None:
        path = tmp_path / "backstop.yaml"
        path.write_text("retry:\n  max_attempts: 4\nprobe:\n  url: https://x.test/health\n")
        result = runner.invoke(app, ["config", str(path), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["retry"]["max_attempts"] == 4
        assert data["probe"]["url"] == "https://x.test/health"
        assert data["notifications"]["max_visible"] == 5

    def test_invalid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("retry:\n  max_attempts: 0\n")
        result = runner.invoke(app, ["config", str(path)])
        assert result.exit_code == 2
        assert "Error loading config" in result.stdout

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BACKSTOP_RETRY_MAX_ATTEMPTS", "8")
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["retry"]["max_attempts"] == 8


class TestBackoffCommand:
    """Tests for the backoff command."""

    def test_default_schedule(self) -> None:
        result = runner.invoke(app, ["backoff", "--no-jitter"])
        assert result.exit_code == 0
        assert "1.000" in result.stdout
        assert "2.000" in result.stdout

    def test_capped_schedule(self) -> None:
        result = runner.invoke(
            app, ["backoff", "-n", "5", "--base-delay", "1", "--max-delay", "3", "--no-jitter"]
        )
        assert result.exit_code == 0
        assert result.stdout.count("3.000") == 2

    def test_single_attempt(self) -> None:
        result = runner.invoke(app, ["backoff", "-n", "1"])
        assert result.exit_code == 0
        assert "no retries" in result.stdout

    def test_invalid_options(self) -> None:
        result = runner.invoke(app, ["backoff", "--base-delay", "60", "--max-delay", "30"])
        assert result.exit_code == 2
        assert "Invalid retry options" in result.stdout

    def test_config_file_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "backstop.yaml"
        path.write_text("retry:\n  max_attempts: 2\n  base_delay: 7\n  jitter: false\n")
        result = runner.invoke(app, ["backoff", "--config", str(path)])
        assert result.exit_code == 0
        assert "7.000" in result.stdout
        assert "Jitter" not in result.stdout


class TestProbeCommand:
    """Tests for the probe command; the network check itself is stubbed."""

    def test_reachable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def fake_check(url: str, timeout: float) -> bool:
            return True

        monkeypatch.setattr(probe_module, "_check", fake_check)
        result = runner.invoke(app, ["probe", "https://api.example.com/health"])
        assert result.exit_code == 0
        assert "reachable" in result.stdout

    def test_unreachable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def fake_check(url: str, timeout: float) -> bool:
            return False

        monkeypatch.setattr(probe_module, "_check", fake_check)
        result = runner.invoke(app, ["probe", "https://api.example.com/health", "-t", "1"])
        assert result.exit_code == 1
        assert "unreachable" in result.stdout
