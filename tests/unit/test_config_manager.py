"""Unit tests for config_manager module."""

import os
from pathlib import Path

import pytest

from hallcoordinator.core.config_manager import (
    ConfigManager,
    get_config_value,
    parse_env_file,
)

pytestmark = pytest.mark.unit


class TestParseEnvFile:
    """Tests for parse_env_file function."""

    def test_parse_env_file_when_missing_then_empty(self, tmp_path):
        assert parse_env_file(tmp_path / "missing.env") == {}

    def test_parse_env_file_when_comments_and_quotes_then_parsed(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "\n"
            'HALLCOORD_SUPABASE_URL="https://x.supabase.co"\n'
            "HALLCOORD_WEB_PORT='9000'\n"
            "NOT_A_PAIR\n"
            "HALLCOORD_DEBUG=true\n",
            encoding="utf-8",
        )

        assert parse_env_file(env_file) == {
            "HALLCOORD_SUPABASE_URL": "https://x.supabase.co",
            "HALLCOORD_WEB_PORT": "9000",
            "HALLCOORD_DEBUG": "true",
        }


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_env_file_when_var_already_set_then_not_overridden(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("HALLCOORD_WEB_PORT=9000\nHALLCOORD_TIMEZONE=Asia/Dubai\n")
        monkeypatch.setenv("HALLCOORD_WEB_PORT", "7000")
        # Registered with monkeypatch so the value set by load_env_file is undone
        monkeypatch.setenv("HALLCOORD_TIMEZONE", "placeholder")
        monkeypatch.delenv("HALLCOORD_TIMEZONE")

        loaded = ConfigManager(env_file).load_env_file()

        assert loaded == ["HALLCOORD_TIMEZONE"]
        assert os.environ["HALLCOORD_WEB_PORT"] == "7000"
        assert os.environ["HALLCOORD_TIMEZONE"] == "Asia/Dubai"

    def test_load_env_file_when_missing_then_nothing_loaded(self, tmp_path):
        assert ConfigManager(tmp_path / "none.env").load_env_file() == []

    def test_build_config_from_env_when_vars_set_then_mapped(self, monkeypatch):
        monkeypatch.setenv("HALLCOORD_SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("HALLCOORD_SUPABASE_KEY", "key")
        monkeypatch.setenv("HALLCOORD_POLL_INTERVAL", "15")
        monkeypatch.setenv("HALLCOORD_ROSTER_REFRESH_INTERVAL", "600")
        monkeypatch.setenv("HALLCOORD_WEB_HOST", "127.0.0.1")
        monkeypatch.setenv("HALLCOORD_WEB_PORT", "8181")
        monkeypatch.setenv("HALLCOORD_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("HALLCOORD_TIMEZONE", "Asia/Kolkata")
        monkeypatch.setenv("HALLCOORD_LOG_LEVEL", "warning")
        monkeypatch.setenv("HALLCOORD_DEBUG", "yes")

        cfg = ConfigManager(Path("/nonexistent/.env")).build_config_from_env()

        assert cfg == {
            "supabase_url": "https://x.supabase.co",
            "supabase_key": "key",
            "poll_interval_seconds": 15,
            "roster_refresh_interval_seconds": 600,
            "server_bind": "127.0.0.1",
            "server_port": 8181,
            "request_timeout": 2.5,
            "event_timezone": "Asia/Kolkata",
            "log_level": "WARNING",
            "debug_logging": True,
        }

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("HALLCOORD_POLL_INTERVAL", "often"),
            ("HALLCOORD_POLL_INTERVAL", "0"),
            ("HALLCOORD_WEB_PORT", "-1"),
            ("HALLCOORD_REQUEST_TIMEOUT", "fast"),
            ("HALLCOORD_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_build_config_from_env_when_invalid_value_then_ignored(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        assert ConfigManager().build_config_from_env() == {}

    def test_load_full_config_when_env_file_then_applied(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("HALLCOORD_FIXTURES_PATH=/tmp/agenda.json\n")
        monkeypatch.setenv("HALLCOORD_FIXTURES_PATH", "placeholder")
        monkeypatch.delenv("HALLCOORD_FIXTURES_PATH")

        cfg = ConfigManager(env_file).load_full_config()

        assert cfg["fixtures_path"] == "/tmp/agenda.json"


class TestGetConfigValue:
    """Tests for get_config_value helper."""

    def test_get_config_value_when_dict_then_key_or_default(self):
        assert get_config_value({"a": 1}, "a") == 1
        assert get_config_value({}, "a", 5) == 5

    def test_get_config_value_when_object_then_attribute(self):
        class Settings:
            server_port = 9090

        assert get_config_value(Settings(), "server_port") == 9090
        assert get_config_value(Settings(), "missing", "x") == "x"
