"""Tests for server.config - ConfigManager."""

import pytest

from server.config import DEFAULTS, PANEL_API_KEY, ConfigManager


@pytest.fixture
def manager(tmp_path, monkeypatch):
    monkeypatch.delenv(PANEL_API_KEY, raising=False)
    return ConfigManager(str(tmp_path))


def test_missing_file_gives_defaults(manager):
    config = manager.load()
    assert config == DEFAULTS
    assert config is not DEFAULTS
    assert config["console"]["scrollback"] == 500


def test_partial_file_is_merged_over_defaults(manager, tmp_path):
    (tmp_path / "config.yaml").write_text(
        "panel:\n  url: https://panel.example.com\nconsole:\n  scrollback: 200\n",
        encoding="utf-8",
    )
    config = manager.load()

    assert config["panel"]["url"] == "https://panel.example.com"
    assert config["panel"]["timeout"] == DEFAULTS["panel"]["timeout"]
    assert config["console"]["scrollback"] == 200
    assert config["console"]["strip_ansi"] is True


def test_corrupt_file_falls_back_to_defaults(manager, tmp_path):
    (tmp_path / "config.yaml").write_text("panel: [unclosed\n", encoding="utf-8")
    config = manager.load()

    assert "_config_error" in config
    assert config["panel"] == DEFAULTS["panel"]


def test_api_key_from_env_file_then_environment(manager, monkeypatch, tmp_path):
    assert manager.get_panel_api_key() == ""

    monkeypatch.setenv(PANEL_API_KEY, "from-environment")
    assert manager.get_panel_api_key() == "from-environment"

    (tmp_path / ".env").write_text("OTHER=1\nPANEL_API_KEY=ptlc_abcdefghijklmnop\n", encoding="utf-8")
    assert manager.get_panel_api_key() == "ptlc_abcdefghijklmnop"


def test_resolve_path(manager, tmp_path):
    assert manager.resolve_path("data/logs") == str(tmp_path / "data" / "logs")
    assert manager.resolve_path("/var/log/x") == "/var/log/x"

