from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

import mcp_servers.browser_service.config as config_module
from mcp_servers.browser_service.config import BrowserConfig, load_config_file
from mcp_servers.browser_service.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("MCP_"):
            monkeypatch.delenv(key, raising=False)


def test_detect_binary_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module.Path, "exists", lambda self, *args, **kwargs: False)
    assert BrowserConfig.detect_binary() == "google-chrome"


def test_detect_binary_prefers_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_BROWSER_BINARY", "/opt/chrome/chrome")
    assert BrowserConfig.detect_binary() == "/opt/chrome/chrome"


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MCP_BROWSER_BASE_PATH", str(tmp_path))
    cfg = BrowserConfig.from_env()
    assert cfg.browser_data_path == str(tmp_path / "browser")
    assert cfg.data_path == str(tmp_path / "data")
    assert cfg.cdp_port == 9222
    assert cfg.headless is True
    assert cfg.selector_query_timeout == 10.0
    assert (cfg.window_width, cfg.window_height) == (1280, 800)
    assert cfg.close_timeout == 3.0
    assert cfg.default_language == "en-US"
    assert cfg.extra_flags == []


def test_from_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MCP_BROWSER_BASE_PATH", str(tmp_path))
    monkeypatch.setenv("MCP_BROWSER_PROFILE", "/tmp/profile")
    monkeypatch.setenv("MCP_BROWSER_PORT", "9333")
    monkeypatch.setenv("MCP_HEADLESS", "0")
    monkeypatch.setenv("MCP_SELECTOR_TIMEOUT", "2.5")
    monkeypatch.setenv("MCP_WINDOW_SIZE", "1024,768")
    monkeypatch.setenv("MCP_BROWSER_FLAGS", "--proxy-server=http://proxy:3128, --disable-sync")
    monkeypatch.setenv("MCP_BROWSER_LANG", "de-DE")
    cfg = BrowserConfig.from_env()
    assert cfg.browser_data_path == "/tmp/profile"
    assert cfg.cdp_port == 9333
    assert cfg.headless is False
    assert cfg.selector_query_timeout == 2.5
    assert (cfg.window_width, cfg.window_height) == (1024, 768)
    assert cfg.extra_flags == ["--proxy-server=http://proxy:3128", "--disable-sync"]
    assert cfg.default_language == "de-DE"


def test_from_env_rejects_malformed_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_BROWSER_PORT", "ninety")
    with pytest.raises(ConfigError, match="MCP_BROWSER_PORT"):
        BrowserConfig.from_env()


def test_from_env_rejects_malformed_window(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_WINDOW_SIZE", "wide")
    with pytest.raises(ConfigError, match="MCP_WINDOW_SIZE"):
        BrowserConfig.from_env()


def test_config_file_is_merged_on_top(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "browser.json"
    path.write_text(json.dumps({"headless": False, "selector_query_timeout": 4, "data_path": "~/shots"}))
    monkeypatch.setenv("MCP_BROWSER_CONFIG", str(path))
    cfg = BrowserConfig.from_env()
    assert cfg.headless is False
    assert cfg.selector_query_timeout == 4.0
    assert isinstance(cfg.selector_query_timeout, float)
    assert cfg.data_path == str(Path("~/shots").expanduser())


def test_merge_rejects_unknown_and_mistyped_keys(config: BrowserConfig) -> None:
    with pytest.raises(ConfigError, match="Unknown configuration key"):
        config.merge({"prompt": "hi"})
    with pytest.raises(ConfigError, match="boolean"):
        config.merge({"headless": "yes"})
    with pytest.raises(ConfigError, match="number"):
        config.merge({"cdp_port": True})


def test_load_config_file_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config_file(str(tmp_path / "missing.json"))
    bad = tmp_path / "list.json"
    bad.write_text("[1, 2]")
    with pytest.raises(ConfigError, match="JSON object"):
        load_config_file(str(bad))


@pytest.mark.parametrize(
    "override, message",
    [
        ({"browser_data_path": " "}, "browser_data_path"),
        ({"selector_query_timeout": -1.0}, "selector_query_timeout"),
        ({"close_timeout": 0.0}, "close_timeout"),
        ({"window_width": 0}, "window size"),
        ({"cdp_port": 70000}, "cdp_port"),
    ],
)
def test_check_rejects_bad_values(config: BrowserConfig, override: dict, message: str) -> None:
    for key, value in override.items():
        setattr(config, key, value)
    with pytest.raises(ConfigError, match=message):
        config.check()


def test_check_accepts_defaults(config: BrowserConfig) -> None:
    config.check()
