from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium for better compatibility.
    # IMPORTANT: Avoid snap versions - they ignore --user-data-dir!
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    # Snap last resort (SingletonLock issues, profile conflicts)
    "/snap/bin/chromium",
]

DEFAULT_BASE_PATH = "~/.browser_service"
BROWSER_DATA_DIRNAME = "browser"
ARTIFACT_DIRNAME = "data"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36"
)
DEFAULT_LANGUAGE = "en-US"
DEFAULT_SELECTOR_TIMEOUT = 10.0
DEFAULT_WINDOW_SIZE = (1280, 800)
DEFAULT_CLOSE_TIMEOUT = 3.0


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_bool(raw: str | None, fallback: bool) -> bool:
    if raw is None or not raw.strip():
        return fallback
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _env_number(name: str, cast: type, fallback: Any) -> Any:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _parse_window_size(raw: str) -> tuple[int, int]:
    parts = [p.strip() for p in raw.replace("x", ",").split(",") if p.strip()]
    if len(parts) != 2:
        raise ConfigError(f"MCP_WINDOW_SIZE must look like 1280,800, got {raw!r}")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ConfigError(f"MCP_WINDOW_SIZE must contain integers, got {raw!r}") from exc


@dataclass
class BrowserConfig:
    binary_path: str
    browser_data_path: str
    data_path: str
    cdp_port: int = 9222
    user_agent: str = DEFAULT_USER_AGENT
    default_language: str = DEFAULT_LANGUAGE
    headless: bool = True
    selector_query_timeout: float = DEFAULT_SELECTOR_TIMEOUT
    window_width: int = DEFAULT_WINDOW_SIZE[0]
    window_height: int = DEFAULT_WINDOW_SIZE[1]
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    extra_flags: list[str] = field(default_factory=list)

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("MCP_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "google-chrome"

    @classmethod
    def with_base_path(cls, base_path: str, **overrides: Any) -> BrowserConfig:
        base = Path(expand_path(base_path))
        values: dict[str, Any] = {
            "binary_path": cls.detect_binary(),
            "browser_data_path": str(base / BROWSER_DATA_DIRNAME),
            "data_path": str(base / ARTIFACT_DIRNAME),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls) -> BrowserConfig:
        cfg = cls.with_base_path(os.environ.get("MCP_BROWSER_BASE_PATH", DEFAULT_BASE_PATH))
        if profile := os.environ.get("MCP_BROWSER_PROFILE"):
            cfg.browser_data_path = expand_path(profile)
        if data_dir := os.environ.get("MCP_BROWSER_DATA_DIR"):
            cfg.data_path = expand_path(data_dir)
        cfg.cdp_port = _env_number("MCP_BROWSER_PORT", int, cfg.cdp_port)
        cfg.headless = _env_bool(os.environ.get("MCP_HEADLESS"), cfg.headless)
        cfg.user_agent = os.environ.get("MCP_BROWSER_USER_AGENT") or cfg.user_agent
        cfg.default_language = os.environ.get("MCP_BROWSER_LANG") or cfg.default_language
        cfg.selector_query_timeout = _env_number("MCP_SELECTOR_TIMEOUT", float, cfg.selector_query_timeout)
        cfg.close_timeout = _env_number("MCP_CLOSE_TIMEOUT", float, cfg.close_timeout)
        if window := os.environ.get("MCP_WINDOW_SIZE"):
            cfg.window_width, cfg.window_height = _parse_window_size(window)
        flags_raw = os.environ.get("MCP_BROWSER_FLAGS", "")
        cfg.extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]

        if config_file := os.environ.get("MCP_BROWSER_CONFIG"):
            cfg.merge(load_config_file(config_file))
        return cfg

    def merge(self, data: Mapping[str, Any]) -> BrowserConfig:
        """Apply a partial mapping on top of the current values."""
        known = {f.name: f for f in fields(self)}
        for key, value in data.items():
            if key not in known:
                raise ConfigError(f"Unknown configuration key: {key}")
            current = getattr(self, key)
            if isinstance(current, bool):
                if not isinstance(value, bool):
                    raise ConfigError(f"{key} must be a boolean")
            elif isinstance(current, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"{key} must be a number")
                value = type(current)(value)
            elif isinstance(current, list):
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"{key} must be a list of strings")
                value = list(value)
            elif not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")
            elif key in {"binary_path", "browser_data_path", "data_path"}:
                value = expand_path(value)
            setattr(self, key, value)
        return self

    def check(self) -> None:
        """Validate required fields before the session is initialized."""
        for key in ("binary_path", "browser_data_path", "data_path"):
            if not str(getattr(self, key) or "").strip():
                raise ConfigError(f"{key} must not be empty")
        if self.selector_query_timeout < 0:
            raise ConfigError("selector_query_timeout must be non-negative")
        if self.close_timeout <= 0:
            raise ConfigError("close_timeout must be positive")
        if self.window_width <= 0 or self.window_height <= 0:
            raise ConfigError("window size must be positive")
        if not 0 < self.cdp_port < 65536:
            raise ConfigError(f"cdp_port out of range: {self.cdp_port}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config_file(path: str) -> dict[str, Any]:
    try:
        raw = Path(expand_path(path)).read_text(encoding="utf-8")
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data
