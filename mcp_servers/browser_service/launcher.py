from __future__ import annotations

import contextlib
import json
import logging
import socket
import subprocess
import time
from dataclasses import dataclass
from urllib.error import URLError
from urllib.request import Request, urlopen

from .browser_session import CdpBrowserPort
from .config import BrowserConfig, expand_path
from .errors import CdpError, StartupError
from .session_cdp import CdpConnection

logger = logging.getLogger("mcp.browser_service.launcher")

DEFAULT_LAUNCH_TIMEOUT = 10.0


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    def __init__(self, config: BrowserConfig) -> None:
        self.config = config
        self.process: subprocess.Popen | None = None

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        endpoint = f"http://127.0.0.1:{self.config.cdp_port}/json/version"
        try:
            with urlopen(endpoint, timeout=timeout) as resp:
                return resp.status == 200
        except (OSError, TimeoutError, URLError):
            return False

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Best-effort stop of the launcher-owned Chrome process."""
        proc = self.process
        if proc is None:
            return False
        if proc.poll() is not None:
            return True

        with contextlib.suppress(OSError):
            proc.terminate()

        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            if proc.poll() is not None:
                return True
            time.sleep(0.05)

        # Escalate to kill.
        with contextlib.suppress(OSError):
            proc.kill()
        return True

    def _build_common_flags(self) -> list[str]:
        cfg = self.config
        flags = [
            f"--remote-debugging-port={cfg.cdp_port}",
            f"--user-data-dir={expand_path(cfg.browser_data_path)}",
            "--remote-allow-origins=*",
            f"--user-agent={cfg.user_agent}",
            f"--lang={cfg.default_language}",
            f"--window-size={cfg.window_width},{cfg.window_height}",
            "--disable-blink-features=AutomationControlled",
            "--disable-features=Translate",
            "--disable-extensions",
            "--disable-infobars",
            "--disable-notifications",
            "--disable-dev-shm-usage",
            "--autoplay-policy=user-gesture-required",
            "--mute-audio",
            "--ignore-certificate-errors",
            "--no-first-run",
            "--no-default-browser-check",
        ]

        if cfg.headless:
            flags.extend(["--headless=new", "--disable-gpu", "--disable-webgl"])

        return flags

    def build_launch_command(self, extra: list[str] | None = None) -> list[str]:
        flags = self._build_common_flags() + self.config.extra_flags
        if extra:
            flags.extend(extra)
        return [self.config.binary_path, *flags]

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                result = sock.connect_ex(("127.0.0.1", self.config.cdp_port))
                return result != 0
            except OSError:
                return False

    def ensure_running(self, timeout: float = DEFAULT_LAUNCH_TIMEOUT) -> LaunchResult:
        if self.cdp_ready():
            return LaunchResult([], False, "Chrome already listening on CDP port")

        if not self._port_available():
            return LaunchResult([], False, f"Port {self.config.cdp_port} already in use")

        cmd = self.build_launch_command()
        try:
            self.process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc))

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, "Chrome launched")
            if self.process.poll() is not None:
                return LaunchResult(cmd, False, f"Chrome exited with status {self.process.returncode}")
            time.sleep(0.1)
        return LaunchResult(cmd, False, "Chrome launch timed out")

    def _get_json(self, path: str, timeout: float) -> object:
        endpoint = f"http://127.0.0.1:{self.config.cdp_port}{path}"
        req = Request(endpoint, headers={"User-Agent": "mcp-browser-service"})
        with urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read().decode())

    def cdp_version(self, timeout: float = 0.8) -> dict:
        try:
            payload = self._get_json("/json/version", timeout)
        except (URLError, OSError, ValueError) as exc:
            raise CdpError(f"CDP not reachable on port {self.config.cdp_port}: {exc}") from exc
        return payload if isinstance(payload, dict) else {}

    def list_targets(self) -> list[dict]:
        try:
            payload = self._get_json("/json/list", 0.5)
        except (URLError, OSError, ValueError):
            return []
        return [t for t in payload if isinstance(t, dict)] if isinstance(payload, list) else []


class CdpPortFactory:
    """Launch (or attach to) Chrome and bind a CdpBrowserPort to one page target."""

    def __init__(self, launch_timeout: float = DEFAULT_LAUNCH_TIMEOUT) -> None:
        self.launch_timeout = launch_timeout

    def __call__(self, config: BrowserConfig) -> CdpBrowserPort:
        launcher = BrowserLauncher(config)
        result = launcher.ensure_running(timeout=self.launch_timeout)
        logger.info("Browser launch: %s", result.message)
        if not result.started and not launcher.cdp_ready():
            launcher.stop()
            raise StartupError(f"Failed to start browser: {result.message}")

        try:
            target_id, ws_url = self._page_target(launcher)
            conn = CdpConnection(ws_url, timeout=5.0)
        except (CdpError, OSError) as exc:
            launcher.stop()
            raise StartupError(f"Failed to attach to browser: {exc}") from exc

        def _stop_browser() -> None:
            launcher.stop(timeout=2.0)

        logger.info("Attached to page target %s", target_id)
        return CdpBrowserPort(conn, target_id, on_close=_stop_browser)

    def _page_target(self, launcher: BrowserLauncher) -> tuple[str, str]:
        for target in launcher.list_targets():
            if target.get("type") == "page" and target.get("webSocketDebuggerUrl"):
                return str(target.get("id")), str(target["webSocketDebuggerUrl"])

        browser_ws = launcher.cdp_version().get("webSocketDebuggerUrl")
        if not browser_ws:
            raise CdpError("CDP browser WebSocket URL not found")
        conn = CdpConnection(browser_ws, timeout=5.0)
        try:
            created = conn.send("Target.createTarget", {"url": "about:blank"})
        finally:
            conn.close()
        target_id = created.get("targetId")
        if not target_id:
            raise CdpError("Failed to create browser tab")

        for target in launcher.list_targets():
            if target.get("id") == target_id and target.get("webSocketDebuggerUrl"):
                return str(target_id), str(target["webSocketDebuggerUrl"])
        raise CdpError(f"WebSocket URL not found for target {target_id}")


__all__ = ["BrowserLauncher", "CdpPortFactory", "LaunchResult"]
