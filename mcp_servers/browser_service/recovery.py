"""
Startup recovery for the browser user-data directory.

A crashed Chrome leaves its process-lock marker behind; the next launch then
refuses the profile. We clear the marker before handing the directory to the
launcher.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .errors import StartupError

logger = logging.getLogger("mcp.browser_service.recovery")

LOCK_MARKER = "SingletonLock"
DIR_MODE = 0o700


@dataclass
class RecoveryReport:
    path: str
    created: bool = False
    lock_removed: bool = False
    best_effort: bool = False
    detail: str | None = None

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "path": self.path,
            "created": self.created,
            "lockRemoved": self.lock_removed,
            "bestEffort": self.best_effort,
        }
        if self.detail:
            out["detail"] = self.detail
        return out


def prepare_user_data_dir(path: str) -> RecoveryReport:
    """Make `path` usable as a Chrome user-data directory."""
    root = Path(path)
    report = RecoveryReport(path=str(root))

    if not root.exists() and not root.is_symlink():
        try:
            root.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise StartupError(f"Failed to create user data directory {root}: {exc}") from exc
        report.created = True
        logger.debug("Created user data directory %s", root)
        return report

    if not root.is_dir():
        raise StartupError(f"User data path is not a directory: {root}")

    lock = root / LOCK_MARKER
    # Chrome writes the marker as a symlink to "<host>-<pid>"; exists() is False
    # for a dangling one.
    if lock.is_symlink() or lock.exists():
        try:
            os.remove(lock)
        except OSError as exc:
            logger.error("Failed to remove stale %s in %s: %s", LOCK_MARKER, root, exc)
            report.best_effort = True
            report.detail = str(exc)
        else:
            report.lock_removed = True
            logger.debug("Removed stale %s from %s", LOCK_MARKER, root)
    return report


def ensure_artifact_dir(path: str) -> Path:
    target = Path(path)
    try:
        target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as exc:
        raise StartupError(f"Failed to create artifact directory {target}: {exc}") from exc
    if not target.is_dir():
        raise StartupError(f"Artifact path is not a directory: {target}")
    return target


__all__ = ["LOCK_MARKER", "RecoveryReport", "ensure_artifact_dir", "prepare_user_data_dir"]
