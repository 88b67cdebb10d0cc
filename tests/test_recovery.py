from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import pytest

import mcp_servers.browser_service.recovery as recovery
from mcp_servers.browser_service.errors import StartupError
from mcp_servers.browser_service.recovery import LOCK_MARKER, ensure_artifact_dir, prepare_user_data_dir


def test_missing_directory_is_created_owner_only(tmp_path: Path) -> None:
    target = tmp_path / "profile" / "nested"
    report = prepare_user_data_dir(str(target))
    assert target.is_dir()
    assert report.created is True
    assert report.lock_removed is False
    assert stat.S_IMODE(target.stat().st_mode) == 0o700


def test_stale_lock_file_is_removed(tmp_path: Path) -> None:
    (tmp_path / LOCK_MARKER).write_text("")
    (tmp_path / "Preferences").write_text("{}")
    report = prepare_user_data_dir(str(tmp_path))
    assert report.lock_removed is True
    assert report.best_effort is False
    assert not (tmp_path / LOCK_MARKER).exists()
    # Other profile files are untouched.
    assert (tmp_path / "Preferences").exists()


def test_dangling_lock_symlink_is_removed(tmp_path: Path) -> None:
    lock = tmp_path / LOCK_MARKER
    os.symlink("somehost-4242", lock)
    assert lock.is_symlink() and not lock.exists()
    report = prepare_user_data_dir(str(tmp_path))
    assert report.lock_removed is True
    assert not lock.is_symlink()


def test_no_lock_is_a_noop(tmp_path: Path) -> None:
    report = prepare_user_data_dir(str(tmp_path))
    assert report.created is False
    assert report.lock_removed is False


def test_lock_removal_failure_is_best_effort(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    (tmp_path / LOCK_MARKER).write_text("")

    def deny(path: object) -> None:
        raise PermissionError("denied")

    monkeypatch.setattr(recovery.os, "remove", deny)
    with caplog.at_level(logging.ERROR, logger="mcp.browser_service.recovery"):
        report = prepare_user_data_dir(str(tmp_path))
    assert report.best_effort is True
    assert report.lock_removed is False
    assert "denied" in (report.detail or "")
    assert any("SingletonLock" in r.getMessage() for r in caplog.records)


def test_path_that_is_a_file_fails(tmp_path: Path) -> None:
    target = tmp_path / "profile"
    target.write_text("not a dir")
    with pytest.raises(StartupError, match="not a directory"):
        prepare_user_data_dir(str(target))


def test_artifact_dir_created(tmp_path: Path) -> None:
    target = ensure_artifact_dir(str(tmp_path / "data"))
    assert target.is_dir()


def test_artifact_dir_failure_raises_startup_error(tmp_path: Path) -> None:
    blocker = tmp_path / "data"
    blocker.write_text("")
    with pytest.raises(StartupError):
        ensure_artifact_dir(str(blocker / "shots"))


def test_report_to_dict(tmp_path: Path) -> None:
    report = prepare_user_data_dir(str(tmp_path / "p"))
    assert report.to_dict() == {
        "path": str(tmp_path / "p"),
        "created": True,
        "lockRemoved": False,
        "bestEffort": False,
    }
