import json
import socket

import pytest

from pkgbot.common.errors import LockError
from pkgbot.common.run_lock import RunLock


def test_second_acquire_fails(tmp_path):
    lock_dir = tmp_path / ".pkgbot.lock"
    with RunLock(lock_dir, "update"):
        owner = json.loads((lock_dir / "owner.json").read_text())
        assert owner["purpose"] == "update"
        with pytest.raises(LockError, match="pkgbot unlock"):
            RunLock(lock_dir, "cleanup").acquire()
    assert not lock_dir.exists()


def test_lock_released_on_exception(tmp_path):
    lock_dir = tmp_path / ".pkgbot.lock"
    with pytest.raises(RuntimeError):
        with RunLock(lock_dir):
            raise RuntimeError("boom")
    assert not lock_dir.exists()


def test_live_lock_not_broken_without_force(tmp_path):
    lock_dir = tmp_path / ".pkgbot.lock"
    holder = RunLock(lock_dir)
    holder.acquire()
    try:
        assert not RunLock(lock_dir).is_stale()
        with pytest.raises(LockError):
            RunLock(lock_dir).break_lock()
        assert RunLock(lock_dir).break_lock(force=True) is True
        assert not lock_dir.exists()
    finally:
        holder.release()


def test_stale_lock_from_dead_pid_is_removed(tmp_path, monkeypatch):
    lock_dir = tmp_path / ".pkgbot.lock"
    lock_dir.mkdir()
    (lock_dir / "owner.json").write_text(json.dumps({"pid": 999999, "host": socket.gethostname()}))
    monkeypatch.setattr("pkgbot.common.run_lock._pid_alive", lambda pid: False)

    lock = RunLock(lock_dir)
    assert lock.is_stale()
    assert lock.break_lock() is True
    assert not lock_dir.exists()


def test_half_written_lock_is_stale(tmp_path):
    lock_dir = tmp_path / ".pkgbot.lock"
    lock_dir.mkdir()
    assert RunLock(lock_dir).is_stale()


def test_break_without_lock(tmp_path):
    assert RunLock(tmp_path / ".pkgbot.lock").break_lock() is False
