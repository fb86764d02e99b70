"""
Run Lock Module - Serializes mutating runs (bump, build, install, delete)

The lock is a directory created with an atomic mkdir, so it is visible to an
operator and to concurrent invocations. An ``owner.json`` file inside records
who holds it. A lock whose owning process is gone on this host is stale and
may be removed with ``pkgbot unlock``.
"""

import json
import os
import shutil
import socket
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from pkgbot.common.errors import LockError

logger = logging.getLogger(__name__)


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to someone else
        return True
    return True


class RunLock:
    """Exclusive lock directory guarding mutating operations"""

    OWNER_FILE = "owner.json"

    def __init__(self, lock_dir: Path, purpose: str = "run"):
        self.lock_dir = Path(lock_dir)
        self.purpose = purpose
        self._held = False

    def acquire(self):
        try:
            self.lock_dir.mkdir()
        except FileExistsError:
            owner = self.read_owner() or {}
            raise LockError(
                f"Another pkgbot run holds {self.lock_dir} "
                f"(pid={owner.get('pid', '?')} host={owner.get('host', '?')} "
                f"purpose={owner.get('purpose', '?')}). "
                f"If no run is active, remove it with 'pkgbot unlock'."
            )
        except OSError as e:
            raise LockError(f"Cannot create lock {self.lock_dir}: {e}") from e

        owner = {
            'pid': os.getpid(),
            'host': socket.gethostname(),
            'purpose': self.purpose,
            'started': datetime.now().isoformat(),
        }
        with open(self.lock_dir / self.OWNER_FILE, 'w', encoding='utf-8') as f:
            json.dump(owner, f, indent=2)

        self._held = True
        logger.debug(f"LOCK_ACQUIRED path={self.lock_dir} purpose={self.purpose}")

    def release(self):
        if not self._held:
            return
        shutil.rmtree(self.lock_dir, ignore_errors=True)
        self._held = False
        logger.debug(f"LOCK_RELEASED path={self.lock_dir}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def read_owner(self) -> Optional[Dict]:
        owner_file = self.lock_dir / self.OWNER_FILE
        try:
            with open(owner_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError):
            return None

    def is_stale(self) -> bool:
        """True when the lock exists and its owner process is not running on this host"""
        if not self.lock_dir.exists():
            return False

        owner = self.read_owner()
        if not owner or 'pid' not in owner:
            # Half-written lock: the creator died between mkdir and writing the owner
            return True

        if owner.get('host') != socket.gethostname():
            return False

        try:
            return not _pid_alive(int(owner['pid']))
        except (TypeError, ValueError):
            return True

    def break_lock(self, force: bool = False) -> bool:
        """
        Remove the lock directory.

        Returns:
            True if a lock was removed, False if there was none

        Raises:
            LockError: the lock is held by a live process and force is not set
        """
        if not self.lock_dir.exists():
            return False

        if not force and not self.is_stale():
            owner = self.read_owner() or {}
            raise LockError(
                f"Lock {self.lock_dir} is held by a running process "
                f"(pid={owner.get('pid', '?')} host={owner.get('host', '?')}); use --force to remove it"
            )

        shutil.rmtree(self.lock_dir)
        logger.warning(f"LOCK_BROKEN path={self.lock_dir} forced={force}")
        return True
