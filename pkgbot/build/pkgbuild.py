"""
PKGBUILD helpers - read the declared version, bump it, parse .SRCINFO output
"""

import re
import shutil
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from pkgbot.build.version_manager import CanonicalVersion
from pkgbot.build.version_normalizer import to_pkgver

logger = logging.getLogger(__name__)

PKGVER_LINE_RE = re.compile(r'^pkgver=.*$', re.MULTILINE)
PKGREL_LINE_RE = re.compile(r'^pkgrel=.*$', re.MULTILINE)

BACKUP_SUFFIX = ".backup"


@dataclass
class SrcInfo:
    """The parts of ``makepkg --printsrcinfo`` output pkgbot cares about"""
    pkgbase: str = ""
    pkgnames: List[str] = field(default_factory=list)
    pkgver: str = ""
    pkgrel: str = ""
    epoch: Optional[str] = None

    @property
    def version(self) -> CanonicalVersion:
        return CanonicalVersion.from_parts(self.pkgver, self.pkgrel, self.epoch)


def parse_srcinfo(content: str) -> SrcInfo:
    """
    Parse SRCINFO text. pkgname may repeat (split packages); duplicates are dropped.

    Raises:
        ValueError: pkgver or pkgrel missing
    """
    info = SrcInfo()

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue

        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip()

        if key == 'pkgbase':
            info.pkgbase = value
        elif key == 'pkgname':
            if value and value not in info.pkgnames:
                info.pkgnames.append(value)
        elif key == 'pkgver':
            info.pkgver = value
        elif key == 'pkgrel':
            info.pkgrel = value
        elif key == 'epoch':
            info.epoch = value

    if not info.pkgver or not info.pkgrel:
        raise ValueError("Could not extract pkgver and pkgrel from .SRCINFO")

    if not info.pkgnames and info.pkgbase:
        info.pkgnames.append(info.pkgbase)

    return info


def _unquote(value: str) -> str:
    return value.strip().strip('"\'')


def read_pkgver(pkgbuild_path: Path) -> str:
    """First ``pkgver=`` assignment with quotes removed; "" when absent or unreadable"""
    try:
        content = Path(pkgbuild_path).read_text(encoding='utf-8')
    except OSError:
        return ""

    match = PKGVER_LINE_RE.search(content)
    if not match:
        return ""
    return _unquote(match.group(0).split('=', 1)[1])


def backup_path(pkgbuild_path: Path) -> Path:
    return Path(str(pkgbuild_path) + BACKUP_SUFFIX)


def bump_version(pkgbuild_path: Path, new_version: str) -> str:
    """
    Write ``pkgver='<new>'`` and ``pkgrel=1`` into a PKGBUILD after copying it
    to ``PKGBUILD.backup``. Hyphens become underscores (see to_pkgver).

    Returns:
        The pkgver actually written
    """
    pkgbuild_path = Path(pkgbuild_path)
    clean_version = to_pkgver(new_version)
    if not clean_version:
        raise ValueError("Refusing to write an empty pkgver")

    shutil.copy2(pkgbuild_path, backup_path(pkgbuild_path))

    content = pkgbuild_path.read_text(encoding='utf-8')
    content = PKGVER_LINE_RE.sub(lambda _: f"pkgver='{clean_version}'", content, count=1)
    content = PKGREL_LINE_RE.sub("pkgrel=1", content, count=1)
    pkgbuild_path.write_text(content, encoding='utf-8')

    logger.info(f"PKGBUILD_BUMPED path={pkgbuild_path} pkgver={clean_version}")
    return clean_version


def restore_backup(pkgbuild_path: Path) -> bool:
    """Put PKGBUILD.backup back in place. Returns False if there was no backup."""
    backup = backup_path(pkgbuild_path)
    if not backup.exists():
        return False
    shutil.move(str(backup), str(pkgbuild_path))
    logger.warning(f"PKGBUILD_RESTORED path={pkgbuild_path}")
    return True


def discard_backup(pkgbuild_path: Path):
    backup = backup_path(pkgbuild_path)
    if backup.exists():
        backup.unlink()
