"""
Version Manager Module - Canonical versions and pacman-style version ordering

Ordering follows libalpm's ``alpm_pkg_vercmp``:

* ``[epoch:]pkgver[-pkgrel]``; a missing epoch is 0
* epoch first, then pkgver, then pkgrel (only when both sides have one)
* each part is split into alternating digit / alpha runs; digit runs compare
  numerically (leading zeros ignored), alpha runs lexically, a digit run is
  newer than an alpha run, and non-alphanumerics only separate runs

When configured with the ``vercmp`` backend the external binary is
authoritative; if it is missing or fails the comparator degrades to plain
string comparison, logs that accuracy is reduced, and sets ``degraded``.
"""

import subprocess
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from pkgbot.common.shell_executor import ShellExecutor

logger = logging.getLogger(__name__)


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1

    @classmethod
    def from_int(cls, value: int) -> "Ordering":
        if value < 0:
            return cls.LESS
        if value > 0:
            return cls.GREATER
        return cls.EQUAL

    def to_int(self) -> int:
        return self.value


def _isdigit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _isalpha(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z')


def _isalnum(ch: str) -> bool:
    return _isdigit(ch) or _isalpha(ch)


def rpmvercmp(a: str, b: str) -> int:
    """Segment comparison of two version fragments. Returns -1, 0 or 1."""
    if a == b:
        return 0

    one, two = 0, 0
    # End of the previous segment in each string
    ptr1, ptr2 = 0, 0
    len1, len2 = len(a), len(b)

    while one < len1 and two < len2:
        while one < len1 and not _isalnum(a[one]):
            one += 1
        while two < len2 and not _isalnum(b[two]):
            two += 1

        if one >= len1 or two >= len2:
            break

        # Different separator lengths decide the comparison
        if (one - ptr1) != (two - ptr2):
            return -1 if (one - ptr1) < (two - ptr2) else 1

        ptr1, ptr2 = one, two

        if _isdigit(a[ptr1]):
            while ptr1 < len1 and _isdigit(a[ptr1]):
                ptr1 += 1
            while ptr2 < len2 and _isdigit(b[ptr2]):
                ptr2 += 1
            isnum = True
        else:
            while ptr1 < len1 and _isalpha(a[ptr1]):
                ptr1 += 1
            while ptr2 < len2 and _isalpha(b[ptr2]):
                ptr2 += 1
            isnum = False

        seg1 = a[one:ptr1]
        seg2 = b[two:ptr2]

        # Segments of different types: numeric is newer than alpha
        if not seg2:
            return 1 if isnum else -1

        if isnum:
            seg1 = seg1.lstrip('0')
            seg2 = seg2.lstrip('0')
            if len(seg1) > len(seg2):
                return 1
            if len(seg2) > len(seg1):
                return -1

        if seg1 != seg2:
            return -1 if seg1 < seg2 else 1

        one, two = ptr1, ptr2

    rest1 = a[one:]
    rest2 = b[two:]
    if not rest1 and not rest2:
        return 0

    # A remaining alpha string never beats an empty one
    if (not rest1 and not _isalpha(rest2[0])) or (rest1 and _isalpha(rest1[0])):
        return -1
    return 1


@dataclass(frozen=True)
class CanonicalVersion:
    """The only version form that is ever compared"""
    epoch: int
    pkgver: str
    pkgrel: str = ""

    @classmethod
    def parse(cls, version: str) -> "CanonicalVersion":
        """
        Split ``[epoch:]pkgver[-pkgrel]`` the way libalpm does: the epoch is a
        leading digit run ended by ':', the release is after the last '-'.
        """
        version = (version or "").strip()
        idx = 0
        while idx < len(version) and _isdigit(version[idx]):
            idx += 1

        if idx < len(version) and version[idx] == ':':
            epoch_text = version[:idx] or "0"
            rest = version[idx + 1:]
        else:
            epoch_text = "0"
            rest = version

        pkgver, sep, pkgrel = rest.rpartition('-')
        if not sep:
            pkgver, pkgrel = rest, ""

        return cls(epoch=int(epoch_text), pkgver=pkgver, pkgrel=pkgrel)

    @classmethod
    def from_parts(cls, pkgver: str, pkgrel: str = "", epoch: Optional[Union[str, int]] = None) -> "CanonicalVersion":
        return cls(epoch=int(epoch or 0), pkgver=pkgver, pkgrel=pkgrel or "")

    def __str__(self) -> str:
        text = self.pkgver
        if self.pkgrel:
            text = f"{text}-{self.pkgrel}"
        if self.epoch:
            text = f"{self.epoch}:{text}"
        return text


def vercmp(a: Union[str, CanonicalVersion], b: Union[str, CanonicalVersion]) -> int:
    """Pure Python equivalent of pacman's ``vercmp a b``"""
    if str(a) == str(b):
        return 0

    ver1 = a if isinstance(a, CanonicalVersion) else CanonicalVersion.parse(a)
    ver2 = b if isinstance(b, CanonicalVersion) else CanonicalVersion.parse(b)

    if ver1.epoch != ver2.epoch:
        return 1 if ver1.epoch > ver2.epoch else -1

    ret = rpmvercmp(ver1.pkgver, ver2.pkgver)
    if ret == 0 and ver1.pkgrel and ver2.pkgrel:
        ret = rpmvercmp(ver1.pkgrel, ver2.pkgrel)
    return ret


def lexical_cmp(a: str, b: str) -> int:
    """Degraded fallback: plain string comparison (1.10 sorts before 1.9)"""
    return 1 if a > b else -1 if a < b else 0


class VersionComparator:
    """Compares versions with the configured backend"""

    def __init__(self, backend: str = "builtin", shell_executor: Optional[ShellExecutor] = None):
        if backend not in ("builtin", "vercmp"):
            raise ValueError(f"Unknown comparator backend: {backend}")
        self.backend = backend
        self.shell_executor = shell_executor or ShellExecutor()
        self.degraded = False

    def _degrade(self, reason: str):
        if not self.degraded:
            logger.warning(f"VERCMP_DEGRADED=1 reason={reason} - using lexical comparison (reduced accuracy)")
        self.degraded = True

    def _external_cmp(self, a: str, b: str) -> int:
        if self.degraded:
            return lexical_cmp(a, b)

        try:
            result = self.shell_executor.run_command(['vercmp', a, b], check=False)
            if result.returncode == 0:
                return int(result.stdout.strip())
            self._degrade(f"exit_{result.returncode}")
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._degrade(type(e).__name__)

        return lexical_cmp(a, b)

    def compare(self, a: Union[str, CanonicalVersion], b: Union[str, CanonicalVersion]) -> Ordering:
        if self.backend == "vercmp":
            return Ordering.from_int(self._external_cmp(str(a), str(b)))
        return Ordering.from_int(vercmp(a, b))

    def pick_max(self, versions: Iterable[str]) -> str:
        """Newest of an unordered collection; empty strings are ignored, empty input gives ''"""
        best = ""
        for version in versions:
            if not version:
                continue
            if not best or self.compare(version, best) == Ordering.GREATER:
                best = version
        return best


_default_comparator = VersionComparator()


def compare(a, b) -> Ordering:
    """Compare with the builtin backend"""
    return _default_comparator.compare(a, b)


def pick_max(versions: Iterable[str]) -> str:
    return _default_comparator.pick_max(versions)
