"""
State Classifier - upstream vs local status for one package

Decision table (first matching row wins, nothing else affects the result):

    has_feed  is_manual  is_vcs  upstream  current  upstream>current  -> status
    false     -          -       -         -        -                 NO_FEED
    true      true       -       -         -        -                 MANUAL
    true      false      true    -         -        -                 SKIP
    true      false      false   empty     -        -                 UNKNOWN
    true      false      false   set       empty    -                 UPDATE
    true      false      false   set       set      true              UPDATE
    true      false      false   set       set      false             OK
"""

from enum import Enum
from typing import Optional

from pkgbot import config
from pkgbot.build.version_manager import Ordering, VersionComparator
from pkgbot.build.version_normalizer import to_pkgver


class PackageStatus(Enum):
    OK = "OK"
    UPDATE = "UPDATE"
    MANUAL = "MANUAL"
    SKIP = "SKIP"
    NO_FEED = "NO_FEED"
    UNKNOWN = "UNKNOWN"

    @property
    def label(self) -> str:
        """Table wording; an unresolved upstream is shown as n/a"""
        return "n/a" if self is PackageStatus.UNKNOWN else self.value


_comparator = VersionComparator()


def classify(current_local: str, upstream: str, has_feed: bool, is_vcs: bool, is_manual: bool,
             comparator: Optional[VersionComparator] = None) -> PackageStatus:
    if not has_feed:
        return PackageStatus.NO_FEED
    if is_manual:
        return PackageStatus.MANUAL
    if is_vcs:
        return PackageStatus.SKIP
    if not upstream:
        return PackageStatus.UNKNOWN
    if not current_local:
        return PackageStatus.UPDATE

    comparator = comparator or _comparator
    # Compare in the form the upstream version would be written into pkgver
    if comparator.compare(to_pkgver(upstream), current_local) == Ordering.GREATER:
        return PackageStatus.UPDATE
    return PackageStatus.OK


def is_vcs_package(name: str, feed_type: str = "") -> bool:
    """VCS packages compute their version at build time and are never bumped"""
    if feed_type == "vcs":
        return True
    return name.endswith(config.VCS_SUFFIXES)
