"""
Build module: versions, PKGBUILD access, makepkg and pacman collaborators
"""

from .version_manager import CanonicalVersion, Ordering, VersionComparator, compare, pick_max
from .version_normalizer import normalize, apply_regex, extract, to_pkgver
from .pkgbuild import SrcInfo, parse_srcinfo, read_pkgver, bump_version, restore_backup
from .local_builder import LocalBuilder
from .pacman_client import PacmanClient
from .build_tracker import BuildTracker

__all__ = [
    'CanonicalVersion',
    'Ordering',
    'VersionComparator',
    'compare',
    'pick_max',
    'normalize',
    'apply_regex',
    'extract',
    'to_pkgver',
    'SrcInfo',
    'parse_srcinfo',
    'read_pkgver',
    'bump_version',
    'restore_backup',
    'LocalBuilder',
    'PacmanClient',
    'BuildTracker',
]
