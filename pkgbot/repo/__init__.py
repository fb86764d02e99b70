"""
Repository management modules package
"""

from .cleanup_manager import CleanupManager, select_old_versions, find_orphans
from .database_manager import DatabaseManager, parse_package_filename

__all__ = [
    'CleanupManager',
    'select_old_versions',
    'find_orphans',
    'DatabaseManager',
    'parse_package_filename',
]
