"""
pkgbot - upstream version tracking and install reconciliation for PKGBUILD trees
"""

__version__ = "1.0.0"

# Common modules
from .common.config_loader import load_config
from .common.logging_utils import setup_logging
from .common.shell_executor import ShellExecutor

# Feed modules
from .feeds.registry import FeedRegistry
from .feeds.version_fetcher import VersionFetcher

# Build modules
from .build.build_tracker import BuildTracker
from .build.local_builder import LocalBuilder
from .build.pacman_client import PacmanClient
from .build.version_manager import VersionComparator

# Orchestrator modules
from .orchestrator.update_runner import UpdateRunner
from .orchestrator.reconciler import Reconciler
from .orchestrator.state import BuildState

# Repository modules
from .repo.cleanup_manager import CleanupManager
from .repo.database_manager import DatabaseManager

__all__ = [
    # Common
    'load_config',
    'setup_logging',
    'ShellExecutor',

    # Feeds
    'FeedRegistry',
    'VersionFetcher',

    # Build
    'BuildTracker',
    'LocalBuilder',
    'PacmanClient',
    'VersionComparator',

    # Orchestrator
    'UpdateRunner',
    'Reconciler',
    'BuildState',

    # Repository
    'CleanupManager',
    'DatabaseManager',
]
