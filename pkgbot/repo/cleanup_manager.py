"""
Cleanup Manager - retention (keep the newest N builds per package) and
orphan removal (packages in the repository that no registry entry names)
"""

import logging
from collections import defaultdict
from pathlib import Path
from typing import Callable, Container, Dict, Iterable, List, Optional

from pkgbot import config
from pkgbot.build.build_tracker import BuildTracker
from pkgbot.common.prompt import ConfirmationPrompt
from pkgbot.repo.database_manager import DatabaseManager, parse_package_filename

logger = logging.getLogger(__name__)

MODE_BOTH = "both"
MODE_ORPHANS = "orphans"
MODE_OLD_VERSIONS = "old-versions"


def select_old_versions(files: Iterable[Path], keep_n: int) -> List[Path]:
    """
    Group artifacts by package name, newest first by mtime, and return every
    file after the first ``keep_n`` of each group.
    """
    if keep_n < 0:
        raise ValueError("keep_n must be >= 0")

    groups: Dict[str, List[Path]] = defaultdict(list)
    for path in files:
        path = Path(path)
        name, _ = parse_package_filename(path.name)
        if name is None:
            logger.debug(f"Ignoring unparseable artifact name: {path.name}")
            continue
        groups[name].append(path)

    old: List[Path] = []
    for name in sorted(groups):
        newest_first = sorted(groups[name], key=lambda p: p.stat().st_mtime, reverse=True)
        old.extend(newest_first[keep_n:])
    return old


def find_orphans(repo_names: Iterable[str], registry: Container[str]) -> List[str]:
    """Names listed in the repository but absent from the registry, each once"""
    return sorted({name for name in repo_names if name and name not in registry})


class CleanupManager:
    """Interactive or automatic repository cleanup"""

    def __init__(self, database: DatabaseManager, registry: Container[str],
                 prompt: ConfirmationPrompt = None, keep_n: int = config.KEEP_N,
                 dry_run: bool = False, out: Optional[Callable[[str], None]] = None):
        self.database = database
        self.registry = registry
        self.prompt = prompt or ConfirmationPrompt(interactive=False)
        self.keep_n = keep_n
        self.dry_run = dry_run
        self.out = out or print
        self.tracker = BuildTracker()

    def confirm_removal(self, item_type: str, items: List[str]) -> bool:
        if not items:
            logger.info(f"No {item_type} to remove")
            return False

        self.out("")
        self.out(f"The following {item_type} will be removed:")
        self.out("")
        for item in items:
            self.out(f"  - {item}")
        self.out("")

        if not self.prompt.interactive:
            logger.info("Auto mode: proceeding with removal")
        if not self.prompt.ask("Proceed with removal"):
            logger.info("Removal cancelled")
            return False
        return True

    def _delete(self, path: Path) -> bool:
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            self.tracker.record_failed(path.name, str(e))
            return False

        sig = path.with_name(path.name + ".sig")
        if sig.exists():
            try:
                sig.unlink()
            except OSError as e:
                logger.warning(f"Could not remove signature {sig.name}: {e}")

        logger.debug(f"Removed: {path.name}")
        self.tracker.record_updated(path.name)
        return True

    def cleanup_old_versions(self) -> int:
        logger.info(f"Scanning for old package versions (keeping {self.keep_n})...")
        old_files = select_old_versions(self.database.package_files(), self.keep_n)
        for path in old_files:
            self.tracker.record_checked(path.name)

        if not old_files:
            logger.info("✅ No old versions to remove")
            return 0

        if not self.confirm_removal("old package versions", [p.name for p in old_files]):
            return 0

        if self.dry_run:
            logger.info(f"DRY-RUN: Would remove {len(old_files)} file(s)")
            return 0

        removed = sum(1 for path in old_files if self._delete(path))
        if removed:
            logger.info(f"✅ Removed {removed} old package file(s)")
            logger.info("Updating repository database...")
            if not self.database.generate_database():
                self.tracker.record_failed(self.database.repo_name, "repo-add failed")
        return removed

    def cleanup_orphans(self) -> int:
        logger.info("Scanning for orphaned packages...")
        orphans = find_orphans(self.database.list_package_names(), self.registry)
        for name in orphans:
            self.tracker.record_checked(name)

        if not orphans:
            logger.info("✅ No orphaned packages found")
            return 0

        if not self.confirm_removal("orphaned packages", orphans):
            return 0

        if self.dry_run:
            logger.info(f"DRY-RUN: Would remove orphaned packages: {' '.join(orphans)}")
            return 0

        if not self.database.remove_packages(orphans):
            for name in orphans:
                self.tracker.record_failed(name, "repo-remove failed")
            return 0

        orphan_set = set(orphans)
        for path in self.database.package_files():
            name, _ = parse_package_filename(path.name)
            if name in orphan_set:
                self._delete(path)

        logger.info(f"✅ Removed {len(orphans)} orphaned package(s)")
        return len(orphans)

    def run(self, mode: str = MODE_BOTH) -> BuildTracker:
        logger.info("Starting repository cleanup...")

        if mode == MODE_ORPHANS:
            self.cleanup_orphans()
        elif mode == MODE_OLD_VERSIONS:
            self.cleanup_old_versions()
        else:
            self.cleanup_old_versions()
            self.out("")
            self.cleanup_orphans()

        logger.info("✅ Cleanup complete")
        return self.tracker
