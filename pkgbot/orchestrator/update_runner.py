"""
Update Runner - compares every registered package with its upstream and
bumps/builds the ones that are behind

Per package the mutating part is a transaction: PKGBUILD bump, checksum
refresh and build either all succeed, or the PKGBUILD is restored from its
backup so the directory can simply be retried.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from pkgbot.build.build_tracker import BuildTracker
from pkgbot.build.local_builder import LocalBuilder
from pkgbot.build.pkgbuild import bump_version, discard_backup, read_pkgver, restore_backup
from pkgbot.build.version_manager import VersionComparator
from pkgbot.common.errors import BuildError, ValidationError
from pkgbot.feeds.registry import FeedRegistry
from pkgbot.feeds.version_fetcher import FetchResult, VersionFetcher
from pkgbot.orchestrator.state import BuildState
from pkgbot.orchestrator.state_classifier import PackageStatus, classify, is_vcs_package

logger = logging.getLogger(__name__)

ROW_FORMAT = "%-28s %-18s %-18s %-10s"


@dataclass
class UpdateOptions:
    dry_run: bool = False
    no_build: bool = False
    build_only: bool = False
    clean: bool = False
    strict: bool = False
    json_output: bool = False
    jobs: int = 1


@dataclass
class PackageRow:
    name: str
    current: str
    upstream: str
    status: PackageStatus
    is_vcs: bool = False
    is_manual: bool = False
    error: str = ""

    @property
    def upstream_cell(self) -> str:
        if self.is_manual:
            return "n/a"
        if self.is_vcs:
            return f"{self.upstream} (stable)" if self.upstream else "VCS"
        return self.upstream or "n/a"

    def as_dict(self) -> Dict:
        return {
            'name': self.name,
            'current': self.current,
            'upstream': self.upstream,
            'status': self.status.value,
            'vcs': self.is_vcs,
            'manual': self.is_manual,
            'error': self.error,
        }


class UpdateRunner:
    """The update flow: table of CURRENT vs UPSTREAM, then bump + build"""

    def __init__(self, registry: FeedRegistry, root: Path, fetcher: VersionFetcher,
                 builder: LocalBuilder, comparator: Optional[VersionComparator] = None,
                 options: Optional[UpdateOptions] = None, report: Optional[BuildState] = None,
                 out: Optional[Callable[[str], None]] = None):
        self.registry = registry
        self.root = Path(root)
        self.fetcher = fetcher
        self.builder = builder
        self.comparator = comparator or fetcher.comparator
        self.options = options or UpdateOptions()
        self.report = report or BuildState()
        self.out = out or print
        self.tracker = BuildTracker()

    # ------------------------------------------------------------------ checks

    def validate(self, names: Sequence[str]):
        """
        Warn about registered packages without a directory or PKGBUILD.

        Raises:
            ValidationError: strict mode and something is missing
        """
        missing_dirs = []
        missing_pkgbuilds = []
        for name in names:
            if not self.registry.has(name):
                continue
            pkg_dir = self.root / name
            if not pkg_dir.is_dir():
                missing_dirs.append(name)
            elif not (pkg_dir / "PKGBUILD").is_file():
                missing_pkgbuilds.append(name)

        if missing_dirs:
            logger.warning(f"Missing package directories: {' '.join(missing_dirs)}")
        if missing_pkgbuilds:
            logger.warning(f"Missing PKGBUILD files: {' '.join(missing_pkgbuilds)}")

        if self.options.strict and (missing_dirs or missing_pkgbuilds):
            raise ValidationError("--strict set; failing due to missing dirs/PKGBUILDs.")

        return missing_dirs, missing_pkgbuilds

    def build_row(self, name: str, result: Optional[FetchResult]) -> PackageRow:
        has_feed = self.registry.has(name)
        feed_type = self.registry.get_field(name, 'type')
        is_manual = has_feed and self.registry.descriptor(name).is_manual
        is_vcs = is_vcs_package(name, feed_type)

        current = read_pkgver(self.root / name / "PKGBUILD")
        upstream = result.version.strip() if result else ""
        error = str(result.error) if result and result.error else ""

        status = classify(current, upstream, has_feed, is_vcs, is_manual, self.comparator)
        return PackageRow(name, current, upstream, status, is_vcs, is_manual, error)

    # --------------------------------------------------------------- mutation

    def _build(self, pkg_dir: Path):
        if self.options.clean:
            self.builder.clean(pkg_dir)
        self.builder.build(pkg_dir)

    def _bump_and_build(self, row: PackageRow, pkg_dir: Path):
        pkgbuild = pkg_dir / "PKGBUILD"
        try:
            written = bump_version(pkgbuild, row.upstream)
            self.builder.update_checksums(pkg_dir)
            if not self.options.no_build:
                self._build(pkg_dir)
        except BaseException:
            # Includes KeyboardInterrupt: never leave a half-bumped recipe
            restore_backup(pkgbuild)
            raise

        discard_backup(pkgbuild)
        self.tracker.record_updated(row.name, written)

    def process(self, row: PackageRow):
        pkg_dir = self.root / row.name
        if not (pkg_dir / "PKGBUILD").is_file():
            self.tracker.record_failed(row.name, "missing directory or PKGBUILD")
            return

        try:
            if self.options.build_only:
                self._build(pkg_dir)
                return

            wants_bump = (row.status == PackageStatus.UPDATE and row.upstream
                          and not row.is_vcs and not row.is_manual)
            if wants_bump:
                self._bump_and_build(row, pkg_dir)
            elif not self.options.no_build:
                self._build(pkg_dir)
        except (BuildError, OSError, ValueError) as e:
            logger.warning(f"⚠️ {row.name}: {e}")
            self.tracker.record_failed(row.name, str(e))

    # -------------------------------------------------------------------- run

    def print_header(self):
        self.out("")
        self.out(ROW_FORMAT % ("PACKAGE", "CURRENT", "UPSTREAM", "STATUS"))
        self.out(ROW_FORMAT % ("-" * 28, "-" * 18, "-" * 18, "-" * 10))

    def print_row(self, row: PackageRow):
        self.out(ROW_FORMAT % (row.name, row.current or "n/a", row.upstream_cell, row.status.label))

    def run(self, selected: Optional[Sequence[str]] = None) -> BuildTracker:
        names = list(selected) if selected else self.registry.list_names()
        if not names:
            raise ValidationError("No packages found in feeds.json.")

        for name in names:
            if not self.registry.has(name):
                logger.error(f"Package '{name}' not present in feeds.json")

        self.validate(names)

        descriptors = [self.registry.descriptor(name) for name in names if self.registry.has(name)]
        results = {result.name: result for result in self.fetcher.fetch_all(descriptors, self.options.jobs)}

        if not self.options.json_output:
            self.print_header()

        rows: List[PackageRow] = []
        for name in names:
            row = self.build_row(name, results.get(name))
            rows.append(row)
            self.tracker.record_checked(name)
            self.report.record(name, **{k: v for k, v in row.as_dict().items() if k != 'name'})

            if not self.options.json_output:
                self.print_row(row)

            if not self.registry.has(name):
                self.tracker.record_failed(name, "not present in feeds.json")
                continue

            if row.error:
                # Listed as failed; the package is still built below when asked to
                self.tracker.record_failed(name, f"upstream fetch failed: {row.error}")

            if self.options.dry_run:
                continue

            self.process(row)

        summary = self.tracker.get_summary()
        self.report.save_state(summary)

        if self.options.json_output:
            self.out(json.dumps({'packages': [row.as_dict() for row in rows], 'summary': summary}, indent=2))
        elif self.options.dry_run:
            self.out("")
            logger.info("Dry-run complete.")
        else:
            self.out("")
            logger.info(f"Updated PKGBUILDs: {len(self.tracker.updated)}")
            if self.tracker.has_failures:
                logger.error(f"Failed: {' '.join(self.tracker.failed)}")

        return self.tracker
