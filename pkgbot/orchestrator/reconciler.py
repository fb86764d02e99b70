"""
Reconciler - brings installed packages up to the version of their local recipe

For every recipe directory the installed versions of the produced package
names are compared with the recipe version:

    nothing installed              -> NOT_INSTALLED   (no-op)
    all installed == recipe        -> UP_TO_DATE      (no-op)
    any installed older than recipe
        artifacts for the older
        subset already on disk     -> INSTALL_EXISTING
        otherwise                  -> BUILD_AND_INSTALL
    installed newer, none older    -> INSTALLED_NEWER (warn, never downgrade)

Only names whose installed version is older than the recipe are ever
installed. Sibling outputs of a split package that are not installed stay off
the system, and siblings installed at a newer version are left alone.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from pkgbot.build.build_tracker import BuildTracker
from pkgbot.build.local_builder import LocalBuilder
from pkgbot.build.pacman_client import PacmanClient
from pkgbot.build.pkgbuild import SrcInfo
from pkgbot.build.version_manager import Ordering, VersionComparator
from pkgbot.common.errors import BuildError, InstallError, PromptAborted
from pkgbot.common.logging_utils import log_success
from pkgbot.common.prompt import ConfirmationPrompt
from pkgbot.orchestrator.state_classifier import is_vcs_package

logger = logging.getLogger(__name__)


class ReconcileAction(Enum):
    NOT_INSTALLED = "not-installed"
    UP_TO_DATE = "up-to-date"
    INSTALL_EXISTING = "install-existing"
    BUILD_AND_INSTALL = "build-and-install"
    INSTALLED_NEWER = "installed-newer"
    SKIP_VCS = "skip-vcs"
    DECLINED = "declined"
    UNREADABLE = "unreadable"

    @property
    def mutating(self) -> bool:
        return self in (ReconcileAction.INSTALL_EXISTING, ReconcileAction.BUILD_AND_INSTALL)


@dataclass
class InstalledPackageState:
    """One produced package name as seen in a single reconciliation pass"""
    name: str
    installed_version: str
    local_recipe_version: str
    produced_artifact_paths: List[Path] = field(default_factory=list)


@dataclass
class ReconcileDecision:
    directory: Path
    action: ReconcileAction
    recipe_version: str = ""
    installed: Dict[str, str] = field(default_factory=dict)
    artifacts: List[Path] = field(default_factory=list)
    srcinfo: Optional[SrcInfo] = None
    # Installed names older than the recipe; the only ones ever installed
    targets: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.directory.name

    @property
    def states(self) -> List[InstalledPackageState]:
        return [
            InstalledPackageState(
                name, version, self.recipe_version,
                [p for p in self.artifacts if p.name.startswith(f"{name}-{self.recipe_version}-")],
            )
            for name, version in self.installed.items()
        ]


class Reconciler:
    """The install-updates flow over a root of recipe directories"""

    def __init__(self, root: Path, builder: LocalBuilder = None, pacman: PacmanClient = None,
                 comparator: VersionComparator = None, prompt: ConfirmationPrompt = None,
                 dry_run: bool = False, include_vcs: bool = False, clean: bool = False,
                 out: Optional[Callable[[str], None]] = None):
        self.root = Path(root)
        self.builder = builder or LocalBuilder()
        self.pacman = pacman or PacmanClient()
        self.comparator = comparator or VersionComparator()
        self.prompt = prompt or ConfirmationPrompt(interactive=False)
        self.dry_run = dry_run
        self.include_vcs = include_vcs
        self.clean = clean
        self.out = out or print
        self.tracker = BuildTracker()
        self.aborted = False
        self.decisions: List[ReconcileDecision] = []

    def discover(self, selected: Optional[Sequence[str]] = None) -> List[Path]:
        """Recipe directories under root, or just the selected ones"""
        if selected:
            dirs = []
            for name in selected:
                pkg_dir = self.root / name
                if (pkg_dir / "PKGBUILD").is_file():
                    dirs.append(pkg_dir)
                else:
                    logger.warning(f"No PKGBUILD in {pkg_dir}; skipping")
            return dirs

        return sorted(p.parent for p in self.root.glob("*/PKGBUILD") if p.is_file())

    # ---------------------------------------------------------------- decide

    def _existing_artifacts(self, pkg_dir: Path, srcinfo: SrcInfo, names: Sequence[str]) -> List[Path]:
        """Artifacts for every name in ``names``, or [] unless all of them are on disk"""
        artifacts = self.builder.artifacts_for(pkg_dir, srcinfo, names)
        present = [p for p in artifacts if (p if p.is_absolute() else pkg_dir / p).is_file()]
        covered = {name for name in names
                   if any(p.name.startswith(f"{name}-{srcinfo.version}-") for p in present)}
        if covered != set(names):
            return []
        return present

    def decide(self, pkg_dir: Path) -> ReconcileDecision:
        pkg_dir = Path(pkg_dir)
        try:
            srcinfo = self.builder.read_srcinfo(pkg_dir)
        except BuildError as e:
            logger.warning(f"[{pkg_dir.name}] Could not read recipe: {e}")
            return ReconcileDecision(pkg_dir, ReconcileAction.UNREADABLE)

        recipe_version = str(srcinfo.version)

        if not self.include_vcs and any(is_vcs_package(name) for name in srcinfo.pkgnames):
            return ReconcileDecision(pkg_dir, ReconcileAction.SKIP_VCS, recipe_version, srcinfo=srcinfo)

        installed = self.pacman.installed_versions(srcinfo.pkgnames)
        if not installed:
            return ReconcileDecision(pkg_dir, ReconcileAction.NOT_INSTALLED, recipe_version, srcinfo=srcinfo)

        older: List[str] = []
        newer: List[str] = []
        for name, version in installed.items():
            order = self.comparator.compare(recipe_version, version)
            if order == Ordering.GREATER:
                logger.info(f"[{pkg_dir.name}] {name} needs update ({version} -> {recipe_version})")
                older.append(name)
            elif order == Ordering.LESS:
                logger.warning(f"[{pkg_dir.name}] {name} installed is newer than local ({version} > {recipe_version})")
                newer.append(name)
            else:
                logger.debug(f"[{pkg_dir.name}] {name} up-to-date ({version})")

        if older:
            for name in newer:
                logger.warning(f"[{pkg_dir.name}] {name}: not downgrading")
            existing = self._existing_artifacts(pkg_dir, srcinfo, older)
            action = ReconcileAction.INSTALL_EXISTING if existing else ReconcileAction.BUILD_AND_INSTALL
            return ReconcileDecision(pkg_dir, action, recipe_version, installed, existing, srcinfo,
                                     targets=older)

        if newer:
            return ReconcileDecision(pkg_dir, ReconcileAction.INSTALLED_NEWER, recipe_version, installed,
                                     srcinfo=srcinfo)

        return ReconcileDecision(pkg_dir, ReconcileAction.UP_TO_DATE, recipe_version, installed, srcinfo=srcinfo)

    # ----------------------------------------------------------------- apply

    def apply(self, decision: ReconcileDecision):
        """
        Perform a mutating decision.

        Raises:
            BuildError: the build failed
            InstallError: artifacts missing after the build, or pacman failed
        """
        pkg_dir = decision.directory
        names = list(decision.targets)

        if decision.action == ReconcileAction.INSTALL_EXISTING:
            self.pacman.install(decision.artifacts)
            log_success(logger, f"[{decision.label}] Installed existing artifacts")
            return

        if self.clean:
            self.builder.clean(pkg_dir)
        self.builder.build(pkg_dir)

        # The build may have changed what --packagelist reports (pkgver())
        srcinfo = self.builder.read_srcinfo(pkg_dir)
        artifacts = self._existing_artifacts(pkg_dir, srcinfo, names)
        if not artifacts:
            raise InstallError(f"[{decision.label}] Build succeeded but expected artifacts not found "
                               f"for outdated packages: {' '.join(names)}")

        decision.artifacts = artifacts
        self.pacman.install(artifacts)
        log_success(logger, f"[{decision.label}] Built and installed: {' '.join(names)}")

    # ------------------------------------------------------------------- run

    def _report(self, decision: ReconcileDecision):
        label = decision.label
        action = decision.action
        if action == ReconcileAction.NOT_INSTALLED:
            logger.info(f"[{label}] No produced packages are installed; skipping")
        elif action == ReconcileAction.UP_TO_DATE:
            logger.info(f"[{label}] Up-to-date ({decision.recipe_version})")
        elif action == ReconcileAction.SKIP_VCS:
            names = ' '.join(decision.srcinfo.pkgnames) if decision.srcinfo else label
            logger.info(f"[{label}] Skip VCS package(s): {names}")
        elif action == ReconcileAction.INSTALLED_NEWER:
            logger.warning(f"[{label}] Installed version is newer than the recipe; not downgrading")

    def run(self, selected: Optional[Sequence[str]] = None) -> BuildTracker:
        dirs = self.discover(selected)
        if not dirs:
            logger.warning(f"No PKGBUILD directories found under: {self.root}")

        try:
            for pkg_dir in dirs:
                self.decisions.append(self._process(pkg_dir))
        except PromptAborted:
            logger.error("Aborted by user.")
            self.aborted = True

        self.out("")
        self.out(self.tracker.summary_line())
        return self.tracker

    def _process(self, pkg_dir: Path) -> ReconcileDecision:
        self.tracker.record_checked(pkg_dir.name)
        decision = self.decide(pkg_dir)
        self._report(decision)

        if decision.action == ReconcileAction.UNREADABLE:
            self.tracker.record_skipped(decision.label, "unreadable recipe")
            return decision

        if not decision.action.mutating:
            return decision

        if self.dry_run:
            if decision.action == ReconcileAction.INSTALL_EXISTING:
                paths = [p for state in decision.states for p in state.produced_artifact_paths]
                what = f"install existing artifacts: {' '.join(str(p) for p in paths)}"
            else:
                what = "build (no matching artifacts found) then install"
            logger.info(f"[{decision.label}] DRY-RUN: would {what}")
            return decision

        # One question per directory, covering every name of a split package
        if not self.prompt.ask(f"{decision.label}: install update (installed -> local {decision.recipe_version})"):
            logger.info(f"[{decision.label}] Skipped by user")
            decision.action = ReconcileAction.DECLINED
            self.tracker.record_skipped(decision.label, "declined")
            return decision

        try:
            self.apply(decision)
            self.tracker.record_updated(decision.label, decision.recipe_version)
        except (BuildError, InstallError, OSError) as e:
            logger.warning(f"⚠️ [{decision.label}] {e}")
            self.tracker.record_failed(decision.label, str(e))

        return decision

    def exit_code(self) -> int:
        return 1 if self.aborted or self.tracker.has_failures else 0
