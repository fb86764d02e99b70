"""
Local Builder Module - makepkg collaborator for recipe directories

Everything pkgbot knows about a recipe comes from makepkg itself:
--printsrcinfo for names and version, --packagelist for artifact paths
(both side-effect free), and a plain build for the artifacts.
"""

import shutil
import subprocess
import logging
from pathlib import Path
from typing import Iterable, List

from pkgbot import config
from pkgbot.build.pkgbuild import SrcInfo, parse_srcinfo
from pkgbot.common.errors import BuildError
from pkgbot.common.shell_executor import ShellExecutor

logger = logging.getLogger(__name__)

# -s install deps, -c clean after, -f overwrite existing artifacts. No -i:
# installation is done separately so only the installed subset is installed.
BUILD_FLAGS = ["-scf", "--noconfirm", "--needed"]


class LocalBuilder:
    """Handles makepkg queries and builds for one recipe directory at a time"""

    def __init__(self, shell_executor: ShellExecutor = None, debug_mode: bool = False):
        self.debug_mode = debug_mode
        self.shell_executor = shell_executor or ShellExecutor(debug_mode=debug_mode)

    def read_srcinfo(self, pkg_dir: Path) -> SrcInfo:
        """
        Raises:
            BuildError: makepkg --printsrcinfo failed or printed no version
        """
        try:
            result = self.shell_executor.run_command(
                ["makepkg", "--printsrcinfo"], cwd=pkg_dir, check=False, timeout=120)
        except (OSError, subprocess.SubprocessError) as e:
            raise BuildError(f"makepkg --printsrcinfo failed in {pkg_dir}: {e}") from e

        if result.returncode != 0 or not result.stdout:
            raise BuildError(f"makepkg --printsrcinfo failed in {pkg_dir}: {(result.stderr or '').strip()[:300]}")

        try:
            return parse_srcinfo(result.stdout)
        except ValueError as e:
            raise BuildError(f"{pkg_dir}: {e}") from e

    def package_list(self, pkg_dir: Path) -> List[Path]:
        """Artifact paths makepkg would produce; empty when the query fails"""
        try:
            result = self.shell_executor.run_command(
                ["makepkg", "--packagelist"], cwd=pkg_dir, check=False, timeout=120)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"makepkg --packagelist failed in {pkg_dir}: {e}")
            return []

        if result.returncode != 0:
            logger.warning(f"makepkg --packagelist failed in {pkg_dir}")
            return []

        return [Path(line.strip()) for line in result.stdout.splitlines() if line.strip()]

    def artifacts_for(self, pkg_dir: Path, srcinfo: SrcInfo, names: Iterable[str]) -> List[Path]:
        """
        Artifact paths for exactly ``names`` at the recipe's version. Sibling
        split-package outputs are never included.
        """
        version = str(srcinfo.version)
        wanted = list(names)
        selected = []
        for path in self.package_list(pkg_dir):
            base = path.name
            if ".pkg.tar." not in base or base.endswith(".sig"):
                continue
            for name in wanted:
                if base.startswith(f"{name}-{version}-"):
                    selected.append(path)
                    break
        return selected

    def clean(self, pkg_dir: Path):
        """Remove src/, pkg/ and built artifacts from a recipe directory"""
        pkg_dir = Path(pkg_dir)
        for sub in ("src", "pkg"):
            shutil.rmtree(pkg_dir / sub, ignore_errors=True)
        for artifact in pkg_dir.glob("*.pkg.tar.*"):
            try:
                artifact.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {artifact}: {e}")
        logger.info(f"Cleaned build directory: {pkg_dir}")

    def update_checksums(self, pkg_dir: Path):
        """Raises BuildError when updpkgsums fails"""
        try:
            result = self.shell_executor.run_command(["updpkgsums"], cwd=pkg_dir, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            raise BuildError(f"updpkgsums failed in {pkg_dir}: {e}") from e
        if result.returncode != 0:
            raise BuildError(f"updpkgsums failed in {pkg_dir}: {(result.stderr or '').strip()[:300]}")

    def build(self, pkg_dir: Path, log_file: Path = None):
        """
        Run makepkg. No timeout is imposed; output goes to the build log.

        Raises:
            BuildError: non-zero exit
        """
        pkg_dir = Path(pkg_dir)
        log_file = log_file or pkg_dir / config.BUILD_LOG_NAME
        logger.info(f"🔨 Building {pkg_dir.name} (log: {log_file})")

        try:
            result = self.shell_executor.run_command(
                ["makepkg"] + BUILD_FLAGS, cwd=pkg_dir, check=False, output_file=log_file)
        except (OSError, subprocess.SubprocessError) as e:
            raise BuildError(f"makepkg could not run in {pkg_dir}: {e}") from e

        if result.returncode != 0:
            raise BuildError(f"Build failed for {pkg_dir.name} (see {log_file})")

        logger.info(f"✅ Built {pkg_dir.name}")
