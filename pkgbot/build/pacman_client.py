"""
Pacman client - installed-version queries and transactional installs
"""

import subprocess
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from pkgbot.common.errors import InstallError
from pkgbot.common.shell_executor import ShellExecutor

logger = logging.getLogger(__name__)


class PacmanClient:
    """pacman -Q / sudo pacman -U"""

    def __init__(self, shell_executor: ShellExecutor = None):
        self.shell_executor = shell_executor or ShellExecutor()

    def installed_version(self, name: str) -> Optional[str]:
        """Installed version string, or None when the package is absent"""
        try:
            result = self.shell_executor.run_command(["pacman", "-Q", name], check=False, timeout=60)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"pacman -Q {name} failed: {e}")
            return None

        if result.returncode != 0:
            return None

        parts = result.stdout.split()
        # "pacman -Q foo" can answer for a package that provides foo
        if len(parts) < 2 or parts[0] != name:
            return None
        return parts[1]

    def installed_versions(self, names: Sequence[str]) -> dict:
        """name -> version for the installed subset of names"""
        installed = {}
        for name in names:
            version = self.installed_version(name)
            if version:
                installed[name] = version
        return installed

    def install(self, paths: List[Path]):
        """
        Install artifacts in one pacman transaction.

        Raises:
            InstallError: nothing to install or non-zero exit
        """
        if not paths:
            raise InstallError("No artifacts to install")

        cmd = ["sudo", "pacman", "-U", "--noconfirm", "--needed", "--"] + [str(p) for p in paths]
        logger.debug(f"Installing via pacman -U: {' '.join(str(p) for p in paths)}")
        try:
            result = self.shell_executor.run_command(cmd, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            raise InstallError(f"pacman -U could not run: {e}") from e

        if result.returncode != 0:
            raise InstallError(f"pacman -U failed: {(result.stderr or '').strip()[:300]}")
