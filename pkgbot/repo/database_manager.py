"""
Database manager for the local package repository (repo-add / repo-remove)
"""

import subprocess
import tarfile
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pkgbot.common.errors import LoadError
from pkgbot.common.shell_executor import ShellExecutor

logger = logging.getLogger(__name__)

PACKAGE_EXTENSIONS = ('.pkg.tar.zst', '.pkg.tar.xz', '.pkg.tar.gz', '.pkg.tar.bz2', '.pkg.tar.lzo')
DB_SUFFIXES = ('.db.tar.gz', '.db.tar.zst', '.db.tar.xz', '.db')


def parse_package_filename(filename: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse package name and full version (epoch:pkgver-pkgrel) from an artifact
    filename such as ``foo-bar-1:2.0-3-x86_64.pkg.tar.zst``.
    Returns (pkgname, version) or (None, None) on failure.
    """
    for ext in PACKAGE_EXTENSIONS:
        if filename.endswith(ext):
            base = filename[:-len(ext)]
            break
    else:
        return None, None

    # name-pkgver-pkgrel-arch; only the name may contain further hyphens
    parts = base.rsplit('-', 3)
    if len(parts) < 4 or not all(parts):
        return None, None

    pkgname, pkgver, pkgrel, _arch = parts
    return pkgname, f"{pkgver}-{pkgrel}"


def is_package_file(path: Path) -> bool:
    return path.name.endswith(PACKAGE_EXTENSIONS)


class DatabaseManager:
    """Manages the repository directory and its database"""

    def __init__(self, repo_dir: Path, repo_name: str, shell_executor: ShellExecutor = None,
                 debug_mode: bool = False):
        self.repo_dir = Path(repo_dir)
        self.repo_name = repo_name
        self.debug_mode = debug_mode
        self.shell_executor = shell_executor or ShellExecutor(debug_mode=debug_mode)

    @property
    def db_file(self) -> Path:
        """Path handed to repo-add/repo-remove"""
        return self.repo_dir / f"{self.repo_name}.db.tar.gz"

    def find_database(self) -> Optional[Path]:
        for suffix in DB_SUFFIXES:
            candidate = self.repo_dir / f"{self.repo_name}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def package_files(self) -> List[Path]:
        """Built artifacts in the repository directory (signatures excluded)"""
        if not self.repo_dir.is_dir():
            return []
        return sorted(p for p in self.repo_dir.iterdir() if p.is_file() and is_package_file(p))

    def list_package_names(self) -> List[str]:
        """
        Sorted unique package names listed in the repository database.

        Raises:
            LoadError: database missing or unreadable
        """
        db = self.find_database()
        if db is None:
            raise LoadError(f"Repository database not found: {self.db_file}")

        names = set()
        try:
            with tarfile.open(db, 'r:*') as archive:
                for member in archive.getmembers():
                    if not member.isfile() or not member.name.endswith('/desc'):
                        continue
                    handle = archive.extractfile(member)
                    if handle is None:
                        continue
                    lines = handle.read().decode('utf-8', errors='replace').splitlines()
                    for i, line in enumerate(lines[:-1]):
                        if line.strip() == '%NAME%':
                            names.add(lines[i + 1].strip())
                            break
        except (tarfile.TarError, OSError) as e:
            raise LoadError(f"Could not read repository database {db}: {e}") from e

        names.discard('')
        return sorted(names)

    def generate_database(self) -> bool:
        """Regenerate the database from every package file in the repository"""
        logger.info(f"Generating database for {self.repo_name}")

        for suffix in ('.db', '.db.tar.gz', '.files', '.files.tar.gz'):
            old = self.repo_dir / f"{self.repo_name}{suffix}"
            if old.exists() or old.is_symlink():
                old.unlink()

        packages = self.package_files()
        if not packages:
            logger.warning(f"No package files in {self.repo_dir}; database not generated")
            return True

        cmd = ["repo-add", str(self.db_file)] + [str(p) for p in packages]
        try:
            result = self.shell_executor.run_command(cmd, cwd=self.repo_dir, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"repo-add could not run: {e}")
            return False

        if result.returncode == 0:
            logger.info("✅ Database created successfully")
            return True

        logger.error(f"repo-add failed: {result.stderr}")
        return False

    def remove_packages(self, names: Sequence[str]) -> bool:
        """Drop package entries from the database with repo-remove"""
        if not names:
            return True

        cmd = ["repo-remove", str(self.db_file)] + list(names)
        try:
            result = self.shell_executor.run_command(cmd, cwd=self.repo_dir, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"repo-remove could not run: {e}")
            return False

        if result.returncode != 0:
            logger.error(f"repo-remove failed: {result.stderr}")
            return False

        logger.info(f"REPO_REMOVED names={','.join(names)}")
        return True
