import json
from pathlib import Path

import pytest

from tests.fakes.http import FakeSession
from tests.fakes.shell import FakeShell


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_shell() -> FakeShell:
    return FakeShell()


@pytest.fixture
def write_feeds(tmp_path):
    """Write a feeds.json into tmp_path and return its path"""

    def _write(packages, schema_version=2, path: Path = None) -> Path:
        path = path or tmp_path / "feeds.json"
        data = {"packages": packages}
        if schema_version is not None:
            data["schemaVersion"] = schema_version
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_recipe(tmp_path):
    """Create <tmp_path>/<name>/PKGBUILD with the given pkgver"""

    def _make(name: str, pkgver: str = "1.0.0", pkgrel: str = "3") -> Path:
        pkg_dir = tmp_path / name
        pkg_dir.mkdir(parents=True, exist_ok=True)
        (pkg_dir / "PKGBUILD").write_text(
            f"pkgname={name}\npkgver={pkgver}\npkgrel={pkgrel}\narch=('x86_64')\n"
            "source=(\"https://example.invalid/$pkgname-$pkgver.tar.gz\")\n",
            encoding="utf-8",
        )
        return pkg_dir

    return _make


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config resolution"""
    for var in ("PKGBOT_ROOT", "PKGBOT_FEEDS", "PKGBOT_REPO_DIR", "PKGBOT_REPO_NAME",
                "PKGBOT_CONFIG", "GITHUB_TOKEN", "DEBUG"):
        monkeypatch.delenv(var, raising=False)
