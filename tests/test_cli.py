import json
import logging
import os
import socket

import pytest
from click.testing import CliRunner

from pkgbot.build.pkgbuild import read_pkgver
from pkgbot.cli import CliContext, cli
from tests.fakes.http import FakeSession
from tests.fakes.shell import FakeShell
from tests.test_database_manager import write_repo_db

API = "https://api.github.com/repos"


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # CliRunner's captured stderr is closed once invoke returns
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def workspace(tmp_path, write_feeds, make_recipe):
    write_feeds([
        {"name": "zeta", "type": "github-release", "repo": "o/zeta"},
        {"name": "alpha", "type": "manual"},
    ])
    make_recipe("zeta", "1.0.0")
    make_recipe("alpha", "0.1")
    return tmp_path


@pytest.fixture
def session():
    session = FakeSession()
    session.add_json(f"{API}/o/zeta/releases/latest", {"tag_name": "v1.2.0"})
    return session


def invoke(args, session=None, shell=None, euid=1000, reader=None):
    obj = CliContext(
        session=session or FakeSession(),
        shell_executor=shell or FakeShell(),
        reader=reader,
        interactive=reader is not None,
        euid=lambda: euid,
    )
    return CliRunner().invoke(cli, args, obj=obj)


def test_update_list_prints_sorted_names(workspace):
    result = invoke(["update", "--root", str(workspace), "--list"])
    assert result.exit_code == 0
    assert "alpha\nzeta\n" in result.output


def test_update_dry_run_prints_table(workspace, session):
    result = invoke(["update", "--root", str(workspace), "--dry-run"], session=session)

    assert result.exit_code == 0
    assert "PACKAGE" in result.output
    zeta = next(line for line in result.output.splitlines() if line.startswith("zeta "))
    assert zeta.split() == ["zeta", "1.0.0", "1.2.0", "UPDATE"]
    assert read_pkgver(workspace / "zeta" / "PKGBUILD") == "1.0.0"
    assert not (workspace / ".pkgbot.lock").exists()


def test_update_no_build_bumps_and_releases_lock(workspace, session):
    shell = FakeShell()
    result = invoke(["update", "--root", str(workspace), "--no-build", "zeta"], session=session, shell=shell)

    assert result.exit_code == 0
    assert read_pkgver(workspace / "zeta" / "PKGBUILD") == "1.2.0"
    assert shell.commands("updpkgsums") == [["updpkgsums"]]
    assert shell.commands("makepkg") == []
    assert not (workspace / ".pkgbot.lock").exists()


def test_update_json_output(workspace, session):
    result = invoke(["update", "--root", str(workspace), "--dry-run", "--json"], session=session)

    assert result.exit_code == 0
    start = result.output.index('{\n  "packages"')
    document, _ = json.JSONDecoder().raw_decode(result.output[start:])
    statuses = {row["name"]: row["status"] for row in document["packages"]}
    assert statuses == {"zeta": "UPDATE", "alpha": "MANUAL"}
    assert document["summary"]["checked"] == 2


def test_update_build_failure_exits_one(workspace, session):
    shell = FakeShell()
    shell.script(["makepkg"], returncode=1)

    result = invoke(["update", "--root", str(workspace), "zeta"], session=session, shell=shell)

    assert result.exit_code == 1
    assert read_pkgver(workspace / "zeta" / "PKGBUILD") == "1.0.0"


def test_update_refuses_when_locked(workspace, session):
    lock = workspace / ".pkgbot.lock"
    lock.mkdir()
    (lock / "owner.json").write_text(json.dumps({"pid": os.getpid(), "host": socket.gethostname()}))

    result = invoke(["update", "--root", str(workspace), "--no-build"], session=session)

    assert result.exit_code == 1
    assert "pkgbot unlock" in result.output
    assert read_pkgver(workspace / "zeta" / "PKGBUILD") == "1.0.0"


def test_update_missing_registry_is_fatal(tmp_path):
    result = invoke(["update", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "feeds.json not found" in result.output


def test_update_conflicting_flags(workspace):
    result = invoke(["update", "--root", str(workspace), "--no-build", "--build-only"])
    assert result.exit_code == 2


def test_versions_command(workspace, session, monkeypatch):
    monkeypatch.setenv("PKGBOT_ROOT", str(workspace))

    result = invoke(["versions"], session=session)

    assert result.exit_code == 0
    assert "zeta: 1.2.0" in result.output
    assert "alpha: n/a" in result.output


def test_versions_fetch_error_exits_one(workspace, monkeypatch):
    monkeypatch.setenv("PKGBOT_ROOT", str(workspace))
    result = invoke(["versions"], session=FakeSession())
    assert result.exit_code == 1
    assert "zeta: ERROR" in result.output
    assert "alpha: n/a" in result.output


def test_install_updates_refuses_root(workspace):
    result = invoke(["install-updates", "--root", str(workspace)], euid=0)
    assert result.exit_code == 1
    assert "Do not run this command as root" in result.output


def test_install_updates_without_recipes(tmp_path):
    result = invoke(["install-updates", "--root", str(tmp_path), "--no-prompt"])
    assert result.exit_code == 0
    assert "Checked: 0 | Updated/acted: 0 | Failed: 0" in result.output


def test_install_updates_quit_exits_one(workspace):
    shell = FakeShell()
    shell.script(["makepkg", "--printsrcinfo"], stdout="pkgbase = zeta\n\tpkgver = 1.2.0\n\tpkgrel = 1\npkgname = zeta\n")
    shell.script(["pacman", "-Q"], stdout="zeta 1.0.0-1\n")

    result = invoke(["install-updates", "--root", str(workspace), "zeta"], shell=shell, reader=lambda _: "q")

    assert result.exit_code == 1
    assert shell.commands("sudo") == []


def test_cleanup_dry_run(tmp_path, write_feeds, monkeypatch):
    write_feeds([{"name": "keep", "type": "manual"}])
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "gone-1.0-1-any.pkg.tar.zst").write_bytes(b"x")
    write_repo_db(repo / "local.db.tar.gz", [("keep", "1.0-1"), ("gone", "1.0-1")])
    monkeypatch.setenv("PKGBOT_ROOT", str(tmp_path))
    shell = FakeShell()

    result = invoke(["cleanup", "--repo-dir", str(repo), "--repo-name", "local", "--auto", "--dry-run"], shell=shell)

    assert result.exit_code == 0
    assert "  - gone" in result.output
    assert (repo / "gone-1.0-1-any.pkg.tar.zst").exists()
    assert shell.calls == []


def test_cleanup_conflicting_modes(tmp_path):
    result = invoke(["cleanup", "--orphans-only", "--old-versions-only"])
    assert result.exit_code == 2


def test_unlock(tmp_path):
    result = invoke(["unlock", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert "No lock present." in result.output

    lock = tmp_path / ".pkgbot.lock"
    lock.mkdir()
    (lock / "owner.json").write_text(json.dumps({"pid": os.getpid(), "host": socket.gethostname()}))

    result = invoke(["unlock", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert lock.exists()

    result = invoke(["unlock", "--root", str(tmp_path), "--force"])
    assert result.exit_code == 0
    assert not lock.exists()
