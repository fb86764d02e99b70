"""
Command line interface

    pkgbot [--config PATH] [--debug] COMMAND

Commands: update, install-updates, cleanup, versions, unlock.
Exit codes: 0 success, 1 any item failed or a fatal error, 130 interrupted.
"""

import os
import sys
import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import click
import requests

from pkgbot.build.local_builder import LocalBuilder
from pkgbot.build.pacman_client import PacmanClient
from pkgbot.build.version_manager import VersionComparator
from pkgbot.common.config_loader import load_config
from pkgbot.common.errors import PkgBotError
from pkgbot.common.logging_utils import setup_logging
from pkgbot.common.prompt import ConfirmationPrompt
from pkgbot.common.run_lock import RunLock
from pkgbot.common.shell_executor import ShellExecutor
from pkgbot.feeds.http_client import FeedHttpClient
from pkgbot.feeds.registry import FeedRegistry
from pkgbot.feeds.version_fetcher import VersionFetcher
from pkgbot.orchestrator.reconciler import Reconciler
from pkgbot.orchestrator.state import BuildState
from pkgbot.orchestrator.update_runner import UpdateOptions, UpdateRunner
from pkgbot.repo.cleanup_manager import MODE_BOTH, MODE_OLD_VERSIONS, MODE_ORPHANS, CleanupManager
from pkgbot.repo.database_manager import DatabaseManager

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

EXIT_INTERRUPTED = 130


@dataclass
class CliContext:
    """Collaborators shared by every command; tests pass their own via ``obj``"""
    config_file: Optional[str] = None
    debug: bool = False
    session: Optional[requests.Session] = None
    shell_executor: Optional[ShellExecutor] = None
    reader: Optional[Callable[[str], str]] = None
    interactive: Optional[bool] = None
    euid: Callable[[], int] = os.geteuid

    def settings(self, **overrides) -> Dict[str, Any]:
        root = overrides.pop('root', None)
        settings = load_config(root=root, config_file=self.config_file, **overrides)
        if settings.get('debug_mode') and not self.debug:
            self.debug = True
            setup_logging(debug_mode=True)
        return settings

    def shell(self) -> ShellExecutor:
        if self.shell_executor is None:
            self.shell_executor = ShellExecutor(debug_mode=self.debug)
        return self.shell_executor

    def is_interactive(self) -> bool:
        if self.interactive is not None:
            return self.interactive
        return sys.stdin.isatty() and sys.stdout.isatty()

    def fetcher(self, settings: Dict[str, Any]) -> VersionFetcher:
        http = FeedHttpClient(
            timeout=settings['fetch_timeout'],
            user_agent=settings['user_agent'],
            github_token=settings.get('github_token'),
            session=self.session,
        )
        comparator = VersionComparator(settings['comparator'], shell_executor=self.shell())
        return VersionFetcher(http, comparator=comparator)


def _load_registry(settings: Dict[str, Any]) -> FeedRegistry:
    return FeedRegistry.load(settings['feeds_json'])


def _lock(settings: Dict[str, Any], purpose: str, dry_run: bool):
    """Mutating runs hold the root lock; dry runs never touch it"""
    if dry_run:
        return nullcontext()
    return RunLock(settings['lock_dir'], purpose)


def _warn_if_degraded(comparator: VersionComparator):
    if comparator.degraded:
        logger.warning("⚠️ vercmp was unavailable; some versions were compared lexically")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="pkgbot")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None,
              help="YAML settings file (default: <root>/pkgbot.yaml or $PKGBOT_CONFIG).")
@click.option("--debug", is_flag=True, help="Verbose logging.")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], debug: bool) -> None:
    """Track upstream versions of PKGBUILD recipes and reconcile installed packages."""
    if ctx.obj is None:
        ctx.obj = CliContext()
    if config_file:
        ctx.obj.config_file = config_file
    ctx.obj.debug = ctx.obj.debug or debug
    setup_logging(debug_mode=ctx.obj.debug)


@cli.command("update")
@click.option("--feeds", type=click.Path(dir_okay=False), default=None, help="Path to feeds.json.")
@click.option("--root", type=click.Path(file_okay=False), default=None, help="Root of package directories.")
@click.option("--dry-run", is_flag=True, help="Print the status table only; change nothing.")
@click.option("--list", "list_only", is_flag=True, help="List registered package names and exit.")
@click.option("--no-build", is_flag=True, help="Bump PKGBUILDs and checksums but do not build.")
@click.option("--build-only", is_flag=True, help="Skip version bumps; only build.")
@click.option("--clean", is_flag=True, help="Remove src/, pkg/ and old artifacts before building.")
@click.option("--strict", is_flag=True, help="Fail when a registered package lacks its directory or PKGBUILD.")
@click.option("--json", "json_output", is_flag=True, help="Print one JSON document instead of the table.")
@click.option("--jobs", type=click.IntRange(min=1), default=None, help="Parallel upstream fetches.")
@click.argument("packages", nargs=-1)
@click.pass_obj
def update_cmd(obj: CliContext, feeds, root, dry_run, list_only, no_build, build_only, clean,
               strict, json_output, jobs, packages) -> None:
    """Compare PKGBUILD versions with upstream; bump and build the outdated ones."""
    if no_build and build_only:
        raise click.UsageError("--no-build and --build-only are mutually exclusive.")

    ctx = click.get_current_context()
    try:
        settings = obj.settings(root=root, feeds_json=feeds, jobs=jobs)
        registry = _load_registry(settings)

        if list_only:
            for name in sorted(registry.list_names()):
                click.echo(name)
            return

        fetcher = obj.fetcher(settings)
        options = UpdateOptions(
            dry_run=dry_run,
            no_build=no_build,
            build_only=build_only,
            clean=clean,
            strict=strict,
            json_output=json_output,
            jobs=settings['jobs'],
        )
        runner = UpdateRunner(
            registry,
            settings['root'],
            fetcher,
            LocalBuilder(obj.shell(), debug_mode=obj.debug),
            options=options,
            report=BuildState(settings.get('report_file')),
            out=click.echo,
        )

        with _lock(settings, "update", dry_run):
            tracker = runner.run(packages)
    except PkgBotError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        ctx.exit(EXIT_INTERRUPTED)

    _warn_if_degraded(fetcher.comparator)
    ctx.exit(tracker.exit_code())


@cli.command("install-updates")
@click.option("--root", type=click.Path(file_okay=False), default=None, help="Root of package directories.")
@click.option("--dry-run", is_flag=True, help="Report what would happen; do nothing.")
@click.option("--clean", is_flag=True, help="Remove src/, pkg/ and old artifacts before building.")
@click.option("--include-vcs", is_flag=True, help="Include *-git/*-hg/*-svn/*-bzr packages.")
@click.option("--no-prompt", is_flag=True, help="Never prompt (non-interactive).")
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Assume yes for all prompts.")
@click.argument("dirs", nargs=-1)
@click.pass_obj
def install_updates_cmd(obj: CliContext, root, dry_run, clean, include_vcs, no_prompt, assume_yes, dirs) -> None:
    """Install or build+install recipes that are newer than the installed packages."""
    if obj.euid() == 0:
        raise click.ClickException("Do not run this command as root.")

    ctx = click.get_current_context()
    try:
        settings = obj.settings(root=root)
        interactive = obj.is_interactive() and not no_prompt and not assume_yes
        comparator = VersionComparator(settings['comparator'], shell_executor=obj.shell())
        reconciler = Reconciler(
            settings['root'],
            builder=LocalBuilder(obj.shell(), debug_mode=obj.debug),
            pacman=PacmanClient(obj.shell()),
            comparator=comparator,
            prompt=ConfirmationPrompt(interactive=interactive, reader=obj.reader),
            dry_run=dry_run,
            include_vcs=include_vcs,
            clean=clean,
            out=click.echo,
        )

        logger.info(f"Root: {settings['root']}")
        with _lock(settings, "install-updates", dry_run):
            reconciler.run(dirs)
    except PkgBotError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        ctx.exit(EXIT_INTERRUPTED)

    _warn_if_degraded(comparator)
    ctx.exit(reconciler.exit_code())


@cli.command("cleanup")
@click.option("--repo-dir", type=click.Path(file_okay=False), default=None, help="Local repository directory.")
@click.option("--repo-name", default=None, help="Repository database name.")
@click.option("--auto", is_flag=True, help="Non-interactive mode.")
@click.option("--keep-n", type=click.IntRange(min=0), default=None, help="Keep N most recent versions.")
@click.option("--orphans-only", is_flag=True, help="Only remove packages not in feeds.json.")
@click.option("--old-versions-only", is_flag=True, help="Only remove old versions.")
@click.option("--dry-run", is_flag=True, help="Show what would be removed.")
@click.pass_obj
def cleanup_cmd(obj: CliContext, repo_dir, repo_name, auto, keep_n, orphans_only, old_versions_only, dry_run) -> None:
    """Remove old package versions and orphaned packages from the local repository."""
    if orphans_only and old_versions_only:
        raise click.UsageError("--orphans-only and --old-versions-only are mutually exclusive.")

    mode = MODE_ORPHANS if orphans_only else MODE_OLD_VERSIONS if old_versions_only else MODE_BOTH

    ctx = click.get_current_context()
    try:
        settings = obj.settings(repo_dir=repo_dir, repo_name=repo_name, keep_n=keep_n)
        registry = _load_registry(settings)
        database = DatabaseManager(settings['repo_dir'], settings['repo_name'], obj.shell(), obj.debug)
        prompt = ConfirmationPrompt(interactive=obj.is_interactive() and not auto,
                                    reader=obj.reader, default_yes=False)
        manager = CleanupManager(database, registry, prompt=prompt, keep_n=settings['keep_n'],
                                 dry_run=dry_run, out=click.echo)

        with _lock(settings, "cleanup", dry_run):
            tracker = manager.run(mode)
    except PkgBotError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        ctx.exit(EXIT_INTERRUPTED)

    ctx.exit(tracker.exit_code())


@cli.command("versions")
@click.option("--feeds", type=click.Path(dir_okay=False), default=None, help="Path to feeds.json.")
@click.option("--jobs", type=click.IntRange(min=1), default=None, help="Parallel upstream fetches.")
@click.pass_obj
def versions_cmd(obj: CliContext, feeds, jobs) -> None:
    """Print the latest upstream version of every registered package."""
    try:
        settings = obj.settings(feeds_json=feeds, jobs=jobs)
        registry = _load_registry(settings)
    except PkgBotError as e:
        raise click.ClickException(str(e)) from e

    ctx = click.get_current_context()
    fetcher = obj.fetcher(settings)
    try:
        results = fetcher.fetch_all(registry.descriptors(), settings['jobs'])
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        ctx.exit(EXIT_INTERRUPTED)

    for result in results:
        if not result.ok:
            click.echo(f"{result.name}: ERROR")
        else:
            click.echo(f"{result.name}: {result.version or 'n/a'}")

    ctx.exit(1 if any(not result.ok for result in results) else 0)


@cli.command("unlock")
@click.option("--root", type=click.Path(file_okay=False), default=None, help="Root of package directories.")
@click.option("--force", is_flag=True, help="Remove the lock even if its owner still runs.")
@click.pass_obj
def unlock_cmd(obj: CliContext, root, force) -> None:
    """Remove a stale run lock."""
    try:
        settings = obj.settings(root=root)
        removed = RunLock(settings['lock_dir']).break_lock(force=force)
    except PkgBotError as e:
        raise click.ClickException(str(e)) from e

    if removed:
        click.echo(f"Removed lock {settings['lock_dir']}")
    else:
        click.echo("No lock present.")
