"""
Error taxonomy shared by all pkgbot modules
"""


class PkgBotError(Exception):
    """Base class for every error raised by pkgbot"""


class LoadError(PkgBotError):
    """Feed registry or configuration file is unreadable or malformed (fatal)"""


class FetchError(PkgBotError):
    """Upstream version could not be fetched or parsed for one package"""


class NoMatchError(PkgBotError):
    """A per-package versionRegex did not match the fetched tag"""


class BuildError(PkgBotError):
    """makepkg (or a build preparation step) failed for one recipe"""


class InstallError(PkgBotError):
    """pacman failed to install artifacts for one recipe"""


class ValidationError(PkgBotError):
    """A registered package is missing its directory or PKGBUILD"""


class LockError(PkgBotError):
    """Another run holds the lock, or the lock cannot be managed"""


class PromptAborted(PkgBotError):
    """Operator chose to quit at a confirmation prompt"""
