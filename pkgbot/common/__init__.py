"""
Common modules: configuration, logging, errors, shell execution, locking, prompts
"""

from .config_loader import ConfigLoader, load_config
from .errors import (
    PkgBotError, LoadError, FetchError, NoMatchError, BuildError,
    InstallError, ValidationError, LockError, PromptAborted,
)
from .logging_utils import setup_logging, ColorFormatter
from .prompt import ConfirmationPrompt, PromptState
from .run_lock import RunLock
from .shell_executor import ShellExecutor

__all__ = [
    'ConfigLoader',
    'load_config',
    'PkgBotError',
    'LoadError',
    'FetchError',
    'NoMatchError',
    'BuildError',
    'InstallError',
    'ValidationError',
    'LockError',
    'PromptAborted',
    'setup_logging',
    'ColorFormatter',
    'ConfirmationPrompt',
    'PromptState',
    'RunLock',
    'ShellExecutor',
]
