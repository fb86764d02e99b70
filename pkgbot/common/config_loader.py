"""
Config Loader Module - Handles configuration loading and validation

Precedence (lowest to highest):
1. pkgbot.config defaults
2. YAML settings file (pkgbot.yaml in the root, $PKGBOT_CONFIG, or explicit path)
3. Environment variables
4. Explicit overrides passed by the caller (CLI flags)
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pkgbot import config as config_module
from pkgbot.common.errors import LoadError

logger = logging.getLogger(__name__)


YAML_KEYS = {
    'feeds_json', 'root', 'repo_dir', 'repo_name', 'keep_n',
    'fetch_timeout', 'user_agent', 'report_file', 'comparator', 'jobs',
}


class ConfigLoader:
    """Handles configuration loading and validation"""

    @staticmethod
    def _is_valid_root(path: Path) -> bool:
        """
        A package root holds the feed registry, a settings file, or is a git checkout.
        """
        if not path or not path.is_dir():
            return False

        if (path / config_module.FEEDS_JSON_NAME).exists():
            return True
        if (path / config_module.CONFIG_FILE_NAME).exists():
            return True
        if (path / ".git").exists():
            return True

        return False

    @staticmethod
    def get_root(explicit: Optional[str] = None) -> Path:
        """
        Resolve the package root directory.

        Resolution order:
        1. Explicit path (CLI flag), used as-is
        2. PKGBOT_ROOT environment variable (if the path exists)
        3. Current working directory if it passes validation
        4. Current working directory (logged as unvalidated)
        """
        if explicit:
            root = Path(explicit).expanduser().resolve()
            logger.debug(f"ROOT_RESOLVED method=EXPLICIT path={root}")
            return root

        env_root = os.getenv('PKGBOT_ROOT')
        if env_root:
            candidate = Path(env_root).expanduser()
            if candidate.is_dir():
                logger.debug(f"ROOT_RESOLVED method=PKGBOT_ROOT path={candidate}")
                return candidate.resolve()
            logger.warning(f"PKGBOT_ROOT does not exist, ignoring: {candidate}")

        candidate = Path.cwd()
        if ConfigLoader._is_valid_root(candidate):
            logger.debug(f"ROOT_RESOLVED method=CWD path={candidate}")
        else:
            logger.debug(f"ROOT_UNVALIDATED method=CWD path={candidate}")
        return candidate

    @staticmethod
    def load_from_python_config() -> Dict[str, Any]:
        """Defaults from pkgbot.config"""
        return {
            'feeds_json': config_module.FEEDS_JSON_NAME,
            'repo_dir': config_module.REPO_DIR,
            'repo_name': config_module.REPO_DB_NAME,
            'keep_n': config_module.KEEP_N,
            'fetch_timeout': config_module.FETCH_TIMEOUT,
            'user_agent': config_module.USER_AGENT,
            'comparator': config_module.COMPARATOR_BACKEND,
            'jobs': config_module.FETCH_JOBS,
            'report_file': None,
            'github_token': None,
            'debug_mode': False,
        }

    @staticmethod
    def load_from_yaml(path: Path) -> Dict[str, Any]:
        """Load the optional YAML settings file. Unknown keys are ignored with a warning."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise LoadError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise LoadError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise LoadError(f"Config file {path} must contain a mapping")

        settings = {}
        for key, value in data.items():
            if key in YAML_KEYS:
                settings[key] = value
            else:
                logger.warning(f"Unknown config key '{key}' in {path}, ignoring")

        logger.info(f"CONFIG_FILE_LOADED path={path} keys={len(settings)}")
        return settings

    @staticmethod
    def load_environment_config() -> Dict[str, Any]:
        """Load configuration from environment variables (unset values are skipped)"""
        env = {
            'feeds_json': os.getenv('PKGBOT_FEEDS'),
            'repo_dir': os.getenv('PKGBOT_REPO_DIR'),
            'repo_name': os.getenv('PKGBOT_REPO_NAME'),
            'github_token': os.getenv('GITHUB_TOKEN'),
        }
        settings = {key: value for key, value in env.items() if value}

        if os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes'):
            settings['debug_mode'] = True

        return settings


def _find_config_file(root: Path, config_file: Optional[str]) -> Optional[Path]:
    if config_file:
        return Path(config_file).expanduser()

    env_file = os.getenv('PKGBOT_CONFIG')
    if env_file:
        return Path(env_file).expanduser()

    candidate = root / config_module.CONFIG_FILE_NAME
    if candidate.exists():
        return candidate

    return None


def load_config(root: Optional[str] = None, config_file: Optional[str] = None,
                **overrides) -> Dict[str, Any]:
    """
    Build the run configuration dictionary.

    Args:
        root: Package root (defaults to PKGBOT_ROOT or the current directory)
        config_file: Explicit YAML settings path
        overrides: CLI values; None values are ignored

    Returns:
        Dictionary with resolved Path values for root, feeds_json, repo_dir, lock_dir
    """
    settings = ConfigLoader.load_from_python_config()

    # A YAML "root" only applies when nothing more specific was given
    yaml_root = None
    probe_root = ConfigLoader.get_root(root)
    yaml_path = _find_config_file(probe_root, config_file)
    if yaml_path is not None:
        if not yaml_path.exists():
            raise LoadError(f"Config file not found: {yaml_path}")
        yaml_settings = ConfigLoader.load_from_yaml(yaml_path)
        yaml_root = yaml_settings.pop('root', None)
        settings.update(yaml_settings)

    settings.update(ConfigLoader.load_environment_config())
    settings.update({key: value for key, value in overrides.items() if value is not None})

    if root is None and not os.getenv('PKGBOT_ROOT') and yaml_root:
        resolved_root = Path(yaml_root).expanduser().resolve()
    else:
        resolved_root = probe_root
    settings['root'] = resolved_root

    for key in ('feeds_json', 'repo_dir', 'report_file'):
        value = settings.get(key)
        if value:
            path = Path(value).expanduser()
            settings[key] = path if path.is_absolute() else resolved_root / path

    settings['lock_dir'] = resolved_root / config_module.LOCK_NAME

    try:
        settings['keep_n'] = int(settings['keep_n'])
        settings['fetch_timeout'] = float(settings['fetch_timeout'])
        settings['jobs'] = max(1, int(settings['jobs']))
    except (TypeError, ValueError) as e:
        raise LoadError(f"Invalid numeric setting: {e}") from e

    if settings['keep_n'] < 0:
        raise LoadError("keep_n must not be negative")

    if settings['comparator'] not in ('builtin', 'vercmp'):
        raise LoadError(f"Unknown comparator backend: {settings['comparator']}")

    logger.debug(f"CONFIG_RESOLVED root={resolved_root} feeds={settings['feeds_json']}")
    return settings
