"""
Feed Registry Module - Loads feeds.json, the single source of truth for upstream feeds

Two schema shapes are supported:

schemaVersion 1 (legacy)::

    {"packages": [{"name": "github-cli", "feed": {"type": "github-release", "repo": "cli/cli"}}]}

schemaVersion 2 (current)::

    {"schemaVersion": 2, "packages": [{"name": "github-cli", "type": "github-release", "repo": "cli/cli"}]}

Consumers only ever call get_field()/descriptor() and never see which shape is in effect.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pkgbot.common.errors import LoadError

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMAS = (1, 2)

FEED_FIELDS = ('type', 'repo', 'channel', 'url', 'tagRegex', 'versionRegex', 'versionFormat')

CHANNELS = ('stable', 'any', 'prerelease')

# Vendor-specific upstream shapes, one adapter each in vendor_adapters.py
VENDOR_TYPES = (
    "chrome",
    "edge",
    "vscode",
    "1password-cli2",
    "1password-linux-stable",
    "lmstudio",
)

KNOWN_TYPES = ("github-release", "github-release-filtered", "github-tags-filtered", "vcs", "manual") + VENDOR_TYPES


@dataclass(frozen=True)
class FeedDescriptor:
    """How to discover one package's latest upstream version"""
    name: str
    schema_version: int
    type: str = ""
    repo: str = ""
    channel: str = "stable"
    url: str = ""
    tag_regex: str = ""
    version_regex: str = ""
    version_format: str = ""

    @property
    def is_manual(self) -> bool:
        """Empty and unknown types are handled like manual ones"""
        return self.type == "manual" or self.type not in KNOWN_TYPES


class FeedRegistry:
    """Immutable snapshot of feeds.json, loaded once per run"""

    def __init__(self, path: Path, schema_version: int, packages: List[Dict[str, Any]]):
        self.path = path
        self.schema_version = schema_version
        self._packages: Dict[str, Dict[str, Any]] = {}
        self._order: Tuple[str, ...] = ()

        order = []
        for index, entry in enumerate(packages):
            if not isinstance(entry, dict):
                raise LoadError(f"{path}: packages[{index}] is not an object")
            name = entry.get('name')
            if not isinstance(name, str) or not name.strip():
                raise LoadError(f"{path}: packages[{index}] has no name")
            if name in self._packages:
                raise LoadError(f"{path}: duplicate package name '{name}'")
            if schema_version == 1 and 'feed' in entry and not isinstance(entry['feed'], dict):
                raise LoadError(f"{path}: package '{name}' has a non-object 'feed'")
            self._packages[name] = entry
            order.append(name)

        self._order = tuple(order)
        self._descriptors = {name: self._build_descriptor(name) for name in self._order}

    @classmethod
    def load(cls, path) -> "FeedRegistry":
        """
        Load and validate a feeds.json file.

        Raises:
            LoadError: unreadable file, invalid JSON, or structurally invalid content
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise LoadError(f"feeds.json not found: {path}") from e
        except OSError as e:
            raise LoadError(f"Cannot read {path}: {e}") from e
        except ValueError as e:
            raise LoadError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise LoadError(f"{path}: top level must be an object")

        schema_version = data.get('schemaVersion', 1)
        if schema_version is None:
            schema_version = 1
        if isinstance(schema_version, str) and schema_version.isdigit():
            schema_version = int(schema_version)
        if schema_version not in SUPPORTED_SCHEMAS:
            raise LoadError(f"{path}: unsupported schemaVersion {schema_version!r}")

        packages = data.get('packages', [])
        if packages is None:
            packages = []
        if not isinstance(packages, list):
            raise LoadError(f"{path}: 'packages' must be a list")

        registry = cls(path, schema_version, packages)
        logger.debug(f"FEEDS_LOADED path={path} schema={schema_version} packages={len(registry)}")
        return registry

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def has(self, name: str) -> bool:
        return name in self._packages

    def list_names(self) -> List[str]:
        """Package names in registry order"""
        return list(self._order)

    def get_field(self, name: str, field: str) -> str:
        """
        Read one feed field for a package regardless of schema shape.
        Absent packages, absent fields and nulls all read as "".
        """
        entry = self._packages.get(name)
        if entry is None:
            return ""

        if self.schema_version == 1:
            source = entry.get('feed') or {}
        else:
            source = entry

        value = source.get(field)
        if value is None:
            return ""
        return str(value)

    def _build_descriptor(self, name: str) -> FeedDescriptor:
        # Vendor adapters have their own channel names (chrome "canary"), so the
        # value is kept as written; GitHub strategies read unknown channels as "any"
        channel = self.get_field(name, 'channel') or "stable"
        if channel not in CHANNELS:
            logger.debug(f"Non-GitHub channel '{channel}' for {name}")

        return FeedDescriptor(
            name=name,
            schema_version=self.schema_version,
            type=self.get_field(name, 'type'),
            repo=self.get_field(name, 'repo'),
            channel=channel,
            url=self.get_field(name, 'url'),
            tag_regex=self.get_field(name, 'tagRegex'),
            version_regex=self.get_field(name, 'versionRegex'),
            version_format=self.get_field(name, 'versionFormat'),
        )

    def descriptor(self, name: str) -> FeedDescriptor:
        """Raises KeyError for unknown names"""
        return self._descriptors[name]

    def descriptors(self) -> List[FeedDescriptor]:
        return [self._descriptors[name] for name in self._order]
