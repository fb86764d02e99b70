"""
Version Fetcher Module - Resolves the latest upstream version for each feed

resolve() never raises for a single package: network errors, malformed
payloads and non-matching extraction rules all come back as a FetchResult
carrying the error, so one bad feed cannot stop its siblings.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pkgbot.build.version_manager import VersionComparator
from pkgbot.build.version_normalizer import extract, extract_or_raw, normalize
from pkgbot.common.errors import FetchError, NoMatchError
from pkgbot.feeds.github_client import GitHubClient
from pkgbot.feeds.http_client import FeedHttpClient
from pkgbot.feeds.registry import FeedDescriptor
from pkgbot.feeds.strategies import (
    GithubRelease, GithubReleaseFiltered, GithubTagsFiltered, Manual, Vcs, VendorAdapter,
    strategy_for,
)
from pkgbot.feeds.vendor_adapters import get_adapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    name: str
    version: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class VersionFetcher:
    """Dispatches each descriptor to its strategy"""

    def __init__(self, http: FeedHttpClient, comparator: Optional[VersionComparator] = None,
                 github: Optional[GitHubClient] = None):
        self.http = http
        self.github = github or GitHubClient(http)
        self.comparator = comparator or VersionComparator()

    def _release_version(self, tag: str, version_regex: str, version_format: str) -> str:
        return extract_or_raw(normalize(tag), version_regex, version_format)

    def _tags_version(self, strategy: GithubTagsFiltered) -> str:
        candidates = []
        for tag in self.github.tag_names(strategy.repo, strategy.tag_regex):
            raw = normalize(tag)
            try:
                candidates.append(extract(raw, strategy.version_regex, strategy.version_format))
            except NoMatchError:
                logger.debug(f"TAG_SKIPPED repo={strategy.repo} tag={tag}")

        # Tags are not assumed to arrive sorted
        best = self.comparator.pick_max(candidates)
        if not best:
            raise FetchError(f"No usable tags for {strategy.repo}")
        return best

    def fetch_version(self, descriptor: FeedDescriptor) -> str:
        """
        Raw-to-final version for one descriptor; "" for manual feeds and
        repo-less VCS feeds.

        Raises:
            FetchError, NoMatchError
        """
        strategy = strategy_for(descriptor)

        if isinstance(strategy, GithubRelease):
            tag = self.github.latest_release_tag(strategy.repo, strategy.channel)
            return self._release_version(tag, strategy.version_regex, strategy.version_format)

        if isinstance(strategy, GithubReleaseFiltered):
            tag = self.github.latest_release_tag_filtered(strategy.repo, strategy.tag_regex, strategy.channel)
            return self._release_version(tag, strategy.version_regex, strategy.version_format)

        if isinstance(strategy, GithubTagsFiltered):
            return self._tags_version(strategy)

        if isinstance(strategy, Vcs):
            if not strategy.repo:
                return ""
            tag = self.github.latest_release_tag(strategy.repo, "stable")
            return self._release_version(tag, strategy.version_regex, strategy.version_format)

        if isinstance(strategy, VendorAdapter):
            adapter = get_adapter(strategy.name)
            if adapter is None:
                raise FetchError(f"No adapter registered for '{strategy.name}'")
            return adapter(self.http, self.github, strategy.url, strategy.channel).strip()

        if isinstance(strategy, Manual):
            return ""

        raise TypeError(f"Unhandled fetch strategy: {strategy!r}")

    def resolve(self, descriptor: FeedDescriptor) -> FetchResult:
        """Fetch one package, converting every per-package failure into the result"""
        try:
            version = self.fetch_version(descriptor)
        except (FetchError, NoMatchError) as e:
            logger.warning(f"⚠️ {descriptor.name}: {e}")
            return FetchResult(descriptor.name, "", e)
        except Exception as e:
            # Parser bugs on odd payloads stay confined to this package too
            logger.warning(f"⚠️ {descriptor.name}: unexpected {type(e).__name__}: {e}")
            return FetchResult(descriptor.name, "", FetchError(str(e)))

        logger.debug(f"UPSTREAM_RESOLVED pkg={descriptor.name} type={descriptor.type or 'none'} version={version or '-'}")
        return FetchResult(descriptor.name, version, None)

    def fetch_all(self, descriptors: Sequence[FeedDescriptor], jobs: int = 1) -> List[FetchResult]:
        """Resolve every descriptor; results keep input order"""
        if jobs <= 1 or len(descriptors) <= 1:
            return [self.resolve(descriptor) for descriptor in descriptors]

        with ThreadPoolExecutor(max_workers=jobs) as pool:
            return list(pool.map(self.resolve, descriptors))
