"""
Fetch strategies - closed set of variants built from FeedDescriptor.type

Each variant carries only the fields its fetch needs. VersionFetcher
dispatches over exactly these classes; adding a source means adding a
variant here and a branch there.
"""

import logging
from dataclasses import dataclass
from typing import Union

from pkgbot.feeds.registry import VENDOR_TYPES, FeedDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GithubRelease:
    repo: str
    channel: str = "stable"
    version_regex: str = ""
    version_format: str = ""


@dataclass(frozen=True)
class GithubReleaseFiltered:
    repo: str
    tag_regex: str
    channel: str = "stable"
    version_regex: str = ""
    version_format: str = ""


@dataclass(frozen=True)
class GithubTagsFiltered:
    repo: str
    tag_regex: str = ""
    version_regex: str = ""
    version_format: str = ""


@dataclass(frozen=True)
class Vcs:
    """Informational stable-release lookup; never drives a version bump"""
    repo: str = ""
    version_regex: str = ""
    version_format: str = ""


@dataclass(frozen=True)
class VendorAdapter:
    name: str
    url: str = ""
    channel: str = "stable"


@dataclass(frozen=True)
class Manual:
    """Never resolves a version"""


FetchStrategy = Union[GithubRelease, GithubReleaseFiltered, GithubTagsFiltered, Vcs, VendorAdapter, Manual]


def strategy_for(descriptor: FeedDescriptor) -> FetchStrategy:
    """
    Build the strategy for a descriptor. Empty and unknown types become Manual
    (unknown ones with a warning) so they never trigger an automatic bump.
    """
    feed_type = descriptor.type

    if feed_type == "github-release":
        return GithubRelease(descriptor.repo, descriptor.channel,
                             descriptor.version_regex, descriptor.version_format)
    if feed_type == "github-release-filtered":
        return GithubReleaseFiltered(descriptor.repo, descriptor.tag_regex, descriptor.channel,
                                     descriptor.version_regex, descriptor.version_format)
    if feed_type == "github-tags-filtered":
        return GithubTagsFiltered(descriptor.repo, descriptor.tag_regex,
                                  descriptor.version_regex, descriptor.version_format)
    if feed_type == "vcs":
        return Vcs(descriptor.repo, descriptor.version_regex, descriptor.version_format)
    if feed_type in VENDOR_TYPES:
        return VendorAdapter(feed_type, descriptor.url, descriptor.channel)
    if feed_type == "manual":
        return Manual()

    if feed_type:
        logger.warning(f"Unknown feed type '{feed_type}' for {descriptor.name} (treating as manual)")
    else:
        logger.debug(f"Empty type for {descriptor.name}, treating as manual")
    return Manual()
