"""
GitHub REST client - release and tag listings for version discovery
"""

import re
import logging
from typing import Any, Dict, List

from pkgbot import config
from pkgbot.common.errors import FetchError
from pkgbot.feeds.http_client import FeedHttpClient

logger = logging.getLogger(__name__)


def _tag_matches(pattern: str, tag: str) -> bool:
    """Unanchored search, the way jq's test() filters tags"""
    try:
        return re.search(pattern, tag) is not None
    except re.error as e:
        raise FetchError(f"Invalid tagRegex {pattern!r}: {e}") from e


def _pick_by_channel(releases: List[Dict[str, Any]], channel: str) -> str:
    """
    Newest-first release list -> tag name for a channel.

    stable:     first release not flagged prerelease
    prerelease: first release flagged prerelease
    any:        first release
    """
    for release in releases:
        if not isinstance(release, dict):
            continue
        prerelease = bool(release.get("prerelease"))
        if channel == "stable" and prerelease:
            continue
        if channel == "prerelease" and not prerelease:
            continue
        tag = release.get("tag_name")
        if tag:
            return str(tag)
    return ""


class GitHubClient:
    """Release/tag queries against api.github.com"""

    def __init__(self, http: FeedHttpClient, api_url: str = config.GITHUB_API_URL):
        self.http = http
        self.api_url = api_url.rstrip("/")

    def _repo_url(self, repo: str, path: str) -> str:
        if not repo or "/" not in repo:
            raise FetchError(f"Invalid GitHub repo slug: {repo!r}")
        return f"{self.api_url}/repos/{repo}/{path}"

    def _get_list(self, url: str) -> List[Any]:
        data = self.http.get_json(url)
        if not isinstance(data, list):
            raise FetchError(f"Expected a JSON list from {url}")
        return data

    def latest_release_tag(self, repo: str, channel: str = "stable") -> str:
        """Raw tag name of the newest release on a channel"""
        if channel == "stable":
            data = self.http.get_json(self._repo_url(repo, "releases/latest"))
            if not isinstance(data, dict):
                raise FetchError(f"Unexpected latest-release payload for {repo}")
            tag = data.get("tag_name")
        else:
            releases = self._get_list(
                self._repo_url(repo, f"releases?per_page={config.GITHUB_RELEASES_PER_PAGE}"))
            tag = _pick_by_channel(releases, channel)

        if not tag:
            raise FetchError(f"No {channel} release found for {repo}")
        return str(tag)

    def latest_release_tag_filtered(self, repo: str, tag_regex: str, channel: str = "stable") -> str:
        """Like latest_release_tag, restricted to releases whose tag matches tag_regex"""
        if not tag_regex:
            raise FetchError(f"tagRegex is required for filtered releases of {repo}")

        releases = self._get_list(
            self._repo_url(repo, f"releases?per_page={config.GITHUB_FILTERED_RELEASES_PER_PAGE}"))
        matching = [
            release for release in releases
            if isinstance(release, dict) and _tag_matches(tag_regex, str(release.get("tag_name") or ""))
        ]

        tag = _pick_by_channel(matching, channel)
        if not tag:
            raise FetchError(f"No {channel} release matching {tag_regex!r} for {repo}")
        return tag

    def tag_names(self, repo: str, tag_regex: str = "") -> List[str]:
        """Recent tag names, optionally filtered. Order is whatever the API returns."""
        tags = self._get_list(self._repo_url(repo, f"tags?per_page={config.GITHUB_TAGS_PER_PAGE}"))

        names = []
        for tag in tags:
            if not isinstance(tag, dict) or not tag.get("name"):
                continue
            name = str(tag["name"])
            if tag_regex and not _tag_matches(tag_regex, name):
                continue
            names.append(name)

        logger.debug(f"GITHUB_TAGS repo={repo} total={len(tags)} matched={len(names)}")
        return names
