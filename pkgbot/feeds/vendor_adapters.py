"""
Vendor adapters - one narrow parser per upstream shape that is not a GitHub release

Every adapter takes (http, github, url, channel) and returns a bare version
string, or raises FetchError.
"""

import gzip
import re
import logging
import xml.etree.ElementTree as ET
from typing import Callable, Dict, Optional

from pkgbot.build.version_normalizer import normalize
from pkgbot.common.errors import FetchError
from pkgbot.feeds.github_client import GitHubClient
from pkgbot.feeds.http_client import FeedHttpClient

logger = logging.getLogger(__name__)

CHROME_VERSION_URL = (
    "https://versionhistory.googleapis.com/v1/chrome/platforms/linux/channels/{channel}"
    "/versions/all/releases?filter=endtime%3Dnone%2Cfraction%3E%3D0.5&order_by=version%20desc"
)
EDGE_REPOMD_URL = "https://packages.microsoft.com/yumrepos/edge/repodata/repomd.xml"
EDGE_PACKAGE_NAME = "microsoft-edge-stable"
ONEPASSWORD_CLI2_URL = "https://app-updates.agilebits.com/check/1/0/CLI2/en/0/N"
LMSTUDIO_URL = "https://lmstudio.ai/download"

ONEPASSWORD_UPDATED_RE = re.compile(r'Updated to ([0-9]+(?:\.[0-9]+)+(?:-[0-9]+)?)')
LMSTUDIO_RE = re.compile(
    r'\\"linux\\":\{\\"x64\\":\{\\"version\\":\\"([0-9.]+)\\",\\"build\\":\\"([0-9]+)\\"'
)

Adapter = Callable[[FeedHttpClient, GitHubClient, str, str], str]


def _local_name(tag: str) -> str:
    """Strip the {namespace} part of an ElementTree tag"""
    return tag.rsplit('}', 1)[-1]


def _parse_xml(payload: bytes, what: str) -> ET.Element:
    try:
        return ET.fromstring(payload)
    except ET.ParseError as e:
        raise FetchError(f"Malformed {what}: {e}") from e


def chrome_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    """Google version history API, newest first: releases[0].version"""
    data = http.get_json(CHROME_VERSION_URL.format(channel=channel or "stable"))
    try:
        version = data["releases"][0]["version"]
    except (KeyError, IndexError, TypeError) as e:
        raise FetchError(f"Chrome {channel}: missing releases[0].version") from e
    if not version:
        raise FetchError(f"Chrome {channel}: empty version")
    return str(version)


def edge_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    """
    Two-step yum repository lookup: repomd.xml names the primary metadata file,
    whose gzip'd XML lists every published build. The last entry wins.
    """
    repomd_url = url or EDGE_REPOMD_URL
    suffix = "/repodata/repomd.xml"
    base = repomd_url[:-len(suffix)] if repomd_url.endswith(suffix) else repomd_url.rsplit('/', 2)[0]

    repomd = _parse_xml(http.get_bytes(repomd_url), "repomd.xml")
    primary_href = ""
    for data in repomd.iter():
        if _local_name(data.tag) != "data" or data.get("type") != "primary":
            continue
        for child in data:
            if _local_name(child.tag) == "location" and child.get("href"):
                primary_href = child.get("href")
                break
        if primary_href:
            break

    if not primary_href:
        raise FetchError("Could not find primary.xml location in repomd.xml")

    compressed = http.get_bytes(f"{base}/{primary_href}")
    try:
        primary_xml = gzip.decompress(compressed)
    except (OSError, EOFError) as e:
        raise FetchError(f"Could not decompress {primary_href}: {e}") from e

    primary = _parse_xml(primary_xml, "primary.xml")
    version = ""
    for entry in primary.iter():
        if _local_name(entry.tag) == "entry" and entry.get("name") == EDGE_PACKAGE_NAME and entry.get("ver"):
            version = entry.get("ver")

    if not version:
        raise FetchError("Could not extract Edge version from primary.xml")
    return version


def vscode_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    return normalize(github.latest_release_tag("microsoft/vscode", "stable"))


def onepassword_cli2_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    data = http.get_json(url or ONEPASSWORD_CLI2_URL)
    version = data.get("version") if isinstance(data, dict) else None
    if not version:
        raise FetchError("1Password CLI2 response has no version")
    return str(version)


def onepassword_linux_stable_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    """Release notes page scrape; the last 'Updated to X' on the page is used"""
    if not url:
        raise FetchError("1password-linux-stable needs a url")
    html = http.get_text(url).replace('\n', ' ')
    matches = ONEPASSWORD_UPDATED_RE.findall(html)
    if not matches:
        raise FetchError("No 'Updated to <version>' found on 1Password release page")
    return matches[-1]


def lmstudio_version(http: FeedHttpClient, github: GitHubClient, url: str, channel: str) -> str:
    """Download page embeds escaped JSON with linux x64 version and build"""
    html = http.get_text(url or LMSTUDIO_URL)
    match = LMSTUDIO_RE.search(html)
    if not match:
        raise FetchError("LM Studio linux version not found on download page")
    return f"{match.group(1)}.{match.group(2)}"


ADAPTERS: Dict[str, Adapter] = {
    "chrome": chrome_version,
    "edge": edge_version,
    "vscode": vscode_version,
    "1password-cli2": onepassword_cli2_version,
    "1password-linux-stable": onepassword_linux_stable_version,
    "lmstudio": lmstudio_version,
}


def get_adapter(name: str) -> Optional[Adapter]:
    return ADAPTERS.get(name)
