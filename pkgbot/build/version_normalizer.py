"""
Version Normalizer Module - Turns fetched upstream tags into version strings

Upstream tag conventions vary arbitrarily (``App-1.2.3-linux``, ``v1.2.3``,
build-number suffixes). Beyond the basic ``normalize`` step, each package
declares its own ``versionRegex``/``versionFormat`` rule in feeds.json; nothing
here tries to guess.
"""

import re
import logging

from pkgbot.common.errors import NoMatchError

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r'\$([1-9])')


def normalize(raw: str) -> str:
    """
    Strip whitespace/newlines, one leading ``refs/tags/`` and one leading v / V.

    >>> normalize("refs/tags/v2.0.0")
    '2.0.0'
    """
    text = (raw or "").replace('\r', '').replace('\n', '').strip()
    if text.startswith('refs/tags/'):
        text = text[len('refs/tags/'):]
    if text.startswith('v'):
        text = text[1:]
    if text.startswith('V'):
        text = text[1:]
    return text


def apply_regex(raw: str, version_regex: str, version_format: str) -> str:
    """
    Match ``version_regex`` at the start of ``raw`` and fill ``$1``..``$9`` in
    ``version_format`` with the captured groups. Placeholders beyond the number
    of groups (or for groups that did not participate) become empty strings.

    Raises:
        NoMatchError: the pattern does not match
    """
    try:
        match = re.match(version_regex, raw)
    except re.error as e:
        raise NoMatchError(f"Invalid versionRegex {version_regex!r}: {e}") from e

    if not match:
        raise NoMatchError(f"versionRegex {version_regex!r} does not match {raw!r}")

    group_count = len(match.groups())

    def substitute(placeholder):
        index = int(placeholder.group(1))
        if index > group_count:
            return ""
        return match.group(index) or ""

    return PLACEHOLDER_RE.sub(substitute, version_format)


def extract(raw: str, version_regex: str = "", version_format: str = "") -> str:
    """Apply the package's extraction rule when it has one, else return raw unchanged"""
    if raw and version_regex and version_format:
        return apply_regex(raw, version_regex, version_format)
    return raw


def extract_or_raw(raw: str, version_regex: str = "", version_format: str = "") -> str:
    """Like extract, but a non-matching rule falls back to the normalized tag"""
    try:
        return extract(raw, version_regex, version_format)
    except NoMatchError as e:
        logger.debug(f"EXTRACT_FALLBACK raw={raw} reason={e}")
        return raw


def to_pkgver(version: str) -> str:
    """
    Make an upstream version usable as a PKGBUILD ``pkgver``.

    pacman does not allow '-' inside pkgver (it separates pkgrel), so every
    hyphen becomes an underscore: ``1.0-beta`` upstream is stored as
    ``1.0_beta``. Upstream versions are passed through this function before
    they are compared with a PKGBUILD pkgver, otherwise vercmp would read the
    text after the hyphen as a pkgrel.
    """
    return (version or "").strip().replace('-', '_')
