"""
HTTP client for upstream feeds - one requests session, fixed timeout, no retries
"""

import logging
from typing import Any, Optional

import requests

from pkgbot import config
from pkgbot.common.errors import FetchError

logger = logging.getLogger(__name__)


class FeedHttpClient:
    """Thin wrapper over requests that turns every failure into FetchError"""

    def __init__(self, timeout: float = config.FETCH_TIMEOUT, user_agent: str = config.USER_AGENT,
                 github_token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.github_token = github_token
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _headers_for(self, url: str) -> dict:
        if self.github_token and url.startswith(config.GITHUB_API_URL + "/"):
            return {
                "Authorization": f"Bearer {self.github_token}",
                "X-GitHub-Api-Version": config.GITHUB_API_VERSION,
            }
        return {}

    def get(self, url: str) -> requests.Response:
        if not url:
            raise FetchError("No URL configured")

        logger.debug(f"HTTP_GET url={url}")
        try:
            response = self.session.get(url, headers=self._headers_for(url), timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchError(f"Timed out after {self.timeout}s: {url}") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}") from e

        return response

    def get_bytes(self, url: str) -> bytes:
        content = self.get(url).content
        if not content:
            raise FetchError(f"Empty response from {url}")
        return content

    def get_text(self, url: str) -> str:
        text = self.get(url).text
        if not text or not text.strip():
            raise FetchError(f"Empty response from {url}")
        return text

    def get_json(self, url: str) -> Any:
        response = self.get(url)
        if not response.content:
            raise FetchError(f"Empty response from {url}")
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON response from {url}: {e}") from e
