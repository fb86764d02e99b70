"""Fake requests session: URL -> canned response, no network."""

import json
from typing import Any, Dict, List, Optional, Union

import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", url: str = ""):
        self.status_code = status_code
        self.content = content
        self.url = url

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} for {self.url}")


Route = Union[FakeResponse, Exception]


class FakeSession:
    """Answers GETs from a routing table; unknown URLs are 404s.

    Requests are recorded as (url, headers, timeout) for assertions.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.requests: List[tuple] = []

    def add_json(self, url: str, payload: Any, status_code: int = 200) -> None:
        self.routes[url] = FakeResponse(status_code, json.dumps(payload).encode("utf-8"), url)

    def add_text(self, url: str, text: str, status_code: int = 200) -> None:
        self.routes[url] = FakeResponse(status_code, text.encode("utf-8"), url)

    def add_bytes(self, url: str, content: bytes) -> None:
        self.routes[url] = FakeResponse(200, content, url)

    def add_error(self, url: str, error: Exception) -> None:
        self.routes[url] = error

    def get(self, url: str, headers=None, timeout=None) -> FakeResponse:
        self.requests.append((url, dict(headers or {}), timeout))
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, b"", url)
        if isinstance(route, Exception):
            raise route
        return route

    def requested_urls(self) -> List[str]:
        return [url for url, _, _ in self.requests]
