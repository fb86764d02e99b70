"""
Upstream feed modules: registry, strategies, HTTP/GitHub clients, vendor adapters, fetcher
"""

from .registry import FeedDescriptor, FeedRegistry, VENDOR_TYPES
from .strategies import strategy_for
from .http_client import FeedHttpClient
from .github_client import GitHubClient
from .version_fetcher import FetchResult, VersionFetcher

__all__ = [
    'FeedDescriptor',
    'FeedRegistry',
    'strategy_for',
    'VENDOR_TYPES',
    'FeedHttpClient',
    'GitHubClient',
    'FetchResult',
    'VersionFetcher',
]
