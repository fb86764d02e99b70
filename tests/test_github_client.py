import pytest
import requests

from pkgbot.common.errors import FetchError
from pkgbot.feeds.github_client import GitHubClient
from pkgbot.feeds.http_client import FeedHttpClient
from tests.fakes.http import FakeSession

API = "https://api.github.com/repos"

RELEASES = [
    {"tag_name": "v2.1.0-rc1", "prerelease": True},
    {"tag_name": "v2.0.0", "prerelease": False},
    {"tag_name": "desktop-1.5.0", "prerelease": False},
]


def _client(session, token=None):
    return GitHubClient(FeedHttpClient(timeout=5, user_agent="test-agent", github_token=token, session=session))


def test_stable_uses_latest_endpoint(fake_session):
    fake_session.add_json(f"{API}/cli/cli/releases/latest", {"tag_name": "v2.40.1"})
    assert _client(fake_session).latest_release_tag("cli/cli") == "v2.40.1"


@pytest.mark.parametrize("channel,expected", [("any", "v2.1.0-rc1"), ("prerelease", "v2.1.0-rc1")])
def test_non_stable_channels_use_release_list(fake_session, channel, expected):
    fake_session.add_json(f"{API}/o/r/releases?per_page=30", RELEASES)
    assert _client(fake_session).latest_release_tag("o/r", channel) == expected


def test_filtered_release_respects_tag_regex_and_channel(fake_session):
    fake_session.add_json(f"{API}/o/r/releases?per_page=50", RELEASES)
    client = _client(fake_session)
    assert client.latest_release_tag_filtered("o/r", "^v", "stable") == "v2.0.0"
    assert client.latest_release_tag_filtered("o/r", "^desktop-", "any") == "desktop-1.5.0"


def test_filtered_release_without_match_raises(fake_session):
    fake_session.add_json(f"{API}/o/r/releases?per_page=50", RELEASES)
    with pytest.raises(FetchError):
        _client(fake_session).latest_release_tag_filtered("o/r", "^cli-", "stable")


def test_tag_names_filters(fake_session):
    fake_session.add_json(f"{API}/o/r/tags?per_page=100",
                          [{"name": "v1.0.0"}, {"name": "nightly"}, {"name": "v1.2.0"}, {}])
    assert _client(fake_session).tag_names("o/r", "^v") == ["v1.0.0", "v1.2.0"]


def test_bad_repo_slug(fake_session):
    with pytest.raises(FetchError, match="slug"):
        _client(fake_session).latest_release_tag("not-a-slug")


def test_http_errors_become_fetch_errors(fake_session):
    # Unrouted URL -> 404
    with pytest.raises(FetchError):
        _client(fake_session).latest_release_tag("o/missing")

    fake_session.add_error(f"{API}/o/slow/releases/latest", requests.exceptions.Timeout("slow"))
    with pytest.raises(FetchError, match="Timed out"):
        _client(fake_session).latest_release_tag("o/slow")


def test_invalid_json_is_fetch_error(fake_session):
    fake_session.add_text(f"{API}/o/r/releases/latest", "<html>rate limited</html>")
    with pytest.raises(FetchError, match="Invalid JSON"):
        _client(fake_session).latest_release_tag("o/r")


def test_token_only_sent_to_github_api(fake_session):
    fake_session.add_json(f"{API}/o/r/releases/latest", {"tag_name": "v1"})
    fake_session.add_text("https://example.com/page", "hello")
    client = _client(fake_session, token="secret")

    client.latest_release_tag("o/r")
    client.http.get_text("https://example.com/page")

    (_, api_headers, timeout), (_, other_headers, _) = fake_session.requests
    assert api_headers["Authorization"] == "Bearer secret"
    assert "Authorization" not in other_headers
    assert timeout == 5
    assert fake_session.headers["User-Agent"] == "test-agent"


def test_session_without_token_sends_no_auth():
    session = FakeSession()
    session.add_json(f"{API}/o/r/releases/latest", {"tag_name": "v1"})
    _client(session).latest_release_tag("o/r")
    assert session.requests[0][1] == {}
