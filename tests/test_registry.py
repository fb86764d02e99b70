import json

import pytest

from pkgbot.common.errors import LoadError
from pkgbot.feeds.registry import FeedRegistry
from pkgbot.feeds.strategies import (
    GithubRelease,
    GithubReleaseFiltered,
    GithubTagsFiltered,
    Manual,
    Vcs,
    VendorAdapter,
    strategy_for,
)

PACKAGES_V2 = [
    {"name": "github-cli", "type": "github-release", "repo": "cli/cli"},
    {"name": "talosctl-bin", "type": "github-release-filtered", "repo": "siderolabs/talos",
     "tagRegex": "^v1\\.", "channel": "any"},
    {"name": "google-chrome-canary", "type": "chrome", "channel": "canary"},
    {"name": "my-tool", "type": "manual"},
]


def _as_schema_1(packages):
    nested = []
    for entry in packages:
        fields = {k: v for k, v in entry.items() if k != "name"}
        nested.append({"name": entry["name"], "feed": fields})
    return nested


def test_schema_1_and_2_read_identically(write_feeds, tmp_path):
    v2 = FeedRegistry.load(write_feeds(PACKAGES_V2, schema_version=2, path=tmp_path / "v2.json"))
    v1 = FeedRegistry.load(write_feeds(_as_schema_1(PACKAGES_V2), schema_version=None,
                                       path=tmp_path / "v1.json"))

    assert v1.schema_version == 1
    assert v2.schema_version == 2
    assert v1.list_names() == v2.list_names()
    for name in v2.list_names():
        for field in ("type", "repo", "channel", "url", "tagRegex"):
            assert v1.get_field(name, field) == v2.get_field(name, field)
        assert v1.descriptor(name).repo == v2.descriptor(name).repo


def test_list_names_keeps_registry_order(write_feeds):
    registry = FeedRegistry.load(write_feeds(PACKAGES_V2))
    assert registry.list_names() == ["github-cli", "talosctl-bin", "google-chrome-canary", "my-tool"]
    assert len(registry) == 4
    assert "github-cli" in registry
    assert not registry.has("missing")


def test_get_field_absent_reads_empty(write_feeds):
    registry = FeedRegistry.load(write_feeds(PACKAGES_V2))
    assert registry.get_field("github-cli", "url") == ""
    assert registry.get_field("nope", "type") == ""


def test_channel_defaults_to_stable_and_vendor_channels_survive(write_feeds):
    registry = FeedRegistry.load(write_feeds(PACKAGES_V2))
    assert registry.descriptor("github-cli").channel == "stable"
    assert registry.descriptor("google-chrome-canary").channel == "canary"


def test_descriptor_unknown_raises_key_error(write_feeds):
    registry = FeedRegistry.load(write_feeds(PACKAGES_V2))
    with pytest.raises(KeyError):
        registry.descriptor("nope")


def test_duplicate_name_is_load_error(write_feeds):
    path = write_feeds([{"name": "a", "type": "manual"}, {"name": "a", "type": "vcs"}])
    with pytest.raises(LoadError, match="duplicate"):
        FeedRegistry.load(path)


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps([1, 2]),
        json.dumps({"schemaVersion": 3, "packages": []}),
        json.dumps({"packages": {"name": "a"}}),
        json.dumps({"packages": [{"type": "manual"}]}),
        json.dumps({"packages": ["a"]}),
        json.dumps({"schemaVersion": 1, "packages": [{"name": "a", "feed": "github"}]}),
    ],
)
def test_malformed_registry_is_load_error(tmp_path, content):
    path = tmp_path / "feeds.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(LoadError):
        FeedRegistry.load(path)


def test_missing_file_is_load_error(tmp_path):
    with pytest.raises(LoadError, match="not found"):
        FeedRegistry.load(tmp_path / "feeds.json")


def test_string_schema_version_accepted(tmp_path):
    path = tmp_path / "feeds.json"
    path.write_text(json.dumps({"schemaVersion": "2", "packages": [{"name": "a", "type": "vcs"}]}))
    assert FeedRegistry.load(path).schema_version == 2


def test_strategy_variants(write_feeds):
    registry = FeedRegistry.load(write_feeds(PACKAGES_V2 + [
        {"name": "k", "type": "github-tags-filtered", "repo": "o/k", "tagRegex": "^v"},
        {"name": "figma-linux-git", "type": "vcs", "repo": "Figma-Linux/figma-linux"},
        {"name": "odd", "type": "sourceforge"},
        {"name": "untyped"},
    ]))

    assert strategy_for(registry.descriptor("github-cli")) == GithubRelease("cli/cli", "stable")
    assert isinstance(strategy_for(registry.descriptor("talosctl-bin")), GithubReleaseFiltered)
    assert strategy_for(registry.descriptor("google-chrome-canary")) == VendorAdapter("chrome", "", "canary")
    assert isinstance(strategy_for(registry.descriptor("k")), GithubTagsFiltered)
    assert strategy_for(registry.descriptor("figma-linux-git")) == Vcs("Figma-Linux/figma-linux")
    assert strategy_for(registry.descriptor("my-tool")) == Manual()
    assert strategy_for(registry.descriptor("odd")) == Manual()
    assert strategy_for(registry.descriptor("untyped")) == Manual()


def test_unknown_and_empty_types_are_manual(write_feeds):
    registry = FeedRegistry.load(write_feeds([{"name": "odd", "type": "sourceforge"}, {"name": "untyped"},
                                              {"name": "gh", "type": "github-release", "repo": "o/r"}]))
    assert registry.descriptor("odd").is_manual
    assert registry.descriptor("untyped").is_manual
    assert not registry.descriptor("gh").is_manual
