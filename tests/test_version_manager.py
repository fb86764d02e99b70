import pytest

from pkgbot.build.version_manager import (
    CanonicalVersion,
    Ordering,
    VersionComparator,
    compare,
    pick_max,
    rpmvercmp,
    vercmp,
)
from tests.fakes.shell import FakeShell


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("1.0", "1.0", 0),
        ("1.10.0", "1.2.0", 1),
        ("1.0", "1.0.1", -1),
        ("1.0a", "1.0", -1),
        ("1.0", "1.0b", 1),
        ("1.0alpha", "1.0beta", -1),
        ("001", "1", 0),
        ("1.0", "1_0", 0),
        ("2.0", "1.99999", 1),
        ("1.0rc1", "1.0", -1),
    ],
)
def test_rpmvercmp_segments(a, b, expected):
    assert rpmvercmp(a, b) == expected


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("1.0.0-1", "1.0.0-1", 0),
        ("1.0.0-2", "1.0.0-1", 1),
        ("1:1.0", "2.0", 1),
        ("0:1.0", "1.0", 0),
        ("1.0", "1.0-5", 0),
        ("1.1.0-1", "1.0.0-9", 1),
    ],
)
def test_vercmp_full_versions(a, b, expected):
    assert vercmp(a, b) == expected


@pytest.mark.parametrize(
    "a,b",
    [("1.2.0", "1.10.0"), ("1.0a", "1.0"), ("9.9", "1:0.1"), ("2.0-1", "2.0-2"), ("1.0.0", "1.0.0.1")],
)
def test_compare_is_antisymmetric(a, b):
    assert compare(a, b) == Ordering.LESS
    assert compare(b, a) == Ordering.GREATER


def test_compare_equal_parts():
    left = CanonicalVersion(epoch=1, pkgver="2.3", pkgrel="4")
    right = CanonicalVersion.parse("1:2.3-4")
    assert left == right
    assert compare(left, right) == Ordering.EQUAL


def test_canonical_version_parse_and_render():
    version = CanonicalVersion.parse("2:1.4.2-3")
    assert (version.epoch, version.pkgver, version.pkgrel) == (2, "1.4.2", "3")
    assert str(version) == "2:1.4.2-3"

    plain = CanonicalVersion.parse("1.4.2")
    assert plain.epoch == 0
    assert plain.pkgrel == ""
    assert str(plain) == "1.4.2"


def test_canonical_version_keeps_fractional_pkgrel():
    version = CanonicalVersion.from_parts("1.0", "1.1", "0")
    assert version.pkgrel == "1.1"
    assert str(version) == "1.0-1.1"
    assert compare("1.0-1.1", "1.0-1") == Ordering.GREATER


def test_parse_splits_epoch_and_release():
    parsed = CanonicalVersion.parse("3:5.1-2")
    assert (parsed.epoch, parsed.pkgver, parsed.pkgrel) == (3, "5.1", "2")
    parsed = CanonicalVersion.parse("5.1")
    assert (parsed.epoch, parsed.pkgver, parsed.pkgrel) == (0, "5.1", "")


def test_pick_max_is_numeric_not_lexical():
    assert pick_max(["1.2.0", "1.10.0", "1.3.0"]) == "1.10.0"


def test_pick_max_ignores_empty_and_handles_empty_input():
    assert pick_max(["", "0.9", ""]) == "0.9"
    assert pick_max([]) == ""


def test_unknown_backend_rejected():
    with pytest.raises(ValueError):
        VersionComparator(backend="rpm")


def test_vercmp_backend_uses_binary_output():
    shell = FakeShell()
    shell.script(["vercmp", "1.0", "2.0"], stdout="-1\n")
    comparator = VersionComparator(backend="vercmp", shell_executor=shell)

    assert comparator.compare("1.0", "2.0") == Ordering.LESS
    assert not comparator.degraded
    assert shell.commands("vercmp") == [["vercmp", "1.0", "2.0"]]


def test_vercmp_backend_degrades_to_lexical_when_binary_missing():
    shell = FakeShell()
    shell.script_error(["vercmp"], FileNotFoundError("vercmp"))
    comparator = VersionComparator(backend="vercmp", shell_executor=shell)

    # Lexical comparison gets this one wrong; that is the documented degradation
    assert comparator.compare("1.10", "1.9") == Ordering.LESS
    assert comparator.degraded

    comparator.compare("2.0", "1.0")
    assert len(shell.commands("vercmp")) == 1
