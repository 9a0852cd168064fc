from __future__ import annotations

import pytest

from dotrel.services.release.semver import (
    ZERO,
    Version,
    latest_version,
    parse_triple,
    parse_version,
)


def test_parse_version_full_grammar() -> None:
    assert parse_version("1.2.3") == Version(1, 2, 3)
    assert parse_version("1.2.3-rc.1") == Version(1, 2, 3, ("rc", "1"))
    assert parse_version("1.2.3+sha.abc") == Version(1, 2, 3, (), ("sha", "abc"))


def test_parse_version_rejects_invalid() -> None:
    assert parse_version("v1.2.3") is None
    assert parse_version("01.2.3") is None
    assert parse_version("1.2") is None
    assert parse_version("1.2.3-rc.01") is None
    assert parse_version("nightly") is None


def test_parse_triple_is_strict() -> None:
    assert parse_triple("2.5.0") == Version(2, 5, 0)
    assert parse_triple("2.5.0-rc.1") is None
    assert parse_triple(" 2.5.0") is None


def test_render_has_no_leading_v() -> None:
    assert str(Version(2, 5, 0)) == "2.5.0"
    assert str(Version(1, 0, 0, ("beta", "2"), ("b7",))) == "1.0.0-beta.2+b7"


def test_precedence_orders_prereleases_below_release() -> None:
    ordered = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
        "1.10.0",
    ]
    versions = [parse_version(s) for s in ordered]
    assert all(v is not None for v in versions)
    for lo, hi in zip(versions, versions[1:]):
        assert lo is not None and hi is not None
        assert lo < hi
        assert hi > lo


def test_build_metadata_is_ignored_for_ordering() -> None:
    a = Version(1, 0, 0, (), ("a",))
    b = Version(1, 0, 0, (), ("b",))
    assert not a < b
    assert not b < a
    assert a >= b and a <= b


def test_bump() -> None:
    v = Version(1, 4, 2)
    assert v.bump("patch") == Version(1, 4, 3)
    assert v.bump("minor") == Version(1, 5, 0)
    assert v.bump("major") == Version(2, 0, 0)
    assert ZERO.bump("minor") == Version(0, 1, 0)


@pytest.mark.parametrize(
    ("latest", "kind", "expected"),
    [
        (Version(2, 0, 0, ("rc", "1")), "patch", Version(2, 0, 0)),
        (Version(2, 0, 0, ("rc", "1")), "minor", Version(2, 0, 0)),
        (Version(2, 0, 0, ("rc", "1")), "major", Version(2, 0, 0)),
        (Version(1, 4, 2, ("rc", "1")), "patch", Version(1, 4, 2)),
        (Version(1, 4, 2, ("rc", "1")), "minor", Version(1, 5, 0)),
        (Version(1, 4, 0, ("beta",)), "minor", Version(1, 4, 0)),
        (Version(1, 4, 0, ("beta",)), "major", Version(2, 0, 0)),
    ],
)
def test_bump_promotes_a_prerelease(latest: Version, kind: str, expected: Version) -> None:
    bumped = latest.bump(kind)  # type: ignore[arg-type]
    assert bumped == expected
    assert bumped > latest


def test_latest_version_ignores_non_semver_tags() -> None:
    assert latest_version([]) is None
    assert latest_version(["nightly", "v1.0.0"]) is None
    assert latest_version(["0.9.0", "nightly", "1.0.0-rc.1", "0.10.0"]) == (
        Version(1, 0, 0, ("rc", "1")),
        "1.0.0-rc.1",
    )
