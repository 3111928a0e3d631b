"""Tests for SemanticVersion parsing, ordering, and import-time cleaning."""

from __future__ import annotations

import pytest

from forgecompat.core.versioning import (
    SemanticVersion,
    clean_engine_tag,
    clean_mod_version,
    compare_versions,
    is_valid_version,
    parse_version,
    strip_version_prefix,
    version_sort_key,
)
from forgecompat.exceptions import ForgeCompatError, InvalidVersion


class TestParse:
    """Strict parsing of ``MAJOR.MINOR.PATCH[-labels]``."""

    def test_plain_version(self) -> None:
        v = SemanticVersion.parse("3.8.1")
        assert (v.major, v.minor, v.patch) == (3, 8, 1)
        assert v.labels == ()
        assert not v.is_prerelease

    def test_prerelease_labels(self) -> None:
        v = parse_version("3.9.0-beta.2")
        assert v.core == (3, 9, 0)
        assert v.labels == ("beta", "2")
        assert v.is_prerelease
        assert str(v) == "3.9.0-beta.2"

    @pytest.mark.parametrize(
        "value",
        ["", "3.8", "3", "v3.8.0", "03.8.0", "3.08.0", "3.8.0-", "3.8.0+build", "a.b.c", "3.8.0.1"],
    )
    def test_rejects_malformed(self, value: str) -> None:
        with pytest.raises(InvalidVersion):
            SemanticVersion.parse(value)

    def test_invalid_version_is_value_error(self) -> None:
        """Callers may catch either the package base class or ValueError."""
        with pytest.raises(ValueError):
            SemanticVersion.parse("nope")
        with pytest.raises(ForgeCompatError):
            SemanticVersion.parse("nope")

    def test_is_valid_version(self) -> None:
        assert is_valid_version("0.0.0")
        assert not is_valid_version("3.8")


class TestOrdering:
    """Total order: numeric core first, pre-releases before the release."""

    def test_numeric_not_lexicographic(self) -> None:
        assert parse_version("3.10.0") > parse_version("3.9.0")

    def test_prerelease_sorts_before_release(self) -> None:
        assert parse_version("3.9.0-beta") < parse_version("3.9.0")
        assert parse_version("3.9.0-beta") > parse_version("3.8.9")

    def test_labels_compare_lexicographically(self) -> None:
        assert parse_version("1.0.0-alpha") < parse_version("1.0.0-beta")

    def test_compare_versions(self) -> None:
        assert compare_versions("1.0.0", "2.0.0") == -1
        assert compare_versions("2.0.0", "1.0.0") == 1
        assert compare_versions("1.2.3", SemanticVersion(1, 2, 3)) == 0

    def test_compare_versions_rejects_garbage(self) -> None:
        with pytest.raises(InvalidVersion):
            compare_versions("1.0", "1.0.0")

    def test_sort_key(self) -> None:
        versions = ["3.10.0", "3.8.1", "3.9.0-rc1", "3.9.0", "3.8.0"]
        assert sorted(versions, key=version_sort_key) == [
            "3.8.0", "3.8.1", "3.9.0-rc1", "3.9.0", "3.10.0",
        ]


class TestCleaning:
    """Import-time helpers for tags and user-entered versions."""

    def test_strip_version_prefix(self) -> None:
        assert strip_version_prefix("  v1.2.3 ") == "1.2.3"
        assert strip_version_prefix("V2.0.0") == "2.0.0"

    def test_clean_engine_tag_drops_brand_and_build(self) -> None:
        assert str(clean_engine_tag("SPT 3.8.0 - 29197")) == "3.8.0"
        assert str(clean_engine_tag("spt 3.9.1")) == "3.9.1"

    def test_clean_engine_tag_without_brand(self) -> None:
        assert str(clean_engine_tag("3.10.0")) == "3.10.0"

    def test_clean_engine_tag_rejects_garbage(self) -> None:
        with pytest.raises(InvalidVersion):
            clean_engine_tag("nightly")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("v1.2", "1.2.0"),
            ("1.02.3", "1.2.3"),
            ("2", "2.0.0"),
            ("1.4 (beta)", "1.4.0-beta"),
            ("no digits here", "0.0.0"),
        ],
    )
    def test_clean_mod_version(self, raw: str, expected: str) -> None:
        assert str(clean_mod_version(raw)) == expected

    def test_clean_mod_version_accepts_int(self) -> None:
        assert str(clean_mod_version(3)) == "3.0.0"
