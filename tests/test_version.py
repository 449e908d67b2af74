"""Tests for :mod:`tag_bot.version`."""

from __future__ import annotations

import pytest

from tag_bot.errors import ValidationError
from tag_bot.version import Comparison, IncrementPart, Version


class TestParse:
    """Tests for Version.parse and rendering."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.0.0", Version(1, 0, 0)),
            ("v1.0.0", Version(1, 0, 0)),
            ("0.1.0", Version(0, 1, 0)),
            ("10.20.30", Version(10, 20, 30)),
        ],
    )
    def test_parses_dotted_triples(self, raw: str, expected: Version) -> None:
        """Plain and ``v``-prefixed triples parse to the same version."""
        assert Version.parse(raw) == expected

    @pytest.mark.parametrize(
        ("raw", "canonical"),
        [
            ("1.2.3", "v1.2.3"),
            ("v1.2.3", "v1.2.3"),
            ("007.0.10", "v7.0.10"),
            ("0.0.0", "v0.0.0"),
        ],
    )
    def test_render_returns_canonical_form(self, raw: str, canonical: str) -> None:
        """Rendering a parsed version yields ``v<major>.<minor>.<patch>``."""
        assert Version.parse(raw).render() == canonical
        assert str(Version.parse(raw)) == canonical

    @pytest.mark.parametrize(
        "raw",
        ["", "v", "1.0", "1.0.0.0", "1.0.a", "a.b.c", "-1.0.0", "1.0.-1", " 1.0.0"],
    )
    def test_rejects_malformed_input(self, raw: str) -> None:
        """Malformed strings fail with a ValidationError."""
        with pytest.raises(ValidationError):
            Version.parse(raw)

    def test_rejects_non_string_input(self) -> None:
        """None is not a version string."""
        with pytest.raises(ValidationError, match="non-empty string"):
            Version.parse(None)  # type: ignore[arg-type]

    def test_negative_components_rejected_on_construction(self) -> None:
        """Components can never go negative."""
        with pytest.raises(ValidationError, match="non-negative"):
            Version(1, -1, 0)


class TestOrdering:
    """Tests for comparison and sorting."""

    @pytest.mark.parametrize(
        ("left", "right", "expected"),
        [
            ("1.0.0", "1.0.1", Comparison.LESS),
            ("1.2.0", "1.10.0", Comparison.LESS),
            ("2.0.0", "1.99.99", Comparison.GREATER),
            ("v1.2.3", "1.2.3", Comparison.EQUAL),
        ],
    )
    def test_compare(self, left: str, right: str, expected: Comparison) -> None:
        """Comparison is numeric and lexicographic by component."""
        assert Version.parse(left).compare(Version.parse(right)) is expected

    def test_sorting_is_numeric(self) -> None:
        """Sorting does not fall back to string order."""
        versions = [Version.parse(v) for v in ("1.10.0", "1.2.0", "1.9.9", "0.20.0")]
        assert [v.numeric for v in sorted(versions)] == [
            "0.20.0",
            "1.2.0",
            "1.9.9",
            "1.10.0",
        ]


class TestBump:
    """Tests for the cascading increment policy."""

    @pytest.mark.parametrize(
        ("part", "expected"),
        [
            (IncrementPart.MAJOR, Version(4, 0, 0)),
            (IncrementPart.MINOR, Version(3, 8, 0)),
            (IncrementPart.PATCH, Version(3, 7, 10)),
        ],
    )
    def test_bump_resets_lower_components(
        self, part: IncrementPart, expected: Version
    ) -> None:
        """Major and minor bumps reset the components below them."""
        base = Version(3, 7, 9)
        assert base.bump(part) == expected
        assert base == Version(3, 7, 9), "bump must not mutate the base"

    @pytest.mark.parametrize("name", ["Major", "major", "MAJOR", " major "])
    def test_from_name_accepts_any_case(self, name: str) -> None:
        """Increment names are matched case-insensitively."""
        assert IncrementPart.from_name(name) is IncrementPart.MAJOR

    def test_from_name_rejects_unknown(self) -> None:
        """Unknown names list the valid increments."""
        with pytest.raises(ValidationError, match="major, minor, patch"):
            IncrementPart.from_name("huge")
