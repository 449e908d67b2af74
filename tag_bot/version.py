"""Semantic version model used to order tags and compute the next release."""

from __future__ import annotations

import dataclasses
import enum

from .errors import ValidationError
from .validation import validate_version_string

__all__ = ["Comparison", "IncrementPart", "Version"]


class IncrementPart(enum.Enum):
    """Version component a release bumps."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @classmethod
    def from_name(cls, name: str) -> IncrementPart:
        """Return the member spelled ``Major``, ``minor``, ``PATCH`` and so on.

        Raises
        ------
        ValidationError
            Raised when ``name`` does not name a version component.
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            msg = f"Unknown increment {name!r}; expected one of: {valid}"
            raise ValidationError(msg) from None


class Comparison(enum.IntEnum):
    """Result of :meth:`Version.compare`."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


@dataclasses.dataclass(frozen=True, slots=True, order=True)
class Version:
    """A ``major.minor.patch`` triple of non-negative integers.

    Field order drives the generated comparisons, so sorting versions is
    lexicographic by ``(major, minor, patch)``.
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for field in ("major", "minor", "patch"):
            value = getattr(self, field)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                msg = f"Version {field} must be a non-negative integer, got {value!r}"
                raise ValidationError(msg)

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse ``1.2.3`` or ``v1.2.3`` into a :class:`Version`.

        Raises
        ------
        ValidationError
            Raised when ``value`` is not three dot-separated non-negative
            integers.
        """
        major, minor, patch = validate_version_string(value).split(".")
        return cls(int(major), int(minor), int(patch))

    def render(self) -> str:
        """Return the canonical ``v<major>.<minor>.<patch>`` form."""
        return f"v{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.render()

    @property
    def numeric(self) -> str:
        """Dotted form without the ``v`` prefix."""
        return f"{self.major}.{self.minor}.{self.patch}"

    def compare(self, other: Version) -> Comparison:
        """Compare against ``other`` using semantic version precedence."""
        if self < other:
            return Comparison.LESS
        if self > other:
            return Comparison.GREATER
        return Comparison.EQUAL

    def bump(self, part: IncrementPart) -> Version:
        """Return a new version with ``part`` incremented.

        Lower components reset to zero: bumping the major version of
        ``1.4.2`` yields ``2.0.0`` and bumping the minor yields ``1.5.0``.
        """
        match part:
            case IncrementPart.MAJOR:
                return Version(self.major + 1, 0, 0)
            case IncrementPart.MINOR:
                return Version(self.major, self.minor + 1, 0)
            case IncrementPart.PATCH:
                return Version(self.major, self.minor, self.patch + 1)
        msg = f"Unsupported increment part: {part!r}"
        raise ValidationError(msg)
