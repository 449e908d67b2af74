"""Remote tag model."""

from __future__ import annotations

import dataclasses

from .errors import ValidationError
from .validation import SEMVER_PATTERN, validate_tag_name
from .version import Version

__all__ = ["Tag"]


@dataclasses.dataclass(frozen=True, slots=True)
class Tag:
    """A tag name as stored on GitHub together with its embedded version.

    Build instances with :meth:`create`, which enforces that ``version`` is a
    plain ``x.y.z`` string.
    """

    name: str
    version: str

    @classmethod
    def create(cls, name: str) -> Tag:
        """Validate ``name`` and derive the version it carries.

        Raises
        ------
        ValidationError
            Raised when ``name`` is not a legal git tag name or does not
            embed a semantic version.
        """
        validate_tag_name(name)
        version = name.removeprefix("v")
        if not SEMVER_PATTERN.fullmatch(version):
            msg = f"Tag {name!r} does not follow the semantic version format v1.2.3"
            raise ValidationError(
                msg, hint="Only tags shaped like v1.2.3 or 1.2.3 are supported."
            )
        return cls(name=name, version=version)

    def to_version(self) -> Version:
        """Return the parsed :class:`Version` of this tag."""
        return Version.parse(self.version)

    def __str__(self) -> str:
        return self.name
