"""Determine the latest tag and generate the next version from it."""

from __future__ import annotations

import collections.abc as cabc
import logging
import typing as typ

from .errors import ValidationError
from .tag import Tag
from .version import IncrementPart, Version

__all__ = [
    "BASELINE_TAG_NAME",
    "determine_last_tag",
    "generate_next_tag",
    "last_tag_or_baseline",
]

logger = logging.getLogger(__name__)

BASELINE_TAG_NAME = "v0.0.0"


def _tag_from_record(record: object, index: int) -> Tag:
    if not isinstance(record, cabc.Mapping):
        msg = f"Tag entry #{index} must be an object, got {type(record).__name__}"
        raise ValidationError(msg)
    name = record.get("name")
    if not isinstance(name, str) or not name:
        msg = f"Tag entry #{index} is missing a name"
        raise ValidationError(msg)
    return Tag.create(name)


def determine_last_tag(tags: cabc.Sequence[cabc.Mapping[str, typ.Any]]) -> Tag:
    """Return the tag carrying the highest version in ``tags``.

    Parameters
    ----------
    tags
        Tag records as returned by GitHub; each needs a ``name``.

    Raises
    ------
    ValidationError
        Raised when ``tags`` is empty or any record is malformed. A single
        bad tag aborts the lookup rather than being skipped.
    """
    if not tags:
        msg = "No tags available to determine the latest version"
        raise ValidationError(msg)
    parsed = [
        _tag_from_record(record, index) for index, record in enumerate(tags, start=1)
    ]
    parsed.sort(key=Tag.to_version)
    return parsed[-1]


def last_tag_or_baseline(tags: cabc.Sequence[cabc.Mapping[str, typ.Any]]) -> Tag:
    """Return :func:`determine_last_tag`, or ``v0.0.0`` for an untagged repo."""
    if not tags:
        logger.info("Repository has no tags; starting from %s", BASELINE_TAG_NAME)
        return Tag.create(BASELINE_TAG_NAME)
    return determine_last_tag(tags)


def generate_next_tag(
    base: str | Version,
    part: IncrementPart | None = None,
    *,
    manual_version: str | None = None,
) -> Version:
    """Return the version that follows ``base``.

    Parameters
    ----------
    base
        The latest version, as a string (``1.0.0`` or ``v1.0.0``) or a
        :class:`Version`.
    part
        Component to increment. Ignored when ``manual_version`` is given.
    manual_version
        Explicit version requested through a comment. It bypasses the
        arithmetic and is only validated.

    Raises
    ------
    ValidationError
        Raised when a version string is malformed or neither ``part`` nor
        ``manual_version`` is supplied.
    """
    if manual_version is not None:
        return Version.parse(manual_version)
    if part is None:
        msg = "generate_next_tag needs an increment part or a manual version"
        raise ValidationError(msg)
    current = base if isinstance(base, Version) else Version.parse(base)
    return current.bump(part)
