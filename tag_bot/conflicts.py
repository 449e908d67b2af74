"""Detect and resolve collisions between a proposed tag and existing tags.

Two kinds of collision exist. An *exact match* means a tag with the very same
name is already on GitHub. A *version conflict* means an existing tag carries
the same numeric version under another spelling, for example ``1.1.0`` when
``v1.1.0`` is proposed.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import enum
import logging
import typing as typ

from .errors import ConflictError, ValidationError
from .tag import Tag
from .version import IncrementPart, Version

__all__ = [
    "DEFAULT_MAX_CONFLICT_ATTEMPTS",
    "ConflictResolution",
    "ConflictType",
    "DuplicateTagInfo",
    "ResolutionAction",
    "check_duplicate_tag",
    "ensure_tag_available",
    "resolve_tag_conflict",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONFLICT_ATTEMPTS = 10

type TagRecord = cabc.Mapping[str, typ.Any]


class ConflictType(enum.StrEnum):
    """How a proposed tag collides with existing tags."""

    EXACT_MATCH = "exact_match"
    VERSION_CONFLICT = "version_conflict"
    NONE = "none"


class ResolutionAction(enum.StrEnum):
    """What the run should do with the resolved tag name."""

    CREATE = "create"
    ALREADY_EXISTS = "already_exists"


@dataclasses.dataclass(frozen=True, slots=True)
class DuplicateTagInfo:
    """Classification of one candidate tag name against the tag list."""

    exists: bool
    tag_name: str
    conflict_type: ConflictType
    existing_tag: TagRecord | None = None

    @property
    def existing_sha(self) -> str | None:
        """Commit SHA the colliding tag points at, when GitHub reported it."""
        if self.existing_tag is None:
            return None
        commit = self.existing_tag.get("commit")
        if isinstance(commit, cabc.Mapping):
            sha = commit.get("sha")
            if isinstance(sha, str) and sha:
                return sha
        return None


@dataclasses.dataclass(frozen=True, slots=True)
class ConflictResolution:
    """Outcome of :func:`resolve_tag_conflict`.

    Attributes
    ----------
    action
        ``CREATE`` when ``tag_name`` is free, ``ALREADY_EXISTS`` when it
        already points at the target commit.
    tag_name
        Final tag name.
    version
        Version carried by ``tag_name``.
    attempts
        Number of forward-search steps taken; zero when the first candidate
        was accepted.
    info
        Classification of the final candidate.
    """

    action: ResolutionAction
    tag_name: str
    version: Version
    attempts: int
    info: DuplicateTagInfo


def _record_name(record: TagRecord) -> str | None:
    name = record.get("name")
    return name if isinstance(name, str) and name else None


def _record_version(name: str) -> Version | None:
    try:
        return Tag.create(name).to_version()
    except ValidationError:
        return None


def check_duplicate_tag(
    tag_name: str, tags: cabc.Iterable[TagRecord]
) -> DuplicateTagInfo:
    """Classify ``tag_name`` against ``tags``.

    An exact name match takes precedence over a version conflict. Existing
    tags whose names are not versions never cause a version conflict.
    """
    records = list(tags)
    for record in records:
        if _record_name(record) == tag_name:
            return DuplicateTagInfo(
                exists=True,
                tag_name=tag_name,
                conflict_type=ConflictType.EXACT_MATCH,
                existing_tag=record,
            )

    candidate = _record_version(tag_name)
    if candidate is not None:
        for record in records:
            name = _record_name(record)
            if name is not None and _record_version(name) == candidate:
                return DuplicateTagInfo(
                    exists=True,
                    tag_name=tag_name,
                    conflict_type=ConflictType.VERSION_CONFLICT,
                    existing_tag=record,
                )

    return DuplicateTagInfo(
        exists=False, tag_name=tag_name, conflict_type=ConflictType.NONE
    )


def _exact_match_error(info: DuplicateTagInfo, target_sha: str) -> ConflictError:
    existing = info.existing_sha or "an unknown commit"
    msg = (
        f"Tag {info.tag_name} already exists and points at {existing}, "
        f"not at {target_sha}."
    )
    suggestion = (
        f"Delete tag {info.tag_name} if it was created by mistake, or comment "
        "'/tag-bot <version>' to request a different version."
    )
    return ConflictError(msg, suggestion=suggestion)


def _require_same_commit(info: DuplicateTagInfo, target_sha: str) -> None:
    """Accept an exact match only when it already points at ``target_sha``."""
    if info.existing_sha != target_sha:
        raise _exact_match_error(info, target_sha)
    logger.info(
        "Tag %s already points at %s; nothing to create", info.tag_name, target_sha
    )


def resolve_tag_conflict(
    candidate: Version,
    tags: cabc.Sequence[TagRecord],
    *,
    target_sha: str,
    part: IncrementPart,
    max_attempts: int = DEFAULT_MAX_CONFLICT_ATTEMPTS,
) -> ConflictResolution:
    """Return the tag name to create for ``candidate``.

    Parameters
    ----------
    candidate
        Version proposed by the next-tag generator.
    tags
        Every tag currently on the repository.
    target_sha
        Commit the new tag must point at.
    part
        Increment applied while searching forward past a version conflict.
    max_attempts
        Upper bound on forward-search steps.

    Raises
    ------
    ConflictError
        Raised when the candidate exists on another commit or no free version
        is found within ``max_attempts`` steps.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValidationError(msg)

    info = check_duplicate_tag(candidate.render(), tags)
    if info.conflict_type is ConflictType.NONE:
        return ConflictResolution(
            action=ResolutionAction.CREATE,
            tag_name=info.tag_name,
            version=candidate,
            attempts=0,
            info=info,
        )
    if info.conflict_type is ConflictType.EXACT_MATCH:
        _require_same_commit(info, target_sha)
        return ConflictResolution(
            action=ResolutionAction.ALREADY_EXISTS,
            tag_name=info.tag_name,
            version=candidate,
            attempts=0,
            info=info,
        )

    logger.warning(
        "Tag %s conflicts with existing tag %s; searching for the next free version",
        info.tag_name,
        _record_name(info.existing_tag or {}),
    )
    current = candidate
    for attempt in range(1, max_attempts + 1):
        current = current.bump(part)
        probe = check_duplicate_tag(current.render(), tags)
        if probe.conflict_type is ConflictType.NONE:
            logger.info(
                "Resolved conflict with %s after %d step(s)", probe.tag_name, attempt
            )
            return ConflictResolution(
                action=ResolutionAction.CREATE,
                tag_name=probe.tag_name,
                version=current,
                attempts=attempt,
                info=probe,
            )
        logger.debug("Candidate %s is taken (%s)", probe.tag_name, probe.conflict_type)

    msg = (
        f"No free version found after {max_attempts} attempt(s) starting from "
        f"{candidate.render()}; last tried {current.render()}."
    )
    suggestion = (
        "Comment '/tag-bot <version>' with an unused version or raise "
        "max-conflict-attempts."
    )
    raise ConflictError(msg, suggestion=suggestion)


def ensure_tag_available(
    tag_name: str, tags: cabc.Iterable[TagRecord], *, target_sha: str
) -> DuplicateTagInfo:
    """Re-check ``tag_name`` against a fresh tag list right before creation.

    Returns the classification when the name is free or already points at
    ``target_sha``.

    Raises
    ------
    ConflictError
        Raised when another run created a colliding tag in the meantime.
    """
    info = check_duplicate_tag(tag_name, tags)
    if info.conflict_type is ConflictType.NONE:
        return info
    if info.conflict_type is ConflictType.EXACT_MATCH:
        _require_same_commit(info, target_sha)
        return info
    existing = _record_name(info.existing_tag or {})
    msg = f"Tag {tag_name} now conflicts with existing tag {existing}."
    raise ConflictError(msg, suggestion="Re-run the workflow to pick the next version.")
