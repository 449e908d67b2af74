"""Input guards shared by every stage of the tag bot.

Each ``validate_*`` helper returns the cleaned value on success and raises
:class:`~tag_bot.errors.ValidationError` otherwise. Callers never retry a
validation failure.
"""

from __future__ import annotations

import re
import typing as typ

from .errors import ValidationError

__all__ = [
    "SEMVER_PATTERN",
    "validate_comment_body",
    "validate_github_object",
    "validate_github_response",
    "validate_run_context",
    "validate_tag_name",
    "validate_token",
    "validate_version_string",
]

SEMVER_PATTERN = re.compile(r"\d+\.\d+\.\d+", re.ASCII)

# Characters git refuses in ref names, plus the ``@{`` reflog sigils.
_ILLEGAL_TAG_CHARS = frozenset("~^:?*[\\]@{}")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_DIGITS = re.compile(r"[0-9]+")


def _type_name(value: object) -> str:
    return "None" if value is None else type(value).__name__


def validate_version_string(value: object) -> str:
    """Return ``value`` without its ``v`` prefix when it is a valid ``x.y.z``.

    Raises
    ------
    ValidationError
        Raised for empty or non-string input, the wrong number of segments or
        any segment that is not a non-negative integer.
    """
    if not isinstance(value, str) or not value:
        msg = f"Invalid version: must be a non-empty string, got {_type_name(value)}"
        raise ValidationError(msg, hint="Use a version such as 1.0.0 or v1.0.0.")

    cleaned = value.removeprefix("v")
    parts = cleaned.split(".")
    if len(parts) != 3:
        msg = (
            "Invalid version format: must be in format x.y.z (e.g., 1.0.0), "
            f"got {value}"
        )
        raise ValidationError(msg, hint="Use exactly three dot-separated numbers.")
    for index, part in enumerate(parts):
        if not _DIGITS.fullmatch(part):
            msg = (
                f"Invalid version part at index {index}: must be a non-negative "
                f"integer, got {part!r}"
            )
            raise ValidationError(msg, hint="Use exactly three dot-separated numbers.")
    return cleaned


def validate_tag_name(value: object) -> str:
    """Return ``value`` when it is usable as a git tag name."""
    if not isinstance(value, str) or not value:
        msg = f"Tag name must be a non-empty string, got {_type_name(value)}"
        raise ValidationError(msg)
    if not value.strip():
        msg = "Tag name cannot be empty"
        raise ValidationError(msg)
    if _CONTROL_CHARS.search(value):
        msg = f"Tag name contains control characters: {value!r}"
        raise ValidationError(msg)
    if illegal := sorted(set(value) & _ILLEGAL_TAG_CHARS):
        msg = f"Tag name contains invalid characters {''.join(illegal)!r}: {value}"
        raise ValidationError(
            msg, hint="Git tag names cannot contain ~ ^ : ? * [ \\ ] @ { }."
        )
    return value


def validate_comment_body(value: object) -> str:
    """Return ``value`` when it is a non-blank comment body."""
    if not isinstance(value, str) or not value:
        msg = f"Comment body must be a non-empty string, got {_type_name(value)}"
        raise ValidationError(msg)
    if not value.strip():
        msg = "Comment body cannot be empty"
        raise ValidationError(msg)
    return value


def validate_github_response(data: object, context: str) -> typ.Any:  # noqa: ANN401
    """Return ``data`` when it has the shape of a GitHub REST payload."""
    if data is None:
        msg = f"{context}: API response data is null"
        raise ValidationError(msg)
    if not isinstance(data, (dict, list)):
        msg = (
            f"{context}: API response data must be an object or array, "
            f"got {_type_name(data)}"
        )
        raise ValidationError(msg)
    return data


def validate_github_object(data: object, context: str) -> dict[str, typ.Any]:
    """Return ``data`` when an object endpoint answered with a JSON object."""
    validate_github_response(data, context)
    if not isinstance(data, dict):
        msg = f"{context}: expected an object, got {_type_name(data)}"
        raise ValidationError(msg)
    return data


def validate_token(value: str | None) -> str:
    """Return the stripped authentication token or fail when it is blank."""
    token = (value or "").strip()
    if not token:
        msg = "GitHub token is required"
        raise ValidationError(msg, hint="Pass the github-token input to the action.")
    return token


def validate_run_context(
    *, owner: str, repo: str, pull_request_number: int | None, sha: str
) -> None:
    """Ensure the hosting context names a repository, pull request and commit."""
    if not owner or not repo:
        msg = "Repository information is missing from the GitHub context"
        raise ValidationError(msg, hint="Set GITHUB_REPOSITORY or INPUT_REPOSITORY.")
    if not pull_request_number:
        msg = "Pull request number is missing from the GitHub context"
        raise ValidationError(
            msg, hint="Run on a pull_request event or set INPUT_PULL_REQUEST_NUMBER."
        )
    if not sha:
        msg = "Commit SHA is missing from the GitHub context"
        raise ValidationError(msg, hint="Set GITHUB_SHA.")
