"""Read the GitHub Actions hosting context.

Inputs reach the action as ``INPUT_*`` variables and the triggering event as a
JSON payload at ``GITHUB_EVENT_PATH``. The helpers here turn those into plain
values and raise :class:`~tag_bot.errors.ValidationError` when something
required is missing.
"""

from __future__ import annotations

import json
import os
import typing as typ
from pathlib import Path

from .errors import ValidationError

__all__ = [
    "coerce_bool_strict",
    "load_event",
    "normalize_input_env",
    "parse_check_names",
    "resolve_branch",
    "resolve_pull_request_number",
    "resolve_repository",
    "resolve_sha",
    "split_repository",
]

type Event = dict[str, typ.Any]

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def normalize_input_env(prefix: str = "INPUT_") -> None:
    """Rename dashed input keys such as ``INPUT_DRY-RUN`` to ``INPUT_DRY_RUN``.

    GitHub exports inputs with the spelling used in ``action.yml``. An
    underscore key that is already set wins over its dashed twin; the dashed
    key is removed either way.
    """
    alt_prefix = prefix.replace("_", "-")
    updates: dict[str, str] = {}
    removals: list[str] = []
    for key, value in os.environ.items():
        if not key.startswith((prefix, alt_prefix)) or "-" not in key:
            continue
        normalized = key.replace("-", "_")
        if not os.environ.get(normalized):
            updates[normalized] = value
        removals.append(key)
    for key, value in updates.items():
        os.environ[key] = value
    for key in removals:
        os.environ.pop(key, None)


def coerce_bool_strict(value: bool | str, *, parameter: str) -> bool:  # noqa: FBT001
    """Coerce a boolean-like input, treating an empty string as False.

    Examples
    --------
    >>> coerce_bool_strict("yes", parameter="dry-run")
    True
    >>> coerce_bool_strict("", parameter="dry-run")
    False
    """
    if isinstance(value, bool):
        return value
    normalised = value.strip().lower()
    if normalised in _TRUTHY:
        return True
    if normalised in {*_FALSY, ""}:
        return False
    msg = f"Invalid value for {parameter}: {value!r}. Expected a boolean-like string."
    raise ValidationError(msg)


def parse_check_names(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated list of status check names."""
    if not value:
        return ()
    return tuple(name for part in value.split(",") if (name := part.strip()))


def load_event(env: typ.Mapping[str, str] | None = None) -> Event | None:
    """Load the event payload from ``GITHUB_EVENT_PATH`` when present."""
    source = os.environ if env is None else env
    event_path = source.get("GITHUB_EVENT_PATH")
    if not event_path:
        return None
    path = Path(event_path)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Failed to parse event payload: {exc}"
        raise ValidationError(msg) from exc
    return payload if isinstance(payload, dict) else None


def _pull_request(event: Event | None) -> dict[str, typ.Any]:
    if not event:
        return {}
    pr = event.get("pull_request")
    return pr if isinstance(pr, dict) else {}


def resolve_repository(
    repository: str | None,
    event: Event | None,
    env: typ.Mapping[str, str] | None = None,
) -> str:
    """Resolve ``owner/repo`` from the input, event payload or environment."""
    source = os.environ if env is None else env
    if repository and (candidate := repository.strip()):
        return candidate
    repository_info = (event or {}).get("repository")
    if isinstance(repository_info, dict):
        full_name = repository_info.get("full_name")
        if isinstance(full_name, str) and full_name.strip():
            return full_name.strip()
    if repo := source.get("GITHUB_REPOSITORY"):
        return repo
    msg = "Repository not provided"
    raise ValidationError(msg, hint="Set INPUT_REPOSITORY or GITHUB_REPOSITORY.")


def split_repository(full_name: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its two components."""
    parts = full_name.split("/")
    if len(parts) != 2 or not all(parts):
        msg = f"Repository '{full_name}' must be in owner/repo form."
        raise ValidationError(msg)
    return parts[0], parts[1]


def resolve_pull_request_number(
    pull_request_number: int | None, event: Event | None
) -> int:
    """Resolve the pull request number from the input or the event payload."""
    if pull_request_number is not None:
        return pull_request_number
    number = _pull_request(event).get("number")
    if number is not None:
        try:
            return int(number)
        except (TypeError, ValueError):
            pass
    msg = "Pull request number not provided"
    raise ValidationError(
        msg,
        hint="Run on a pull_request event or set INPUT_PULL_REQUEST_NUMBER.",
    )


def resolve_sha(event: Event | None, env: typ.Mapping[str, str] | None = None) -> str:
    """Return the merge commit SHA from the event, falling back to GITHUB_SHA."""
    source = os.environ if env is None else env
    merge_sha = _pull_request(event).get("merge_commit_sha")
    if isinstance(merge_sha, str) and merge_sha:
        return merge_sha
    return source.get("GITHUB_SHA", "")


def resolve_branch(
    event: Event | None, env: typ.Mapping[str, str] | None = None
) -> str:
    """Return the pull request's base branch, or ``GITHUB_BASE_REF``."""
    source = os.environ if env is None else env
    base = _pull_request(event).get("base")
    if isinstance(base, dict) and isinstance(base.get("ref"), str):
        return base["ref"]
    return source.get("GITHUB_BASE_REF", "")
