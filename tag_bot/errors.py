"""Error types shared across the tag bot package."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = [
    "ConflictError",
    "GitHubAPIError",
    "RemoteOperationError",
    "StatusCheckError",
    "TagBotError",
    "ValidationError",
]


class TagBotError(RuntimeError):
    """Raised when a tag bot run cannot continue."""


class ValidationError(TagBotError):
    """Raised when an input, tag name, command or payload is malformed.

    Parameters
    ----------
    message
        Description of the problem.
    hint
        Optional remediation shown alongside the message.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        message = super().__str__()
        if self.hint:
            return f"{message} (hint: {self.hint})"
        return message


class ConflictError(TagBotError):
    """Raised when the proposed tag collides with history that must not move."""

    def __init__(self, message: str, *, suggestion: str) -> None:
        super().__init__(message)
        self.suggestion = suggestion

    def __str__(self) -> str:
        return f"{super().__str__()} Suggested resolution: {self.suggestion}"


class StatusCheckError(TagBotError):
    """Raised when required status checks are missing or not successful."""


class RemoteOperationError(TagBotError):
    """Raised when a remote operation fails after the retry budget is spent."""

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class GitHubAPIError(TagBotError):
    """Raised by the REST client for non-successful GitHub responses.

    Attributes
    ----------
    status
        HTTP status code returned by GitHub.
    headers
        Response headers with lower-cased names, used for rate-limit
        accounting.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int,
        headers: cabc.Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.headers = {key.lower(): value for key, value in (headers or {}).items()}

    @property
    def is_not_found(self) -> bool:
        """Return True when GitHub answered 404."""
        return self.status == 404
