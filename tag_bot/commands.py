"""Parse ``/tag-bot`` commands out of pull request comments.

Grammar
-------
A comment qualifies when its body starts with the configured identifier
(``/tag-bot`` by default). The remainder, trimmed, is one of:

``skip``
    Do not create a tag for this merge (case-insensitive).
``v1.2.3`` or ``1.2.3``
    Use this exact version.
``major`` | ``minor`` | ``patch``
    Increment the given component of the latest tag.

Anything else is rejected with a message listing the valid commands.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import logging
import re
import typing as typ

from .errors import ValidationError
from .validation import validate_comment_body
from .version import IncrementPart

__all__ = [
    "DEFAULT_COMMENT_IDENTIFIER",
    "Command",
    "Directive",
    "Increment",
    "ManualVersion",
    "Skip",
    "parse_comment_body",
    "resolve_directive",
]

logger = logging.getLogger(__name__)

DEFAULT_COMMENT_IDENTIFIER = "/tag-bot"

_MANUAL_VERSION = re.compile(r"v?(\d+\.\d+\.\d+)", re.ASCII)
_VALID_COMMANDS = "skip, major, minor, patch, or a version such as v1.2.3"


@dataclasses.dataclass(frozen=True, slots=True)
class Skip:
    """Do not tag this merge."""


@dataclasses.dataclass(frozen=True, slots=True)
class ManualVersion:
    """Tag with an explicit version, stored without the ``v`` prefix."""

    version: str


@dataclasses.dataclass(frozen=True, slots=True)
class Increment:
    """Bump ``part`` of the latest tag."""

    part: IncrementPart


type Command = Skip | ManualVersion | Increment


@dataclasses.dataclass(frozen=True, slots=True)
class Directive:
    """The command a run acts on and where it came from."""

    command: Command
    from_comment: bool

    @property
    def mode(self) -> str:
        """Increment mode reported in the action outputs."""
        match self.command:
            case Skip():
                return "skipped"
            case ManualVersion():
                return "manual"
            case Increment(part=part):
                return part.value
        msg = f"Unsupported command: {self.command!r}"
        raise ValidationError(msg)


def parse_comment_body(
    body: str, identifier: str = DEFAULT_COMMENT_IDENTIFIER
) -> Command | None:
    """Return the command carried by ``body``.

    Parameters
    ----------
    body
        Raw comment text.
    identifier
        Prefix that marks a comment as a tag bot command.

    Returns
    -------
    Command or None
        The parsed command, or ``None`` when the comment does not start with
        ``identifier``.

    Raises
    ------
    ValidationError
        Raised when the comment addresses the bot but the command is not
        recognised.
    """
    validate_comment_body(body)
    if not body.startswith(identifier):
        return None

    argument = body[len(identifier) :].strip()
    if not argument:
        msg = f"Empty {identifier} command; expected {_VALID_COMMANDS}"
        raise ValidationError(msg, hint=f"Write e.g. '{identifier} minor'.")
    if argument.lower() == "skip":
        return Skip()
    if match := _MANUAL_VERSION.fullmatch(argument):
        return ManualVersion(version=match.group(1))

    capitalised = argument.capitalize()
    if capitalised in {"Major", "Minor", "Patch"}:
        return Increment(part=IncrementPart.from_name(capitalised))
    msg = f"Unknown {identifier} command {argument!r}; expected {_VALID_COMMANDS}"
    raise ValidationError(msg, hint=f"Write e.g. '{identifier} patch'.")


def _comment_body(comment: cabc.Mapping[str, typ.Any]) -> str | None:
    body = comment.get("body")
    return body if isinstance(body, str) else None


def resolve_directive(
    comments: cabc.Iterable[cabc.Mapping[str, typ.Any]],
    *,
    identifier: str = DEFAULT_COMMENT_IDENTIFIER,
    default_part: IncrementPart = IncrementPart.PATCH,
) -> Directive:
    """Scan ``comments`` in order and return the directive for this run.

    Later commands overwrite earlier ones, so the last valid command in the
    order GitHub returned the comments wins. A malformed command is logged and
    ignored, leaving the pending directive untouched. Without any command the
    ``default_part`` increment applies.
    """
    directive = Directive(command=Increment(part=default_part), from_comment=False)
    for index, comment in enumerate(comments):
        body = _comment_body(comment)
        if not body or not body.strip():
            continue
        try:
            command = parse_comment_body(body, identifier)
        except ValidationError as exc:
            logger.warning("Ignoring comment #%d: %s", index + 1, exc)
            continue
        if command is None:
            continue
        logger.debug("Comment #%d requests %r", index + 1, command)
        directive = Directive(command=command, from_comment=True)
    logger.info("Resolved directive: %s", directive.mode)
    return directive
