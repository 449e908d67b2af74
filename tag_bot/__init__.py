"""Create the next semantic version tag after a pull request merge.

The package resolves the latest version tag on a GitHub repository, applies
the increment requested in ``/tag-bot`` pull request comments, resolves
naming conflicts and creates the tag through the GitHub REST API.
"""

from __future__ import annotations

from .commands import (
    Command,
    Directive,
    Increment,
    ManualVersion,
    Skip,
    parse_comment_body,
    resolve_directive,
)
from .conflicts import (
    ConflictResolution,
    ConflictType,
    DuplicateTagInfo,
    ResolutionAction,
    check_duplicate_tag,
    ensure_tag_available,
    resolve_tag_conflict,
)
from .engine import RunContext, TagBotSettings, TagRunOutcome, run_tag_bot
from .errors import (
    ConflictError,
    GitHubAPIError,
    RemoteOperationError,
    StatusCheckError,
    TagBotError,
    ValidationError,
)
from .github_client import GitHubClient, Tagger
from .resolution import determine_last_tag, generate_next_tag, last_tag_or_baseline
from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, RetryResult, execute_with_retry
from .tag import Tag
from .version import Comparison, IncrementPart, Version

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "Command",
    "Comparison",
    "ConflictError",
    "ConflictResolution",
    "ConflictType",
    "Directive",
    "DuplicateTagInfo",
    "GitHubAPIError",
    "GitHubClient",
    "Increment",
    "IncrementPart",
    "ManualVersion",
    "RemoteOperationError",
    "ResolutionAction",
    "RetryConfig",
    "RetryResult",
    "RunContext",
    "Skip",
    "StatusCheckError",
    "Tag",
    "TagBotError",
    "TagBotSettings",
    "TagRunOutcome",
    "Tagger",
    "ValidationError",
    "Version",
    "check_duplicate_tag",
    "determine_last_tag",
    "ensure_tag_available",
    "execute_with_retry",
    "generate_next_tag",
    "last_tag_or_baseline",
    "parse_comment_body",
    "resolve_directive",
    "resolve_tag_conflict",
    "run_tag_bot",
]
