"""Run the tag bot for one merged pull request.

The run is strictly sequential; each step needs the previous result:

1. fetch the pull request and confirm it was merged;
2. look up branch protection (advisory only);
3. gate on the required status checks;
4. resolve the directive from the pull request comments;
5. determine the latest tag and generate the next version;
6. resolve conflicts, re-check against a fresh tag list, then create the
   annotated tag and its ref.

Every remote call goes through :func:`tag_bot.retry.execute_with_retry`.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import datetime as dt
import logging
import time
import typing as typ

from .commands import (
    DEFAULT_COMMENT_IDENTIFIER,
    Directive,
    Increment,
    ManualVersion,
    Skip,
    resolve_directive,
)
from .conflicts import (
    DEFAULT_MAX_CONFLICT_ATTEMPTS,
    ConflictType,
    ResolutionAction,
    ensure_tag_available,
    resolve_tag_conflict,
)
from .errors import (
    GitHubAPIError,
    RemoteOperationError,
    StatusCheckError,
    TagBotError,
)
from .github_client import Tagger
from .resolution import generate_next_tag, last_tag_or_baseline
from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, RetryResult, execute_with_retry
from .validation import validate_github_object, validate_run_context
from .version import IncrementPart, Version

if typ.TYPE_CHECKING:
    from .tag import Tag

__all__ = [
    "GitHubOperations",
    "RunContext",
    "TagBotSettings",
    "TagRunOutcome",
    "run_tag_bot",
]

logger = logging.getLogger(__name__)

type JsonObject = dict[str, typ.Any]


class GitHubOperations(typ.Protocol):
    """Remote operations the engine consumes."""

    def list_tags(self, owner: str, repo: str) -> list[JsonObject]: ...

    def list_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> list[JsonObject]: ...

    def create_tag(
        self,
        owner: str,
        repo: str,
        *,
        tag: str,
        message: str,
        object_sha: str,
        tagger: JsonObject,
    ) -> JsonObject: ...

    def create_ref(
        self, owner: str, repo: str, *, ref: str, sha: str
    ) -> JsonObject: ...

    def get_combined_status_for_ref(
        self, owner: str, repo: str, ref: str
    ) -> JsonObject: ...

    def get_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> JsonObject: ...

    def get_pull_request(
        self, owner: str, repo: str, number: int
    ) -> JsonObject: ...


@dataclasses.dataclass(frozen=True, slots=True)
class RunContext:
    """Repository and pull request the run acts on."""

    owner: str
    repo: str
    pull_request_number: int
    sha: str
    branch: str = ""

    @property
    def full_name(self) -> str:
        """Repository in ``owner/repo`` form."""
        return f"{self.owner}/{self.repo}"


@dataclasses.dataclass(frozen=True, slots=True)
class TagBotSettings:
    """Behavioural knobs for a run."""

    comment_identifier: str = DEFAULT_COMMENT_IDENTIFIER
    default_increment: IncrementPart = IncrementPart.PATCH
    required_checks: tuple[str, ...] = ()
    max_conflict_attempts: int = DEFAULT_MAX_CONFLICT_ATTEMPTS
    dry_run: bool = False
    retry_config: RetryConfig = DEFAULT_RETRY_CONFIG
    tagger: Tagger = dataclasses.field(default_factory=Tagger)


@dataclasses.dataclass(frozen=True, slots=True)
class TagRunOutcome:
    """Values published as action outputs.

    ``tag`` holds the resolved tag name even when nothing was created (dry
    run, or the tag already pointed at the merge commit); ``created`` tells
    the two apart and ``reason`` explains why nothing was created.
    """

    tag: str
    previous_tag: str
    increment: str
    sha: str
    ref: str
    repository: str
    pull_request: int
    branch: str
    timestamp: str
    created: bool
    reason: str = ""

    def as_outputs(self) -> dict[str, str]:
        """Return the outcome as GitHub Actions output strings."""
        return {
            "tag": self.tag,
            "previous_tag": self.previous_tag,
            "increment": self.increment,
            "sha": self.sha,
            "ref": self.ref,
            "repository": self.repository,
            "pull_request": str(self.pull_request),
            "branch": self.branch,
            "timestamp": self.timestamp,
            "created": str(self.created).lower(),
            "reason": self.reason,
        }


@dataclasses.dataclass(slots=True)
class _Remote:
    """Bind the client to the retry policy for one run."""

    client: GitHubOperations
    config: RetryConfig
    sleep: cabc.Callable[[float], None]

    def attempt[T](
        self, description: str, operation: cabc.Callable[[], T]
    ) -> RetryResult[T]:
        return execute_with_retry(
            operation, self.config, description=description, sleep=self.sleep
        )

    def call[T](self, description: str, operation: cabc.Callable[[], T]) -> T:
        result = self.attempt(description, operation)
        if result.success:
            return typ.cast("T", result.data)
        error = result.error
        if isinstance(error, TagBotError) and not isinstance(error, GitHubAPIError):
            raise error
        msg = f"{description} failed after {result.attempts} attempt(s): {error}"
        raise RemoteOperationError(msg, attempts=result.attempts) from error


def _timestamp(now: dt.datetime | None) -> str:
    moment = now or dt.datetime.now(dt.UTC)
    return moment.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _check_branch_protection(
    remote: _Remote, context: RunContext, branch: str
) -> None:
    """Log the branch protection state; lookups never fail the run."""
    if not branch:
        logger.debug("No base branch known; skipping branch protection lookup")
        return
    result = remote.attempt(
        "Get branch protection",
        lambda: remote.client.get_branch_protection(
            context.owner, context.repo, branch
        ),
    )
    if result.success:
        logger.info("Branch %s is protected", branch)
    elif isinstance(result.error, GitHubAPIError) and result.error.is_not_found:
        logger.info("Branch %s has no protection rules", branch)
    else:
        logger.warning(
            "Could not read branch protection for %s: %s", branch, result.error
        )


def _check_required_statuses(
    remote: _Remote, context: RunContext, sha: str, required: tuple[str, ...]
) -> None:
    """Raise :class:`StatusCheckError` unless every required check succeeded."""
    if not required:
        return
    combined = remote.call(
        "Get combined status",
        lambda: remote.client.get_combined_status_for_ref(
            context.owner, context.repo, sha
        ),
    )
    validate_github_object(combined, "Get combined status")
    states: dict[str, str] = {}
    for status in combined.get("statuses") or []:
        if isinstance(status, dict) and isinstance(status.get("context"), str):
            states.setdefault(status["context"], str(status.get("state", "")))
    missing = [name for name in required if name not in states]
    failing = [
        f"{name} ({states[name]})"
        for name in required
        if name in states and states[name] != "success"
    ]
    if missing or failing:
        problems = []
        if missing:
            problems.append(f"missing: {', '.join(missing)}")
        if failing:
            problems.append(f"not successful: {', '.join(failing)}")
        detail = "; ".join(problems)
        msg = f"Required status checks for {sha} are not satisfied ({detail})"
        raise StatusCheckError(msg)
    logger.info("All required status checks passed: %s", ", ".join(required))


def _candidate_for(
    directive: Directive, last_tag: Tag, default_part: IncrementPart
) -> tuple[Version, IncrementPart]:
    """Return the proposed version and the part used to search past conflicts."""
    match directive.command:
        case ManualVersion(version=version):
            candidate = generate_next_tag(last_tag.version, manual_version=version)
            if candidate <= last_tag.to_version():
                logger.warning(
                    "Requested version %s is not newer than %s",
                    candidate.render(),
                    last_tag.name,
                )
            return candidate, default_part
        case Increment(part=part):
            return generate_next_tag(last_tag.version, part), part
    msg = f"Cannot generate a version for {directive.command!r}"
    raise TagBotError(msg)


def _create(
    remote: _Remote,
    context: RunContext,
    settings: TagBotSettings,
    *,
    tag_name: str,
    target_sha: str,
    timestamp: str,
) -> tuple[str, bool]:
    """Create the annotated tag and its ref; return ``(ref, created)``."""
    tag_object = remote.call(
        f"Create tag {tag_name}",
        lambda: remote.client.create_tag(
            context.owner,
            context.repo,
            tag=tag_name,
            message=f"Release {tag_name}",
            object_sha=target_sha,
            tagger=settings.tagger.as_payload(timestamp),
        ),
    )
    validate_github_object(tag_object, f"Create tag {tag_name}")
    ref = f"refs/tags/{tag_name}"
    object_sha = str(tag_object.get("sha") or target_sha)
    result = remote.attempt(
        f"Create ref {ref}",
        lambda: remote.client.create_ref(
            context.owner, context.repo, ref=ref, sha=object_sha
        ),
    )
    if result.success:
        created = validate_github_object(result.data, f"Create ref {ref}")
        logger.info("Created %s at %s", created.get("ref", ref), target_sha)
        return str(created.get("ref", ref)), True

    error = result.error
    if isinstance(error, GitHubAPIError) and error.status == 422:
        # Another run may have created the ref since the safety check.
        tags = remote.call(
            "List tags",
            lambda: remote.client.list_tags(context.owner, context.repo),
        )
        info = ensure_tag_available(tag_name, tags, target_sha=target_sha)
        if info.conflict_type is ConflictType.EXACT_MATCH:
            return ref, False
    msg = f"Create ref {ref} failed after {result.attempts} attempt(s): {error}"
    raise RemoteOperationError(msg, attempts=result.attempts) from error


def run_tag_bot(
    client: GitHubOperations,
    context: RunContext,
    settings: TagBotSettings | None = None,
    *,
    now: dt.datetime | None = None,
    sleep: cabc.Callable[[float], None] = time.sleep,
) -> TagRunOutcome:
    """Resolve and create the next tag for a merged pull request.

    Parameters
    ----------
    client
        GitHub operations, normally a :class:`~tag_bot.github_client.GitHubClient`.
    context
        Repository, pull request and commit of this run.
    settings
        Run configuration; defaults apply when omitted.
    now
        Timestamp recorded on the tag and in the outputs.
    sleep
        Function used for retry waits.

    Returns
    -------
    TagRunOutcome
        Outputs describing what the run did.

    Raises
    ------
    TagBotError
        Raised for validation failures, conflicts, unmet status checks and
        remote failures that outlast the retry budget.
    """
    settings = settings or TagBotSettings()
    validate_run_context(
        owner=context.owner,
        repo=context.repo,
        pull_request_number=context.pull_request_number,
        sha=context.sha,
    )
    remote = _Remote(client=client, config=settings.retry_config, sleep=sleep)
    timestamp = _timestamp(now)

    def outcome(**values: typ.Any) -> TagRunOutcome:  # noqa: ANN401
        defaults: dict[str, typ.Any] = {
            "tag": "",
            "previous_tag": "",
            "increment": "skipped",
            "sha": context.sha,
            "ref": "",
            "repository": context.full_name,
            "pull_request": context.pull_request_number,
            "branch": context.branch,
            "timestamp": timestamp,
            "created": False,
        }
        return TagRunOutcome(**(defaults | values))

    pull_request = remote.call(
        "Get pull request",
        lambda: client.get_pull_request(
            context.owner, context.repo, context.pull_request_number
        ),
    )
    validate_github_object(pull_request, "Get pull request")
    if not pull_request.get("merged"):
        logger.info(
            "Pull request #%d is not merged; nothing to tag",
            context.pull_request_number,
        )
        return outcome(reason="pull-request-not-merged")

    target_sha = str(pull_request.get("merge_commit_sha") or context.sha)
    base = pull_request.get("base")
    branch = context.branch or (
        str(base.get("ref") or "") if isinstance(base, dict) else ""
    )

    _check_branch_protection(remote, context, branch)
    _check_required_statuses(remote, context, target_sha, settings.required_checks)

    comments = remote.call(
        "List comments",
        lambda: client.list_comments(
            context.owner, context.repo, context.pull_request_number
        ),
    )
    directive = resolve_directive(
        comments,
        identifier=settings.comment_identifier,
        default_part=settings.default_increment,
    )
    if isinstance(directive.command, Skip):
        logger.info("Skip requested in pull request comments")
        return outcome(sha=target_sha, branch=branch, reason="skip-requested")

    tags = remote.call(
        "List tags", lambda: client.list_tags(context.owner, context.repo)
    )
    last_tag = last_tag_or_baseline(tags)
    candidate, search_part = _candidate_for(
        directive, last_tag, settings.default_increment
    )
    logger.info("Latest tag %s; proposing %s", last_tag.name, candidate.render())

    resolution = resolve_tag_conflict(
        candidate,
        tags,
        target_sha=target_sha,
        part=search_part,
        max_attempts=settings.max_conflict_attempts,
    )
    tag_name = resolution.tag_name
    common = {
        "tag": tag_name,
        "previous_tag": last_tag.name,
        "increment": directive.mode,
        "sha": target_sha,
        "branch": branch,
    }
    if resolution.action is ResolutionAction.ALREADY_EXISTS:
        return outcome(**common, ref=f"refs/tags/{tag_name}", reason="tag-exists")
    if settings.dry_run:
        logger.info("Dry run: would create %s at %s", tag_name, target_sha)
        return outcome(**common, reason="dry-run")

    fresh_tags = remote.call(
        "List tags", lambda: client.list_tags(context.owner, context.repo)
    )
    info = ensure_tag_available(tag_name, fresh_tags, target_sha=target_sha)
    if info.conflict_type is ConflictType.EXACT_MATCH:
        return outcome(**common, ref=f"refs/tags/{tag_name}", reason="tag-exists")

    ref, created = _create(
        remote,
        context,
        settings,
        tag_name=tag_name,
        target_sha=target_sha,
        timestamp=timestamp,
    )
    return outcome(
        **common, ref=ref, created=created, reason="" if created else "tag-exists"
    )
