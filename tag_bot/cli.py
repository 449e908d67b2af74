"""Command-line entry point for the tag bot action.

Examples
--------
Run against a merged pull request locally::

    export GITHUB_REPOSITORY=acme/widgets GITHUB_OUTPUT="$(mktemp)"
    INPUT_GITHUB_TOKEN=ghp_... INPUT_PULL_REQUEST_NUMBER=42 INPUT_DRY_RUN=true \
        uv run tag-bot
"""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
from pathlib import Path

import cyclopts
from cyclopts import App

from .commands import DEFAULT_COMMENT_IDENTIFIER
from .conflicts import DEFAULT_MAX_CONFLICT_ATTEMPTS
from .engine import RunContext, TagBotSettings, run_tag_bot
from .environment import (
    coerce_bool_strict,
    load_event,
    normalize_input_env,
    parse_check_names,
    resolve_branch,
    resolve_pull_request_number,
    resolve_repository,
    resolve_sha,
    split_repository,
)
from .errors import TagBotError
from .github_client import GITHUB_API_URL, GitHubClient
from .output import emit_annotation, summarise, write_github_output
from .retry import DEFAULT_RETRY_CONFIG
from .validation import validate_token
from .version import IncrementPart

app: App = App(
    help="Create the next semantic version tag after a pull request merge.",
    config=cyclopts.config.Env("INPUT_", command=False),
)


def _configure_logging() -> None:
    level = logging.DEBUG if os.environ.get("RUNNER_DEBUG") == "1" else logging.INFO
    logging.basicConfig(
        level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr
    )


@app.default
def main(  # noqa: PLR0913
    *,
    github_token: str,
    required_checks: str = "",
    comment_identifier: str = DEFAULT_COMMENT_IDENTIFIER,
    default_increment: str = IncrementPart.PATCH.value,
    max_conflict_attempts: int = DEFAULT_MAX_CONFLICT_ATTEMPTS,
    dry_run: str = "false",
    max_attempts: int = DEFAULT_RETRY_CONFIG.max_attempts,
    base_delay: float = DEFAULT_RETRY_CONFIG.base_delay,
    max_delay: float = DEFAULT_RETRY_CONFIG.max_delay,
    repository: str | None = None,
    pull_request_number: int | None = None,
    api_url: str | None = None,
) -> None:
    """Tag the merge commit of a pull request with the next version.

    Parameters
    ----------
    github_token
        Token with ``contents:write`` permission.
    required_checks
        Comma-separated status check names that must have succeeded.
    comment_identifier
        Prefix marking pull request comments addressed to the bot.
    default_increment
        Increment used when no comment requests one (major, minor, patch).
    max_conflict_attempts
        How many versions to try past a version conflict.
    dry_run
        When true, resolve the tag and write outputs without creating it.
    max_attempts
        Attempts per GitHub API call.
    base_delay
        Seconds to wait before the first retry.
    max_delay
        Upper bound in seconds on the retry backoff.
    repository
        Repository override in ``owner/repo`` form.
    pull_request_number
        Pull request number override.
    api_url
        GitHub API root; defaults to ``GITHUB_API_URL``.

    Raises
    ------
    SystemExit
        Raised with exit code ``1`` when the run fails. The reason is printed
        as an ``::error::`` workflow command.
    """
    _configure_logging()
    try:
        token = validate_token(github_token)
        settings = TagBotSettings(
            comment_identifier=comment_identifier.strip() or DEFAULT_COMMENT_IDENTIFIER,
            default_increment=IncrementPart.from_name(default_increment),
            required_checks=parse_check_names(required_checks),
            max_conflict_attempts=max_conflict_attempts,
            dry_run=coerce_bool_strict(dry_run, parameter="dry-run"),
            retry_config=dataclasses.replace(
                DEFAULT_RETRY_CONFIG,
                max_attempts=max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
            ),
        )
        event = load_event()
        owner, repo = split_repository(resolve_repository(repository, event))
        context = RunContext(
            owner=owner,
            repo=repo,
            pull_request_number=resolve_pull_request_number(
                pull_request_number, event
            ),
            sha=resolve_sha(event),
            branch=resolve_branch(event),
        )
        base_url = api_url or os.environ.get("GITHUB_API_URL") or GITHUB_API_URL
        with GitHubClient(token, base_url=base_url) as client:
            outcome = run_tag_bot(client, context, settings)
    except TagBotError as exc:
        emit_annotation("error", str(exc))
        raise SystemExit(1) from exc

    if github_output := os.environ.get("GITHUB_OUTPUT"):
        write_github_output(Path(github_output), outcome.as_outputs())
    print(summarise(outcome))


def run() -> None:
    """Console script entry point."""
    normalize_input_env()
    app()


if __name__ == "__main__":
    run()
