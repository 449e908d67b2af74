"""Pytest configuration for tag bot tests."""

from __future__ import annotations

import collections
import sys
import typing as typ

import pytest

from tag_bot.engine import RunContext, TagBotSettings
from tag_bot.errors import GitHubAPIError
from tag_bot.retry import RetryConfig

MERGE_SHA = "a" * 40
OTHER_SHA = "b" * 40

sys.modules.setdefault("tag_bot_conftest", sys.modules[__name__])


def tag_record(name: str, sha: str = OTHER_SHA) -> dict[str, typ.Any]:
    """Return a tag record shaped like GitHub's ``GET /repos/{o}/{r}/tags``."""
    return {"name": name, "commit": {"sha": sha}}


def comment(body: str) -> dict[str, typ.Any]:
    """Return an issue comment record with ``body``."""
    return {"body": body}


class FakeGitHub:
    """In-memory stand-in for :class:`tag_bot.github_client.GitHubClient`.

    Queue exceptions in :attr:`failures` under a method name to make the next
    calls of that method fail in order.
    """

    def __init__(
        self,
        *,
        tags: list[dict[str, typ.Any]] | None = None,
        comments: list[dict[str, typ.Any]] | None = None,
        pull_request: dict[str, typ.Any] | None = None,
        statuses: list[dict[str, str]] | None = None,
        protection: dict[str, typ.Any] | None = None,
    ) -> None:
        self.tags = list(tags or [])
        self.comments = list(comments or [])
        self.pull_request = pull_request or {
            "state": "closed",
            "merged": True,
            "merge_commit_sha": MERGE_SHA,
            "merged_at": "2026-10-19T10:00:00Z",
            "base": {"ref": "main"},
        }
        self.statuses = list(statuses or [])
        self.protection = protection
        self.calls: list[str] = []
        self.failures: collections.defaultdict[str, list[Exception]] = (
            collections.defaultdict(list)
        )
        self.created_tags: list[dict[str, typ.Any]] = []
        self.created_refs: list[dict[str, str]] = []
        self._tag_objects: dict[str, str] = {}

    def __enter__(self) -> FakeGitHub:
        return self

    def __exit__(self, *_exc: object) -> None:
        return None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if queue := self.failures.get(name):
            raise queue.pop(0)

    def list_tags(self, owner: str, repo: str) -> list[dict[str, typ.Any]]:
        self._record("list_tags")
        return [dict(tag) for tag in self.tags]

    def list_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> list[dict[str, typ.Any]]:
        self._record("list_comments")
        return list(self.comments)

    def create_tag(
        self,
        owner: str,
        repo: str,
        *,
        tag: str,
        message: str,
        object_sha: str,
        tagger: dict[str, typ.Any],
    ) -> dict[str, typ.Any]:
        self._record("create_tag")
        tag_sha = f"tag-object-{tag}"
        self._tag_objects[tag_sha] = object_sha
        self.created_tags.append(
            {"tag": tag, "message": message, "object": object_sha, "tagger": tagger}
        )
        return {"tag": tag, "sha": tag_sha}

    def create_ref(
        self, owner: str, repo: str, *, ref: str, sha: str
    ) -> dict[str, typ.Any]:
        self._record("create_ref")
        self.created_refs.append({"ref": ref, "sha": sha})
        commit_sha = self._tag_objects.get(sha, sha)
        self.tags.append(tag_record(ref.removeprefix("refs/tags/"), commit_sha))
        return {"ref": ref, "object": {"sha": sha}}

    def get_combined_status_for_ref(
        self, owner: str, repo: str, ref: str
    ) -> dict[str, typ.Any]:
        self._record("get_combined_status_for_ref")
        return {"state": "success", "statuses": list(self.statuses)}

    def get_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> dict[str, typ.Any]:
        self._record("get_branch_protection")
        if self.protection is None:
            msg = "Get branch protection failed with status 404: Branch not protected"
            raise GitHubAPIError(msg, status=404)
        return self.protection

    def get_pull_request(
        self, owner: str, repo: str, number: int
    ) -> dict[str, typ.Any]:
        self._record("get_pull_request")
        return dict(self.pull_request)


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Return a fake GitHub with a merged pull request and no tags."""
    return FakeGitHub()


@pytest.fixture
def run_context() -> RunContext:
    """Return the context of a merged pull request on ``acme/widgets``."""
    return RunContext(
        owner="acme",
        repo="widgets",
        pull_request_number=42,
        sha=MERGE_SHA,
        branch="main",
    )


@pytest.fixture
def fast_settings() -> TagBotSettings:
    """Return settings with a deterministic, non-jittered retry policy."""
    return TagBotSettings(
        retry_config=RetryConfig(max_attempts=3, base_delay=1.0, jitter=False)
    )


@pytest.fixture
def sleeps() -> list[float]:
    """Collect retry waits instead of sleeping."""
    return []


@pytest.fixture
def record_sleep(sleeps: list[float]) -> typ.Callable[[float], None]:
    """Return a ``sleep`` replacement that appends to :func:`sleeps`."""
    return sleeps.append
