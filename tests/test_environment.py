"""Tests for :mod:`tag_bot.environment`."""

from __future__ import annotations

import json
import os
import typing as typ

import pytest

from tag_bot.environment import (
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
from tag_bot.errors import ValidationError

if typ.TYPE_CHECKING:
    from pathlib import Path

EVENT = {
    "repository": {"full_name": "acme/widgets"},
    "pull_request": {
        "number": 42,
        "merge_commit_sha": "merge-sha",
        "base": {"ref": "main"},
    },
}


class TestNormalizeInputEnv:
    """Tests for normalize_input_env."""

    def test_dashed_keys_are_renamed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """``INPUT_DRY-RUN`` becomes ``INPUT_DRY_RUN``."""
        monkeypatch.delenv("INPUT_DRY_RUN", raising=False)
        monkeypatch.setenv("INPUT_DRY-RUN", "true")
        normalize_input_env()
        assert os.environ["INPUT_DRY_RUN"] == "true"
        assert "INPUT_DRY-RUN" not in os.environ

    def test_existing_underscore_key_wins(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An already populated underscore key is kept."""
        monkeypatch.setenv("INPUT_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("INPUT_MAX-ATTEMPTS", "2")
        normalize_input_env()
        assert os.environ["INPUT_MAX_ATTEMPTS"] == "5"
        assert "INPUT_MAX-ATTEMPTS" not in os.environ


class TestCoerceBoolStrict:
    """Tests for coerce_bool_strict."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("true", True),
            ("YES", True),
            ("1", True),
            (" on ", True),
            ("false", False),
            ("0", False),
            ("", False),
            (True, True),
            (False, False),
        ],
    )
    def test_accepted_values(
        self,
        value: bool | str,  # noqa: FBT001
        expected: bool,  # noqa: FBT001
    ) -> None:
        """Boolean-like strings and booleans are coerced."""
        assert coerce_bool_strict(value, parameter="dry-run") is expected

    def test_rejects_other_strings(self) -> None:
        """Anything else names the parameter."""
        with pytest.raises(ValidationError, match="dry-run"):
            coerce_bool_strict("maybe", parameter="dry-run")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ()),
        ("", ()),
        ("ci", ("ci",)),
        (" ci , lint,, build ", ("ci", "lint", "build")),
    ],
)
def test_parse_check_names(value: str | None, expected: tuple[str, ...]) -> None:
    """Check names are split on commas and trimmed."""
    assert parse_check_names(value) == expected


class TestLoadEvent:
    """Tests for load_event."""

    def test_reads_payload(self, tmp_path: Path) -> None:
        """The JSON payload at ``GITHUB_EVENT_PATH`` is returned."""
        path = tmp_path / "event.json"
        path.write_text(json.dumps(EVENT), encoding="utf-8")
        assert load_event({"GITHUB_EVENT_PATH": str(path)}) == EVENT

    def test_missing_path(self, tmp_path: Path) -> None:
        """No path or a missing file yields None."""
        assert load_event({}) is None
        assert load_event({"GITHUB_EVENT_PATH": str(tmp_path / "nope")}) is None

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Unparseable payloads are rejected."""
        path = tmp_path / "event.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValidationError, match="event payload"):
            load_event({"GITHUB_EVENT_PATH": str(path)})


class TestResolvers:
    """Tests for the context resolvers."""

    def test_repository_precedence(self) -> None:
        """Input beats event, event beats environment."""
        env = {"GITHUB_REPOSITORY": "env/repo"}
        assert resolve_repository(" input/repo ", EVENT, env) == "input/repo"
        assert resolve_repository(None, EVENT, env) == "acme/widgets"
        assert resolve_repository(None, None, env) == "env/repo"

    def test_repository_missing(self) -> None:
        """Without any source the repository is an error."""
        with pytest.raises(ValidationError, match="Repository not provided"):
            resolve_repository(None, {"repository": "bogus"}, {})

    @pytest.mark.parametrize("value", ["acme", "acme/", "/widgets", "a/b/c"])
    def test_split_repository_rejects_malformed(self, value: str) -> None:
        """Only ``owner/repo`` is accepted."""
        with pytest.raises(ValidationError, match="owner/repo"):
            split_repository(value)

    def test_split_repository(self) -> None:
        """Owner and repository are split."""
        assert split_repository("acme/widgets") == ("acme", "widgets")

    def test_pull_request_number(self) -> None:
        """The input overrides the event number."""
        assert resolve_pull_request_number(7, EVENT) == 7
        assert resolve_pull_request_number(None, EVENT) == 42
        with pytest.raises(ValidationError, match="Pull request number"):
            resolve_pull_request_number(None, {"pull_request": {"number": "x"}})

    def test_sha_and_branch(self) -> None:
        """Event values win; environment variables are the fallback."""
        env = {"GITHUB_SHA": "env-sha", "GITHUB_BASE_REF": "develop"}
        assert resolve_sha(EVENT, env) == "merge-sha"
        assert resolve_sha(None, env) == "env-sha"
        assert resolve_sha(None, {}) == ""
        assert resolve_branch(EVENT, env) == "main"
        assert resolve_branch({}, env) == "develop"
