"""Tests for :mod:`tag_bot.output`."""

from __future__ import annotations

import dataclasses
import io
import typing as typ

import pytest

from tag_bot.engine import TagRunOutcome
from tag_bot.output import emit_annotation, summarise, write_github_output

if typ.TYPE_CHECKING:
    from pathlib import Path

CREATED = TagRunOutcome(
    tag="v1.2.0",
    previous_tag="v1.1.0",
    increment="minor",
    sha="abc123",
    ref="refs/tags/v1.2.0",
    repository="acme/widgets",
    pull_request=42,
    branch="main",
    timestamp="2026-10-19T12:30:00Z",
    created=True,
)


def test_write_github_output_appends_escaped_values(tmp_path: Path) -> None:
    """Values are appended sorted by key with newlines and % escaped."""
    output = tmp_path / "nested" / "output.txt"
    output.parent.mkdir()
    output.write_text("existing=1\n", encoding="utf-8")
    write_github_output(output, {"tag": "v1.0.0", "note": "50%\r\ndone"})
    assert output.read_text(encoding="utf-8") == (
        "existing=1\nnote=50%25%0D%0Adone\ntag=v1.0.0\n"
    )


@pytest.mark.parametrize(
    ("outcome", "expected"),
    [
        (
            CREATED,
            "Created tag v1.2.0 (minor) at abc123; previous tag v1.1.0.",
        ),
        (
            dataclasses.replace(CREATED, created=False, reason="dry-run"),
            "Tag v1.2.0 not created (dry-run).",
        ),
        (
            dataclasses.replace(
                CREATED, tag="", created=False, reason="skip-requested"
            ),
            "No tag created (skip-requested).",
        ),
    ],
)
def test_summarise(outcome: TagRunOutcome, expected: str) -> None:
    """The summary describes what happened in one line."""
    assert summarise(outcome) == expected


def test_emit_annotation() -> None:
    """Annotations use the workflow command syntax."""
    stream = io.StringIO()
    emit_annotation("error", "boom", stream=stream)
    emit_annotation("warning", "careful", title="Checks", stream=stream)
    assert stream.getvalue() == (
        "::error title=Tag Bot::boom\n::warning title=Checks::careful\n"
    )


def test_emit_annotation_escapes_multiline_messages() -> None:
    """Newlines and percent signs stay inside one annotation."""
    stream = io.StringIO()
    emit_annotation("error", "100% failed\r\nsecond line", stream=stream)
    assert stream.getvalue() == (
        "::error title=Tag Bot::100%25 failed%0D%0Asecond line\n"
    )
