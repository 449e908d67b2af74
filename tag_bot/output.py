"""Write tag bot results for downstream workflow steps."""

from __future__ import annotations

import sys
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .engine import TagRunOutcome

__all__ = ["emit_annotation", "summarise", "write_github_output"]


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _format_output(key: str, value: str) -> str:
    """Format a value for GitHub Actions output with escaping."""
    return f"{key}={_escape_data(value)}\n"


def write_github_output(file: Path, values: typ.Mapping[str, str]) -> None:
    """Append ``values`` to the GitHub Actions output ``file``.

    Parameters
    ----------
    file
        Target ``GITHUB_OUTPUT`` file that receives the exported values.
    values
        Mapping of output names to string values.
    """
    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        for key, value in sorted(values.items()):
            handle.write(_format_output(key, value))


def summarise(outcome: TagRunOutcome) -> str:
    """Return a one-line, human readable description of ``outcome``."""
    if outcome.created:
        return (
            f"Created tag {outcome.tag} ({outcome.increment}) at {outcome.sha}; "
            f"previous tag {outcome.previous_tag}."
        )
    if outcome.tag:
        return f"Tag {outcome.tag} not created ({outcome.reason})."
    return f"No tag created ({outcome.reason or outcome.increment})."


def emit_annotation(
    level: str,
    message: str,
    *,
    title: str = "Tag Bot",
    stream: typ.TextIO | None = None,
) -> None:
    """Print a workflow command such as ``::error title=Tag Bot::message``."""
    target = stream if stream is not None else sys.stderr
    print(f"::{level} title={title}::{_escape_data(message)}", file=target)
