"""Allow ``python -m tag_bot``."""

from __future__ import annotations

from .cli import run

run()
