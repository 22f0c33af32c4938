"""Shared utility functions for Mission Control."""

from __future__ import annotations

import re
from datetime import datetime

_MENTION_RE = re.compile(r"@(\w+)")


def extract_mentions(content: str) -> list[str]:
    """Return every @token in content, in order of appearance.

    A token is the maximal run of word characters after '@'. Duplicates are
    kept; callers decide whether they matter.
    """
    return _MENTION_RE.findall(content)


def truncate(text: str, limit: int, marker: str = "...") -> str:
    """Cut text to limit characters, appending marker only if it was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def iso(ts: datetime | None) -> str:
    """ISO-8601 rendering used in reports; 'Never' for missing timestamps."""
    if ts is None:
        return "Never"
    return ts.isoformat()


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"
