"""Mention parsing for question and answer bodies."""

from __future__ import annotations

import re

# An "@" glued to a word character is part of an e-mail address.
MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9_][A-Za-z0-9_.-]*)")


def extract_mentions(content: str) -> list[str]:
    """Return distinct ``@handle`` mentions in order of first appearance."""
    seen: set[str] = set()
    mentions: list[str] = []
    for match in MENTION_PATTERN.finditer(content or ""):
        handle = match.group(1).rstrip(".-")
        if handle and handle not in seen:
            seen.add(handle)
            mentions.append(handle)
    return mentions
