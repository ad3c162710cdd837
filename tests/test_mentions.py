# tests/test_mentions.py
"""Tests for @mention extraction."""

import pytest

from agora.services.mentions import extract_mentions


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("", []),
        ("no mentions here", []),
        ("@alice can you look?", ["alice"]),
        ("thanks @bob_smith and @carol.jones!", ["bob_smith", "carol.jones"]),
        ("ping @dave.", ["dave"]),
        ("@erin @frank @erin", ["erin", "frank"]),
        ("mail me at someone@example.com", []),
        ("@@ghost and @ alone", []),
    ],
)
def test_extract_mentions(content, expected):
    assert extract_mentions(content) == expected


def test_none_content_is_empty():
    assert extract_mentions(None) == []
