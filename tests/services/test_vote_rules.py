# tests/services/test_vote_rules.py
"""Tests for vote toggling and answer ranking."""

import uuid

import pytest

from agora.models import VoteType
from agora.schemas.question import AnswerResponse
from agora.services.votes import rank_answers, score_of, vote_transition

UP, DOWN = VoteType.UPVOTE, VoteType.DOWNVOTE


@pytest.mark.parametrize(
    ("current", "requested", "expected"),
    [
        (None, UP, (UP, 1)),
        (None, DOWN, (DOWN, -1)),
        (UP, UP, (None, -1)),
        (DOWN, DOWN, (None, 1)),
        (DOWN, UP, (UP, 2)),
        (UP, DOWN, (DOWN, -2)),
    ],
)
def test_vote_transition(current, requested, expected):
    assert vote_transition(current, requested) == expected


def test_score_counts_upvotes_minus_downvotes():
    assert score_of([UP, UP, DOWN]) == 1
    assert score_of([]) == 0


def _answer(score: int, accepted: bool = False, content: str = "") -> AnswerResponse:
    return AnswerResponse(
        id=uuid.uuid4(),
        question_id=uuid.uuid4(),
        author_id=uuid.uuid4(),
        content=content,
        is_accepted=accepted,
        score=score,
    )


def test_accepted_answer_ranks_first_then_score():
    answers = [
        _answer(1, content="early"),
        _answer(5, content="popular"),
        _answer(-2, accepted=True, content="accepted"),
        _answer(1, content="late"),
    ]

    ranked = rank_answers(answers)

    assert [a.content for a in ranked] == ["accepted", "popular", "early", "late"]
