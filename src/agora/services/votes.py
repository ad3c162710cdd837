"""Vote toggling and answer ranking shared by the question stores."""

from __future__ import annotations

from agora.models.question import VoteType
from agora.schemas.question import AnswerResponse

VOTE_VALUES = {VoteType.UPVOTE: 1, VoteType.DOWNVOTE: -1}


def vote_transition(
    current: VoteType | None, requested: VoteType
) -> tuple[VoteType | None, int]:
    """Return the vote left after ``requested`` and the resulting score change.

    Repeating the current vote withdraws it, the opposite vote replaces it
    and a first vote is simply recorded.
    """
    value = VOTE_VALUES[requested]
    if current == requested:
        return None, -value
    if current is None:
        return requested, value
    return requested, 2 * value


def score_of(votes: list[VoteType]) -> int:
    return sum(VOTE_VALUES[vote] for vote in votes)


def rank_answers(answers: list[AnswerResponse]) -> list[AnswerResponse]:
    """Accepted answer first, then by score; ties keep posting order."""
    return sorted(answers, key=lambda answer: (not answer.is_accepted, -answer.score))
