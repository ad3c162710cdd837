# tests/services/test_sql_questions.py
"""Tests for the SQLAlchemy question store."""

import uuid

import pytest

from agora.models import Question, Tag, VoteType
from agora.schemas.question import AnswerCreate, QuestionCreate, QuestionSort
from agora.services.errors import BackendNotFoundError
from tests.factories import add_votes, make_answer, make_question

UP, DOWN = VoteType.UPVOTE, VoteType.DOWNVOTE


class TestQuestions:
    """Test question creation and listing."""

    @pytest.mark.asyncio
    async def test_create_reuses_existing_tags(
        self, question_store, db_session, public_community, owner
    ):
        make_question(db_session, public_community, owner, "Older", tags=("python",))

        question = await question_store.create_question(
            owner.id,
            QuestionCreate(
                community_id=public_community.id,
                title="  Reading files  ",
                description="How?",
                tags=[" Python", "FILES", "python"],
            ),
        )

        assert question.title == "Reading files"
        assert question.tags == ["files", "python"]
        assert question.answer_count == 0
        assert question.author_name == owner.name
        assert db_session.query(Tag).filter(Tag.name == "python").count() == 1

    @pytest.mark.asyncio
    async def test_list_orders_and_filters(
        self, question_store, db_session, public_community, private_community, owner
    ):
        first = make_question(db_session, public_community, owner, "First")
        second = make_question(db_session, public_community, owner, "Second")
        third = make_question(db_session, public_community, owner, "Third")
        make_question(db_session, private_community, owner, "Elsewhere")
        answer = make_answer(db_session, second, owner)
        second.accepted_answer_id = answer.id
        db_session.commit()

        newest = await question_store.list_questions(public_community.id)
        oldest = await question_store.list_questions(public_community.id, QuestionSort.OLDEST)
        unanswered = await question_store.list_questions(
            public_community.id, QuestionSort.UNANSWERED
        )
        limited = await question_store.list_questions(public_community.id, limit=2)

        assert [q.id for q in newest] == [third.id, second.id, first.id]
        assert [q.id for q in oldest] == [first.id, second.id, third.id]
        assert [q.id for q in unanswered] == [third.id, first.id]
        assert [q.id for q in limited] == [third.id, second.id]
        assert next(q for q in newest if q.id == second.id).answer_count == 1

    @pytest.mark.asyncio
    async def test_search_matches_title_description_and_tags(
        self, question_store, db_session, public_community, owner
    ):
        by_title = make_question(db_session, public_community, owner, "Asyncio deadlock")
        by_body = make_question(
            db_session, public_community, owner, "Hangs", description="Stuck in ASYNCIO loop"
        )
        by_tag = make_question(
            db_session, public_community, owner, "Event loop", tags=("asyncio",)
        )
        make_question(db_session, public_community, owner, "Unrelated")

        found = await question_store.list_questions(public_community.id, search=" asyncio ")

        assert {q.id for q in found} == {by_title.id, by_body.id, by_tag.id}

    @pytest.mark.asyncio
    async def test_get_unknown_question(self, question_store):
        assert await question_store.get_question(uuid.uuid4()) is None


class TestAnswers:
    """Test answers, acceptance and ranking."""

    @pytest.mark.asyncio
    async def test_answers_ranked_by_acceptance_then_score(
        self, question_store, db_session, public_community, owner, requester, outsider
    ):
        question = make_question(db_session, public_community, owner)
        plain = make_answer(db_session, question, requester, "plain")
        popular = make_answer(db_session, question, outsider, "popular")
        accepted = make_answer(db_session, question, requester, "accepted")
        add_votes(db_session, popular, (owner, UP), (requester, UP))
        add_votes(db_session, accepted, (owner, DOWN))
        await question_store.accept_answer(question.id, accepted.id)

        answers = await question_store.list_answers(question.id)

        assert [(a.content, a.score) for a in answers] == [
            ("accepted", -1),
            ("popular", 2),
            ("plain", 0),
        ]
        assert answers[-1].id == plain.id

    @pytest.mark.asyncio
    async def test_accepting_replaces_previous_answer(
        self, question_store, db_session, public_community, owner, requester
    ):
        question = make_question(db_session, public_community, owner)
        first = make_answer(db_session, question, requester, "first")
        second = make_answer(db_session, question, requester, "second")

        await question_store.accept_answer(question.id, first.id)
        accepted = await question_store.accept_answer(question.id, second.id)

        assert accepted.is_accepted
        db_session.expire_all()
        assert db_session.get(Question, question.id).accepted_answer_id == second.id
        answers = await question_store.list_answers(question.id)
        assert [a.content for a in answers if a.is_accepted] == ["second"]

    @pytest.mark.asyncio
    async def test_accepting_answer_of_another_question(
        self, question_store, db_session, public_community, owner, requester
    ):
        question = make_question(db_session, public_community, owner, "One")
        other = make_question(db_session, public_community, owner, "Two")
        answer = make_answer(db_session, other, requester)

        with pytest.raises(BackendNotFoundError):
            await question_store.accept_answer(question.id, answer.id)

    @pytest.mark.asyncio
    async def test_answer_to_unknown_question(self, question_store, requester):
        with pytest.raises(BackendNotFoundError):
            await question_store.create_answer(
                uuid.uuid4(), requester.id, AnswerCreate(content="hi")
            )


class TestVotes:
    """Test vote toggling against stored votes."""

    @pytest.mark.asyncio
    async def test_toggle_and_switch(
        self, question_store, db_session, public_community, owner, requester, outsider
    ):
        question = make_question(db_session, public_community, owner)
        answer = make_answer(db_session, question, requester)
        add_votes(db_session, answer, (outsider, UP))

        steps = []
        for vote in (UP, UP, DOWN, UP):
            result = await question_store.cast_vote(answer.id, owner.id, vote)
            steps.append((result.vote, result.change, result.score))

        assert steps == [
            (UP, 1, 2),
            (None, -1, 1),
            (DOWN, -1, 0),
            (UP, 2, 2),
        ]
        assert await question_store.get_vote(answer.id, owner.id) == UP
        assert await question_store.get_vote(answer.id, requester.id) is None

    @pytest.mark.asyncio
    async def test_vote_on_unknown_answer(self, question_store, owner):
        with pytest.raises(BackendNotFoundError):
            await question_store.cast_vote(uuid.uuid4(), owner.id, UP)
