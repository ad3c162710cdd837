# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["BACKEND_MODE"] = "local"

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agora.api.v1.dependencies import get_feed
from agora.db.session import Base
from agora.db.session import get_db as app_get_session
from agora.main import app as fastapi_app
from agora.models import Community, CommunityVisibility, User
from agora.services.membership import MembershipCoordinator
from agora.services.notification_feed import NotificationFeed
from agora.services.questions import QuestionService
from agora.services.sql_questions import SqlQuestionStore
from agora.services.sql_store import SqlMembershipStore
from tests.factories import make_community

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def feed() -> NotificationFeed:
    return NotificationFeed()


@pytest.fixture()
def store(db_session: Session, feed: NotificationFeed) -> SqlMembershipStore:
    return SqlMembershipStore(db_session, feed=feed)


@pytest.fixture()
def coordinator(store: SqlMembershipStore) -> MembershipCoordinator:
    return MembershipCoordinator(store)


@pytest.fixture()
def question_store(db_session: Session) -> SqlQuestionStore:
    return SqlQuestionStore(db_session)


@pytest.fixture()
def question_service(
    question_store: SqlQuestionStore, store: SqlMembershipStore
) -> QuestionService:
    return QuestionService(question_store, store)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, feed: NotificationFeed
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_feed] = lambda: feed
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_feed, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique e-mail addresses."""

    def _make_user(email: str, name: str | None = None) -> User:
        user = User(email=email, name=name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def owner(make_user: Callable[..., User]) -> User:
    return make_user("owner@example.com", "Olivia Owner")


@pytest.fixture()
def requester(make_user: Callable[..., User]) -> User:
    return make_user("requester@example.com", "Rui Requester")


@pytest.fixture()
def outsider(make_user: Callable[..., User]) -> User:
    return make_user("outsider@example.com")


@pytest.fixture()
def public_community(db_session: Session, owner: User) -> Community:
    return make_community(db_session, owner, "python-help", CommunityVisibility.PUBLIC)


@pytest.fixture()
def private_community(db_session: Session, owner: User) -> Community:
    return make_community(db_session, owner, "core-devs", CommunityVisibility.PRIVATE)
