"""Shared API dependencies for authentication and the membership backend."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from agora.core.security import decode_access_token
from agora.core.settings import settings
from agora.db.session import get_db
from agora.models import User
from agora.services.backend import RestMembershipStore, get_backend_client
from agora.services.membership import Actor, MembershipCoordinator
from agora.services.notification_feed import NotificationFeed, get_notification_feed
from agora.services.questions import QuestionService
from agora.services.rest_questions import RestQuestionStore
from agora.services.sql_questions import SqlQuestionStore
from agora.services.sql_store import SqlMembershipStore
from agora.services.store import MembershipStore, QuestionStore

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

_CREDENTIALS_ERROR = "Could not validate credentials"


def _load_user(token: str, db: Session) -> User:
    try:
        user_id = decode_access_token(token)
    except (JWTError, ValueError) as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_CREDENTIALS_ERROR,
        ) from err
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_CREDENTIALS_ERROR,
        )

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    return _load_user(credentials.credentials, db)


def get_optional_actor(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)
    ],
    db: SessionDep,
) -> Actor | None:
    """Return the caller as an Actor, or None for anonymous requests."""
    if credentials is None:
        return None
    return Actor.from_user(_load_user(credentials.credentials, db))


def get_feed() -> NotificationFeed:
    return get_notification_feed()


def get_membership_store(
    db: SessionDep,
    feed: Annotated[NotificationFeed, Depends(get_feed)],
) -> MembershipStore:
    """Select the membership backend configured by BACKEND_MODE."""
    if settings.backend_mode == "rest":
        return RestMembershipStore(get_backend_client())
    return SqlMembershipStore(db, feed=feed)


def get_coordinator(
    store: Annotated[MembershipStore, Depends(get_membership_store)],
) -> MembershipCoordinator:
    return MembershipCoordinator(store)


def get_question_store(db: SessionDep) -> QuestionStore:
    """Select the question backend configured by BACKEND_MODE."""
    if settings.backend_mode == "rest":
        return RestQuestionStore(get_backend_client())
    return SqlQuestionStore(db)


def get_question_service(
    questions: Annotated[QuestionStore, Depends(get_question_store)],
    memberships: Annotated[MembershipStore, Depends(get_membership_store)],
) -> QuestionService:
    return QuestionService(questions, memberships)


# Type aliases for common dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalActorDep = Annotated[Actor | None, Depends(get_optional_actor)]
StoreDep = Annotated[MembershipStore, Depends(get_membership_store)]
CoordinatorDep = Annotated[MembershipCoordinator, Depends(get_coordinator)]
QuestionServiceDep = Annotated[QuestionService, Depends(get_question_service)]
FeedDep = Annotated[NotificationFeed, Depends(get_feed)]
