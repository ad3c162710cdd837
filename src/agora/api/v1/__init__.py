"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    mentions_router,
    notifications_router,
    questions_router,
    votes_router,
)

__all__ = [
    "communities_router",
    "mentions_router",
    "notifications_router",
    "questions_router",
    "votes_router",
]
