"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .mentions import router as mentions_router
from .notifications import router as notifications_router
from .questions import router as questions_router
from .votes import router as votes_router

__all__ = [
    "communities_router",
    "mentions_router",
    "notifications_router",
    "questions_router",
    "votes_router",
]
