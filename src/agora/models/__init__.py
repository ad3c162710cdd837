"""SQLAlchemy models for the Agora application."""

from .community import (
    MANAGER_ROLES,
    Community,
    CommunityMember,
    CommunityVisibility,
    MemberRole,
    MemberStatus,
)
from .notification import Notification, NotificationType
from .question import Answer, Question, Tag, Vote, VoteType, question_tags
from .user import PlatformRole, User

__all__ = [
    "Community", "CommunityMember", "CommunityVisibility",
    "MemberRole", "MemberStatus", "MANAGER_ROLES",
    "Notification", "NotificationType",
    "Question", "Answer", "Tag", "Vote", "VoteType", "question_tags",
    "User", "PlatformRole",
]
