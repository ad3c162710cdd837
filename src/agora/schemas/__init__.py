"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    CommunityCreate,
    CommunityResponse,
    JoinAction,
    JoinRequestDecision,
    MemberListResponse,
    MembershipResponse,
    WorkflowResponse,
)
from .notification import (
    MentionExtractRequest,
    MentionExtractResponse,
    NotificationDraft,
    NotificationListResponse,
    NotificationResponse,
)
from .question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionResponse,
    QuestionSort,
    VoteRequest,
    VoteResponse,
    VoteState,
)

__all__ = [
    "CommunityCreate", "CommunityResponse",
    "JoinAction", "JoinRequestDecision",
    "MemberListResponse", "MembershipResponse", "WorkflowResponse",
    "MentionExtractRequest", "MentionExtractResponse",
    "NotificationDraft", "NotificationListResponse", "NotificationResponse",
    "AnswerCreate", "AnswerResponse",
    "QuestionCreate", "QuestionDetailResponse", "QuestionResponse", "QuestionSort",
    "VoteRequest", "VoteResponse", "VoteState",
]
