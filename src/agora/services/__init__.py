"""Business logic services for the Agora application."""

from .backend import BackendClient, RestMembershipStore, get_backend_client
from .membership import Actor, MembershipCoordinator, WorkflowOutcome
from .notification_feed import NotificationFeed, get_notification_feed
from .questions import QuestionService
from .rest_questions import RestQuestionStore
from .results import Failed, FailureReason, ProcedureResult, Succeeded
from .sql_questions import SqlQuestionStore
from .sql_store import SqlMembershipStore
from .store import MembershipStore, QuestionStore

__all__ = [
    "Actor",
    "BackendClient",
    "Failed",
    "FailureReason",
    "MembershipCoordinator",
    "MembershipStore",
    "NotificationFeed",
    "ProcedureResult",
    "QuestionService",
    "QuestionStore",
    "RestMembershipStore",
    "RestQuestionStore",
    "SqlMembershipStore",
    "SqlQuestionStore",
    "Succeeded",
    "WorkflowOutcome",
    "get_backend_client",
    "get_notification_feed",
]
