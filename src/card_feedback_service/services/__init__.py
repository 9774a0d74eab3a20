"""Service layer components."""

from card_feedback_service.services.authorization import (
    AuthorizationDecision,
    AuthorizationPolicy,
)
from card_feedback_service.services.card_action import CardActionHandler, CardActionResult
from card_feedback_service.services.credentials import extract_bearer_token
from card_feedback_service.services.feedback import record_feedback, summarize

__all__ = [
    "AuthorizationDecision",
    "AuthorizationPolicy",
    "CardActionHandler",
    "CardActionResult",
    "extract_bearer_token",
    "record_feedback",
    "summarize",
]
