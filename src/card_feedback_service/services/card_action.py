"""
Card action orchestration.

Sequences one refresh-card callback: credential extraction, token
validation, authorization, feedback aggregation and card rendering.
Every failure is terminal for the request; nothing is retried.

Pure Python, no FastAPI imports.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from card_feedback_service.core.exceptions import (
    ForbiddenError,
    InvalidTokenError,
    MissingCredentialError,
    ServiceError,
)
from card_feedback_service.logging import get_logger
from card_feedback_service.schemas import FeedbackSubmission
from card_feedback_service.services.authorization import AuthorizationDecision
from card_feedback_service.services.credentials import extract_bearer_token, get_header
from card_feedback_service.services.feedback import record_feedback, validate_submission

if TYPE_CHECKING:
    from collections.abc import Mapping

    from card_feedback_service.core.state import AggregateStats
    from card_feedback_service.services.authorization import AuthorizationPolicy
    from card_feedback_service.services.card_renderer import CardTemplate
    from card_feedback_service.services.feedback import FeedbackLimits
    from card_feedback_service.services.feedback_store import FeedbackSnapshot, FeedbackStore
    from card_feedback_service.services.token_validator import TokenValidator, ValidationResult

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class CardActionResult:
    """A successfully handled card action."""

    card: Any
    status_message: str
    stats: AggregateStats


def check_content_type(headers: Mapping[str, str]) -> None:
    """
    Require a JSON request body.

    Raises:
        ServiceError: UNSUPPORTED_MEDIA_TYPE (415).
    """
    content_type = get_header(headers, "content-type") or ""
    if content_type.split(";", 1)[0].strip().lower() != JSON_CONTENT_TYPE:
        raise ServiceError(
            "UNSUPPORTED_MEDIA_TYPE",
            f"Content-Type must be {JSON_CONTENT_TYPE}",
            415,
            {"content_type": content_type},
        )


def parse_submission(body: bytes) -> FeedbackSubmission:
    """
    Parse and validate the raw request body.

    Raises:
        ServiceError: INVALID_BODY (400) for malformed JSON or wrong shape.
    """
    try:
        return FeedbackSubmission.model_validate_json(body)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        raise ServiceError(
            "INVALID_BODY",
            "Request body must be a JSON object with a numeric rating and a string comment",
            400,
            {"fields": [field for field in fields if field]},
        ) from exc


def build_card_context(snapshot: FeedbackSnapshot) -> dict[str, Any]:
    """Data context handed to the card template."""
    return {
        "$root": {
            "average_rating": snapshot.stats.average_rating,
            "feedback": [record.to_dict() for record in snapshot.records],
            "total_responses": snapshot.stats.total_responses,
        }
    }


class CardActionHandler:
    """Handles one ``POST /api/card`` callback."""

    def __init__(
        self,
        validator: TokenValidator,
        policy: AuthorizationPolicy,
        store: FeedbackStore,
        template: CardTemplate,
        expected_audience: str,
        limits: FeedbackLimits,
        validation_timeout_seconds: float,
        success_status: str,
        forbidden_status: str,
    ) -> None:
        self._validator = validator
        self._policy = policy
        self._store = store
        self._template = template
        self._expected_audience = expected_audience
        self._limits = limits
        self._validation_timeout_seconds = validation_timeout_seconds
        self._success_status = success_status
        self._forbidden_status = forbidden_status

    async def _validate_token(self, token: str) -> ValidationResult:
        try:
            return await asyncio.wait_for(
                self._validator.validate(token, self._expected_audience),
                timeout=self._validation_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.warning(
                "Token validation timed out",
                extra={"timeout_seconds": self._validation_timeout_seconds},
            )
            raise InvalidTokenError("Token validation timed out") from exc
        except InvalidTokenError as exc:
            logger.info("Token rejected", extra={"reason": exc.message})
            raise

    async def handle(self, headers: Mapping[str, str], body: bytes) -> CardActionResult:
        """
        Run the full card action.

        Raises:
            MissingCredentialError: No bearer token on the request.
            InvalidTokenError: The token failed validation.
            ForbiddenError: Sender or action performer not allowed.
            ServiceError: The body is not JSON, malformed, or out of bounds.
            AggregationError: Statistics could not be computed.
        """
        token = extract_bearer_token(headers)
        if token is None:
            logger.info("Card action without bearer token")
            raise MissingCredentialError

        result = await self._validate_token(token)

        if self._policy.evaluate(result) is AuthorizationDecision.FORBIDDEN:
            logger.warning(
                "Card action forbidden",
                extra={"sender": result.sender, "action_performer": result.action_performer},
            )
            raise ForbiddenError(self._forbidden_status)

        # Nothing is stored before this point
        check_content_type(headers)
        submission = parse_submission(body)
        validate_submission(submission, self._limits)
        snapshot = record_feedback(self._store, submission, result.sender)

        card = self._template.expand(build_card_context(snapshot))
        logger.info(
            "Card action accepted",
            extra={
                "sender": result.sender,
                "action_performer": result.action_performer,
                "total_responses": snapshot.stats.total_responses,
            },
        )
        return CardActionResult(
            card=card,
            status_message=self._success_status,
            stats=snapshot.stats,
        )
