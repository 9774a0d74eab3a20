"""Refresh card callback endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from card_feedback_service.config import get_settings
from card_feedback_service.core.exceptions import CARD_ACTION_STATUS_HEADER
from card_feedback_service.core.state import get_app_state
from card_feedback_service.services.authorization import AuthorizationPolicy
from card_feedback_service.services.card_action import CardActionHandler
from card_feedback_service.services.feedback import FeedbackLimits

router = APIRouter()

CARD_UPDATE_IN_BODY_HEADER = "CARD-UPDATE-IN-BODY"


def _build_handler() -> CardActionHandler:
    """Assemble the handler from current settings and application state."""
    settings = get_settings()
    state = get_app_state()
    if state.token_validator is None:
        msg = "Token validator not initialized"
        raise RuntimeError(msg)
    if state.feedback_store is None:
        msg = "Feedback store not initialized"
        raise RuntimeError(msg)
    if state.card_template is None:
        msg = "Card template not initialized"
        raise RuntimeError(msg)

    return CardActionHandler(
        validator=state.token_validator,
        policy=AuthorizationPolicy(
            allowed_sender=settings.authorization.allowed_sender,
            allowed_domain=settings.authorization.action_performer_domain,
            strict_domain_match=settings.authorization.strict_domain_match,
        ),
        store=state.feedback_store,
        template=state.card_template,
        expected_audience=settings.token.expected_audience,
        limits=FeedbackLimits(
            min_rating=settings.feedback.min_rating,
            max_rating=settings.feedback.max_rating,
            max_comment_length=settings.feedback.max_comment_length,
        ),
        validation_timeout_seconds=settings.token.timeout_seconds,
        success_status=settings.card.success_status,
        forbidden_status=settings.card.forbidden_status,
    )


@router.post("/api/card")
async def card_action(request: Request) -> JSONResponse:
    """Record submitted feedback and respond with a refreshed card."""
    handler = _build_handler()
    body = await request.body()
    result = await handler.handle(request.headers, body)
    return JSONResponse(
        status_code=200,
        content=result.card,
        headers={
            CARD_ACTION_STATUS_HEADER: result.status_message,
            CARD_UPDATE_IN_BODY_HEADER: "true",
        },
    )
