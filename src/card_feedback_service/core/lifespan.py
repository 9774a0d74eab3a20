"""Application lifecycle management."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from card_feedback_service.config import get_safe_config, get_settings
from card_feedback_service.core.state import init_app_state
from card_feedback_service.logging import get_logger, setup_logging
from card_feedback_service.services.card_renderer import CardTemplate
from card_feedback_service.services.feedback import load_baseline
from card_feedback_service.services.feedback_store import FeedbackStore
from card_feedback_service.services.token_validator import (
    ActionableMessageTokenValidator,
    SigningKeyClient,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    # === STARTUP ===
    settings = get_settings()

    setup_logging(settings.logging.level, settings.service.name, settings.logging.directory)
    logger = get_logger(__name__)

    state = init_app_state()

    baseline = load_baseline(Path(settings.feedback.baseline_path))
    state.feedback_store = FeedbackStore(baseline)

    state.card_template = CardTemplate(json.loads(Path(settings.card.template_path).read_text()))

    key_client = SigningKeyClient(
        openid_configuration_url=settings.token.openid_configuration_url,
        timeout_seconds=settings.token.timeout_seconds,
        cache_seconds=settings.token.key_cache_seconds,
    )
    state.token_validator = ActionableMessageTokenValidator(
        key_client=key_client,
        issuer=settings.token.issuer,
        app_id=settings.token.app_id,
        sender_claim=settings.token.sender_claim,
        action_performer_claim=settings.token.action_performer_claim,
        algorithms=settings.token.algorithms,
        leeway_seconds=settings.token.leeway_seconds,
    )

    logger.info(
        "Service starting",
        extra={
            "service": settings.service.name,
            "version": settings.service.version,
            "port": settings.server.port,
            "audience": settings.token.expected_audience,
            "baseline_feedback": len(baseline),
            "config": get_safe_config(),
        },
    )

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Service shutting down", extra={"uptime_seconds": state.uptime_seconds})
    try:
        await key_client.close()
    except (httpx.HTTPError, OSError):
        logger.warning("Failed to close signing key client during shutdown", exc_info=True)
