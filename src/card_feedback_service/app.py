"""
FastAPI application factory.
"""

from __future__ import annotations

from fastapi import FastAPI

from card_feedback_service.config import get_settings
from card_feedback_service.core.exceptions import register_exception_handlers
from card_feedback_service.core.lifespan import lifespan
from card_feedback_service.core.middleware import BodySizeLimitMiddleware
from card_feedback_service.routers import card, health


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI instance with all routers registered
    """
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.service.name} Service",
        version=settings.service.version,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Operations"])
    app.include_router(card.router, tags=["Cards"])

    app.add_middleware(
        BodySizeLimitMiddleware,
        max_body_size=settings.request.max_body_size,
    )

    return app
