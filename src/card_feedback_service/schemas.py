"""
Pydantic request/response models for the API.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FeedbackSubmission(BaseModel):
    """
    Body posted by the card's submit action.

    Unknown fields, including any client-supplied ``name``, are ignored.
    The rating must be a JSON number; strings and booleans are rejected.
    """

    model_config = ConfigDict(extra="ignore")
    rating: float = Field(strict=True, allow_inf_nan=False)
    comment: str = ""


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    model_config = ConfigDict(extra="forbid")
    status: Literal["ok"]
    uptime_seconds: float
    started_at: str
    total_feedback: int


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(extra="forbid")
    error: str
    message: str
    details: dict[str, Any]
