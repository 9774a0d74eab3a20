"""
Feedback business logic.

Pure Python, no FastAPI imports.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from card_feedback_service.core.exceptions import AggregationError, ServiceError
from card_feedback_service.core.state import AggregateStats, FeedbackRecord

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from card_feedback_service.schemas import FeedbackSubmission
    from card_feedback_service.services.feedback_store import FeedbackSnapshot, FeedbackStore


@dataclass(frozen=True)
class FeedbackLimits:
    """Bounds applied to untrusted submission fields."""

    min_rating: float
    max_rating: float
    max_comment_length: int


def summarize(records: Sequence[FeedbackRecord]) -> AggregateStats:
    """
    Compute the average rating and response count.

    Raises:
        AggregationError: If there are no records to average.
    """
    if not records:
        raise AggregationError("Cannot compute average rating of an empty feedback collection")
    total = sum(record.rating for record in records)
    return AggregateStats(average_rating=total / len(records), total_responses=len(records))


def validate_submission(submission: FeedbackSubmission, limits: FeedbackLimits) -> None:
    """
    Check a submission against the configured bounds.

    Raises:
        ServiceError: INVALID_RATING or COMMENT_TOO_LONG (400).
    """
    if not limits.min_rating <= submission.rating <= limits.max_rating:
        raise ServiceError(
            "INVALID_RATING",
            f"Rating must be between {limits.min_rating:g} and {limits.max_rating:g}",
            400,
            {"rating": submission.rating},
        )
    if len(submission.comment) > limits.max_comment_length:
        raise ServiceError(
            "COMMENT_TOO_LONG",
            f"Comment exceeds maximum length of {limits.max_comment_length} codepoints",
            400,
            {"max_length": limits.max_comment_length, "actual_length": len(submission.comment)},
        )


def record_feedback(
    store: FeedbackStore,
    submission: FeedbackSubmission,
    sender: str,
) -> FeedbackSnapshot:
    """
    Append a submission under the verified sender identity and summarize.

    Any ``name`` supplied by the client is discarded; the record is always
    attributed to ``sender``.
    """
    record = FeedbackRecord(name=sender, rating=submission.rating, comment=submission.comment)
    return store.append_and_summarize(record)


def load_baseline(path: Path) -> list[FeedbackRecord]:
    """
    Load seed feedback from a JSON list of ``{name, rating, comment}`` objects.

    Raises:
        ValueError: If the file is not a list of well-formed entries.
    """
    raw = json.loads(path.read_text())
    if not isinstance(raw, list):
        msg = f"Baseline feedback must be a JSON list: {path}"
        raise ValueError(msg)

    records: list[FeedbackRecord] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            msg = f"Baseline entry {index} must be an object"
            raise ValueError(msg)
        name = entry.get("name")
        rating = entry.get("rating")
        comment = entry.get("comment", "")
        if not isinstance(name, str) or isinstance(rating, bool) or not isinstance(rating, int | float):
            msg = f"Baseline entry {index} needs a string name and a numeric rating"
            raise ValueError(msg)
        records.append(FeedbackRecord(name=name, rating=float(rating), comment=str(comment)))
    return records
