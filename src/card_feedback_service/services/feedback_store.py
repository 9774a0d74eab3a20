"""In-memory feedback storage."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import TYPE_CHECKING

from card_feedback_service.services.feedback import summarize

if TYPE_CHECKING:
    from collections.abc import Iterable

    from card_feedback_service.core.state import AggregateStats, FeedbackRecord


@dataclass(frozen=True)
class FeedbackSnapshot:
    """The collection and its statistics as of one append."""

    records: tuple[FeedbackRecord, ...]
    stats: AggregateStats


class FeedbackStore:
    """
    Ordered feedback collection shared by all requests.

    Appends and the statistics computed from them happen under one lock,
    so every snapshot reflects a consistent collection.
    """

    def __init__(self, baseline: Iterable[FeedbackRecord] = ()) -> None:
        self._lock = RLock()
        self._records: list[FeedbackRecord] = list(baseline)

    def append_and_summarize(self, record: FeedbackRecord) -> FeedbackSnapshot:
        """
        Append a record and summarize the resulting collection atomically.

        Raises:
            AggregationError: If the collection cannot be summarized; the
                record is not kept in that case.
        """
        with self._lock:
            records = (*self._records, record)
            stats = summarize(records)
            self._records.append(record)
        return FeedbackSnapshot(records=records, stats=stats)

    def records(self) -> tuple[FeedbackRecord, ...]:
        """Return a copy of the current collection in submission order."""
        with self._lock:
            return tuple(self._records)

    def count(self) -> int:
        """Count stored feedback records."""
        with self._lock:
            return len(self._records)
