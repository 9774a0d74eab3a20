"""Application state management and shared record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from card_feedback_service.services.card_renderer import CardTemplate
    from card_feedback_service.services.feedback_store import FeedbackStore
    from card_feedback_service.services.token_validator import TokenValidator


@dataclass(frozen=True)
class FeedbackRecord:
    """A single feedback entry shown on the card."""

    name: str
    rating: float
    comment: str

    def to_dict(self) -> dict[str, object]:
        """Plain mapping for templating and JSON output."""
        return {"name": self.name, "rating": self.rating, "comment": self.comment}


@dataclass(frozen=True)
class AggregateStats:
    """Summary statistics over the whole feedback collection."""

    average_rating: float
    total_responses: int


@dataclass
class AppState:
    """Runtime application state."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    feedback_store: FeedbackStore | None = None
    token_validator: TokenValidator | None = None
    card_template: CardTemplate | None = None

    @property
    def uptime_seconds(self) -> float:
        """Calculate uptime in seconds."""
        return (datetime.now(UTC) - self.start_time).total_seconds()

    @property
    def started_at(self) -> str:
        """ISO format start time."""
        return self.start_time.isoformat()


# Module-level mutable container to avoid `global` statement
_state_holder: dict[str, AppState] = {}


def get_app_state() -> AppState:
    """Get the current application state."""
    state = _state_holder.get("current")
    if state is None:
        raise RuntimeError("Application state not initialized")
    return state


def init_app_state() -> AppState:
    """Initialize application state. Called during startup."""
    state = AppState()
    _state_holder["current"] = state
    return state


def reset_app_state() -> None:
    """Reset application state. Used in testing."""
    _state_holder.pop("current", None)
