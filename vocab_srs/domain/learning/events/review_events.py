"""Learning context domain events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from vocab_srs.infrastructure.messaging.event_bus import DomainEvent


@dataclass
class WordReviewedEvent(DomainEvent):
    """Event emitted when a review response has been written for an item."""

    item_id: int
    user_id: str
    language: str
    quality: int
    status_before: int
    status_after: int
    repetitions: int
    interval_days: int
    ease_factor: float
    next_review_date: datetime
    session_id: str | None = None

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()


@dataclass
class ReviewSessionStartedEvent(DomainEvent):
    """Event emitted when a review session has been assembled."""

    session_id: str
    user_id: str
    language: str
    total_cards: int

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()


@dataclass
class ReviewSessionCompletedEvent(DomainEvent):
    """Event emitted when a review session ends."""

    session_id: str
    user_id: str
    language: str
    total_cards: int
    reviewed: int
    correct: int
    incorrect: int

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()

