"""ReviewWord domain service for SM-2 based vocabulary reviews.

Applies one review response to one vocabulary item: runs the scheduler,
derives the new learning status, writes both atomically and publishes a
``WordReviewedEvent``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from vocab_srs.core.clock import Clock, to_timestamp, utc_now
from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import ReviewOutcome, VocabularyItem, WordStatus
from vocab_srs.core.scheduler import compute_next_state, derive_status, is_passing
from vocab_srs.domain.learning.events.review_events import WordReviewedEvent
from vocab_srs.domain.shared.services import (
    BusinessRuleViolationError,
    DomainService,
    ValidationError,
    log_domain_operation,
)
from vocab_srs.infrastructure.messaging.event_bus import EventBus

logger = logging.getLogger(__name__)


@dataclass
class ReviewWordRequest:
    """Request DTO for a single review response.

    ``quality`` is not validated here: out-of-range grades are clamped by
    the scheduler.
    """

    item_id: int
    quality: int
    session_id: str | None = None

    def __post_init__(self) -> None:
        """Validate request data."""
        if self.item_id <= 0:
            raise ValueError("item_id must be positive")


@dataclass
class ReviewWordResult:
    """Result DTO for a review response."""

    success: bool
    item_id: int
    quality: int
    status_before: WordStatus | None = None
    status_after: WordStatus | None = None
    outcome: ReviewOutcome | None = None
    error_message: str | None = None

    @property
    def is_correct(self) -> bool:
        """Whether the response counts as a correct answer."""
        return is_passing(self.quality)


class ReviewWord(DomainService[ReviewWordRequest, ReviewWordResult]):
    """Domain service applying a review response to a vocabulary item.

    This service encapsulates:
    - Item retrieval
    - SM-2 scheduling and status derivation
    - A single write of SRS fields, status and review timestamp
    - Domain event publishing

    Reviews of the same item are serialized so that the read-modify-write
    over repetitions, interval and ease factor never loses an update.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        event_bus: EventBus,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize ReviewWord service.

        Args:
            db_manager: Item store
            event_bus: Event bus for publishing domain events
            clock: Source of the current instant
        """
        super().__init__(event_bus)
        self.db_manager = db_manager
        self.clock = clock
        self._item_locks: dict[int, asyncio.Lock] = {}
        self._lock_holders: defaultdict[int, int] = defaultdict(int)

    @log_domain_operation
    async def call(self, request: ReviewWordRequest) -> ReviewWordResult:
        """Apply a review response.

        Args:
            request: Item ID, recall grade and optional session ID

        Returns:
            Result with the new schedule, or ``success=False`` and an error
            message when the item is gone or the store fails
        """
        async with self._item_lock(request.item_id):
            try:
                return await self._review(request)
            except (ValidationError, BusinessRuleViolationError) as e:
                self.logger.warning(f"Review rejected for item {request.item_id}: {e}")
                return self._failure(request, str(e))
            except SQLAlchemyError as e:
                self.logger.error(f"Failed to review item {request.item_id}: {e}")
                return self._failure(request, "Update failed, try again")

    @asynccontextmanager
    async def _item_lock(self, item_id: int) -> AsyncIterator[None]:
        """Hold the lock for one item; the lock is dropped once unused."""
        lock = self._item_locks.setdefault(item_id, asyncio.Lock())
        self._lock_holders[item_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[item_id] -= 1
            if not self._lock_holders[item_id]:
                del self._lock_holders[item_id]
                del self._item_locks[item_id]

    async def _review(self, request: ReviewWordRequest) -> ReviewWordResult:
        item = await self._get_item(request.item_id)
        if not item:
            raise BusinessRuleViolationError(
                f"Item {request.item_id} not found", "item_exists"
            )

        now = self.clock()
        status_before = item.word_status

        outcome = compute_next_state(
            request.quality,
            item.repetitions,  # type: ignore[arg-type]
            item.ease_factor,  # type: ignore[arg-type]
            item.interval_days,  # type: ignore[arg-type]
            now=now,
        )
        status_after = derive_status(
            status_before, request.quality, outcome.repetitions
        )

        updated = await self._write_review(item.id, outcome, status_after, now)  # type: ignore[arg-type]
        if not updated:
            raise BusinessRuleViolationError(
                f"Item {request.item_id} was deleted during review", "item_exists"
            )

        await self._publish_event(
            WordReviewedEvent(
                item_id=request.item_id,
                user_id=item.user_id,  # type: ignore[arg-type]
                language=item.language,  # type: ignore[arg-type]
                quality=request.quality,
                status_before=status_before.value,
                status_after=status_after.value,
                repetitions=outcome.repetitions,
                interval_days=outcome.interval,
                ease_factor=outcome.ease_factor,
                next_review_date=outcome.next_review_date,
                session_id=request.session_id,
            )
        )

        self.logger.info(
            f"Reviewed item {request.item_id} (q={request.quality}): "
            f"status {status_before.value}->{status_after.value}, "
            f"next in {outcome.interval}d"
        )
        return ReviewWordResult(
            success=True,
            item_id=request.item_id,
            quality=request.quality,
            status_before=status_before,
            status_after=status_after,
            outcome=outcome,
        )

    async def _get_item(self, item_id: int) -> VocabularyItem | None:
        return self.db_manager.get_vocabulary_item(item_id)

    async def _write_review(
        self,
        item_id: int,
        outcome: ReviewOutcome,
        status: WordStatus,
        reviewed_at: datetime,
    ) -> bool:
        return self.db_manager.update_vocabulary_fields(
            item_id,
            {
                "interval_days": outcome.interval,
                "repetitions": outcome.repetitions,
                "ease_factor": outcome.ease_factor,
                "next_review_date": to_timestamp(outcome.next_review_date),
                "last_reviewed_at": to_timestamp(reviewed_at),
                "status": status.value,
            },
        )

    @staticmethod
    def _failure(request: ReviewWordRequest, message: str) -> ReviewWordResult:
        return ReviewWordResult(
            success=False,
            item_id=request.item_id,
            quality=request.quality,
            error_message=message,
        )
