"""Review session orchestration and management.

This module drives review sittings: it asks the session builder for cards,
steps through them, hands each response to the ReviewWord service and keeps
the running totals reported when the session completes.

Per-session state machine::

    loading -> in_progress(card_index, show_answer) -> complete
    complete --reload--> loading
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from vocab_srs.core.clock import Clock, utc_now
from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import ReviewCard, SessionSummary
from vocab_srs.core.session_builder import SessionBuilder
from vocab_srs.domain.learning.events.review_events import (
    ReviewSessionCompletedEvent,
    ReviewSessionStartedEvent,
)
from vocab_srs.domain.learning.services.review_word import (
    ReviewWord,
    ReviewWordRequest,
    ReviewWordResult,
)
from vocab_srs.infrastructure.messaging.event_bus import EventBus

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(hours=12)


class SessionPhase(str, Enum):
    """Review session phases."""

    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class SessionNotFoundError(KeyError):
    """Raised for an unknown or already ended session ID."""


class InvalidSessionStateError(RuntimeError):
    """Raised when an operation is not allowed in the session's phase."""


@dataclass
class SessionProgress:
    """Current state of one review session."""

    session_id: str
    user_id: str
    language: str
    started_at: datetime
    phase: SessionPhase = SessionPhase.LOADING
    cards: list[ReviewCard] = field(default_factory=list)
    card_index: int = 0
    show_answer: bool = False
    correct: int = 0
    incorrect: int = 0

    @property
    def total_cards(self) -> int:
        return len(self.cards)

    @property
    def reviewed(self) -> int:
        return self.correct + self.incorrect

    @property
    def current_card(self) -> ReviewCard | None:
        if self.phase != SessionPhase.IN_PROGRESS:
            return None
        return self.cards[self.card_index]


class SessionManager:
    """Manages review session lifecycle and coordination.

    Sessions stay in memory until ``end_session`` is called, which is also
    what records them in the history. Sessions started longer than
    ``session_ttl`` ago are discarded unrecorded when a new session starts.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        session_builder: SessionBuilder,
        review_service: ReviewWord,
        event_bus: EventBus,
        clock: Clock = utc_now,
        session_ttl: timedelta = SESSION_TTL,
    ) -> None:
        """Initialize session manager.

        Args:
            db_manager: Item store, used for session history
            session_builder: Builds the card list for a session
            review_service: Domain service applying review responses
            event_bus: Event bus for session events
            clock: Source of the current instant
            session_ttl: Age after which an unended session is discarded
        """
        self.db_manager = db_manager
        self.session_builder = session_builder
        self.review_service = review_service
        self.event_bus = event_bus
        self.clock = clock
        self.session_ttl = session_ttl
        self._active_sessions: dict[str, SessionProgress] = {}

    async def start_session(self, user_id: str, language: str) -> str:
        """Start a new review session.

        Args:
            user_id: Owning user
            language: Language code

        Returns:
            Session ID
        """
        self.discard_stale_sessions()

        session_id = str(uuid4())
        progress = SessionProgress(
            session_id=session_id,
            user_id=user_id,
            language=language,
            started_at=self.clock(),
        )
        self._active_sessions[session_id] = progress

        await self._load(progress)
        return session_id

    def get_session_progress(self, session_id: str) -> SessionProgress:
        """Get current session progress.

        Args:
            session_id: Session ID

        Returns:
            Current session progress
        """
        if session_id not in self._active_sessions:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return self._active_sessions[session_id]

    def current_card(self, session_id: str) -> ReviewCard | None:
        """Get the card currently shown, or None once the session is complete."""
        return self.get_session_progress(session_id).current_card

    def reveal_answer(self, session_id: str) -> ReviewCard:
        """Flip the current card to show its answer.

        Args:
            session_id: Session ID

        Returns:
            The current card
        """
        progress = self._require_phase(session_id, SessionPhase.IN_PROGRESS)
        progress.show_answer = True
        return progress.cards[progress.card_index]

    async def submit_review(self, session_id: str, quality: int) -> ReviewWordResult:
        """Submit a recall grade for the current card.

        The session advances only if the review was written; on failure the
        same card stays current so the caller can ask the user to try again.

        Args:
            session_id: Session ID
            quality: Recall grade (0-5)

        Returns:
            Result of the review write
        """
        progress = self._require_phase(session_id, SessionPhase.IN_PROGRESS)
        card = progress.cards[progress.card_index]

        result = await self.review_service.call(
            ReviewWordRequest(
                item_id=card.item_id, quality=quality, session_id=session_id
            )
        )
        if not result.success:
            logger.warning(
                f"Review of item {card.item_id} failed in session {session_id}: "
                f"{result.error_message}"
            )
            return result

        if result.is_correct:
            progress.correct += 1
        else:
            progress.incorrect += 1
        self._advance(progress)
        return result

    async def reload(self, session_id: str) -> SessionProgress:
        """Rebuild a completed session with fresh cards.

        Args:
            session_id: Session ID

        Returns:
            Progress of the rebuilt session
        """
        progress = self._require_phase(session_id, SessionPhase.COMPLETE)
        progress.started_at = self.clock()
        progress.correct = 0
        progress.incorrect = 0
        await self._load(progress)
        return progress

    async def end_session(self, session_id: str) -> SessionSummary:
        """End a review session and return its totals.

        Args:
            session_id: Session ID

        Returns:
            Session summary
        """
        progress = self.get_session_progress(session_id)
        summary = SessionSummary(
            session_id=session_id,
            total_cards=progress.total_cards,
            reviewed=progress.reviewed,
            correct=progress.correct,
            incorrect=progress.incorrect,
        )

        try:
            self.db_manager.record_review_session(
                session_id=session_id,
                user_id=progress.user_id,
                language=progress.language,
                started_at=progress.started_at,
                ended_at=self.clock(),
                cards_total=summary.total_cards,
                cards_reviewed=summary.reviewed,
                correct_count=summary.correct,
                incorrect_count=summary.incorrect,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to record review session {session_id}: {e}")

        await self._publish(
            ReviewSessionCompletedEvent(
                session_id=session_id,
                user_id=progress.user_id,
                language=progress.language,
                total_cards=summary.total_cards,
                reviewed=summary.reviewed,
                correct=summary.correct,
                incorrect=summary.incorrect,
            )
        )

        del self._active_sessions[session_id]
        logger.info(
            f"Ended session {session_id}: {summary.correct} correct, "
            f"{summary.incorrect} incorrect"
        )
        return summary

    def discard_stale_sessions(self) -> int:
        """Drop sessions started more than ``session_ttl`` ago.

        Returns:
            Number of sessions discarded
        """
        cutoff = self.clock() - self.session_ttl
        stale = [
            session_id
            for session_id, progress in self._active_sessions.items()
            if progress.started_at < cutoff
        ]
        for session_id in stale:
            del self._active_sessions[session_id]
            logger.warning(f"Discarded abandoned session {session_id}")
        return len(stale)

    async def _load(self, progress: SessionProgress) -> None:
        progress.phase = SessionPhase.LOADING
        progress.cards = self.session_builder.build_session(
            progress.user_id, progress.language
        )
        progress.card_index = 0
        progress.show_answer = False
        progress.phase = (
            SessionPhase.IN_PROGRESS if progress.cards else SessionPhase.COMPLETE
        )

        await self._publish(
            ReviewSessionStartedEvent(
                session_id=progress.session_id,
                user_id=progress.user_id,
                language=progress.language,
                total_cards=progress.total_cards,
            )
        )

    def _advance(self, progress: SessionProgress) -> None:
        progress.card_index += 1
        progress.show_answer = False
        if progress.card_index >= progress.total_cards:
            progress.phase = SessionPhase.COMPLETE

    def _require_phase(self, session_id: str, phase: SessionPhase) -> SessionProgress:
        progress = self.get_session_progress(session_id)
        if progress.phase != phase:
            raise InvalidSessionStateError(
                f"Session {session_id} is {progress.phase.value}, "
                f"expected {phase.value}"
            )
        return progress

    async def _publish(
        self, event: ReviewSessionStartedEvent | ReviewSessionCompletedEvent
    ) -> None:
        try:
            await self.event_bus.publish(event)
        except Exception as e:
            logger.error(f"Failed to publish event {type(event).__name__}: {e}")
