"""Review session assembly.

Selects the vocabulary items a user sees in one sitting and expands them to
directional review cards:

1. Due pool: learning items whose next review date has passed, most overdue
   first, capped at the session cap.
2. New pool: items added but never reviewed, oldest first, topping the
   session up to the cap.
3. Learning items become two cards (both directions), everything else one.
4. The expanded card list is shuffled uniformly.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection

from sqlalchemy.exc import SQLAlchemyError

from vocab_srs.core.clock import Clock, to_timestamp, utc_now
from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import (
    DEFAULT_NATIVE_LANGUAGE,
    CardDirection,
    ReviewCard,
    VocabularyItem,
    WordStatus,
)

logger = logging.getLogger(__name__)

SESSION_CAP = 20


class SessionBuilder:
    """Builds the ordered card list for one review session."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        session_cap: int = SESSION_CAP,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
        native_language: str = DEFAULT_NATIVE_LANGUAGE,
    ) -> None:
        """Initialize session builder.

        Args:
            db_manager: Item store
            session_cap: Maximum number of items (before expansion) per session
            clock: Source of the current instant
            rng: Random source used to shuffle cards
            native_language: Language code of the answer side
        """
        if session_cap < 1:
            raise ValueError("session_cap must be at least 1")
        self.db_manager = db_manager
        self.session_cap = session_cap
        self.clock = clock
        self.rng = rng or random.Random()
        self.native_language = native_language

    def get_due_items(self, user_id: str, language: str) -> list[VocabularyItem]:
        """Get learning items due for review, most overdue first.

        Args:
            user_id: Owning user
            language: Language code

        Returns:
            Due items, at most ``session_cap``; empty if the store fails
        """
        now = to_timestamp(self.clock())
        try:
            return self.db_manager.list_vocabulary(
                user_id,
                language,
                VocabularyItem.status > WordStatus.KNOWN.value,
                VocabularyItem.status < WordStatus.MASTERED.value,
                VocabularyItem.next_review_date <= now,
                order_by=VocabularyItem.next_review_date.asc(),
                limit=self.session_cap,
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching due items for {user_id}/{language}: {e}")
            return []

    def get_new_items(
        self,
        user_id: str,
        language: str,
        limit: int,
        exclude_ids: Collection[int] = (),
    ) -> list[VocabularyItem]:
        """Get items added but never reviewed, oldest first.

        Args:
            user_id: Owning user
            language: Language code
            limit: Maximum number of items
            exclude_ids: Items already selected for the session

        Returns:
            New items; empty if ``limit`` is not positive or the store fails
        """
        if limit <= 0:
            return []
        criteria = [
            VocabularyItem.status == WordStatus.NEW.value,
            VocabularyItem.repetitions == 0,
        ]
        if exclude_ids:
            criteria.append(VocabularyItem.id.notin_(list(exclude_ids)))
        try:
            return self.db_manager.list_vocabulary(
                user_id,
                language,
                *criteria,
                order_by=VocabularyItem.created_at.asc(),
                limit=limit,
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching new items for {user_id}/{language}: {e}")
            return []

    def build_session(self, user_id: str, language: str) -> list[ReviewCard]:
        """Build the shuffled card list for one review sitting.

        Args:
            user_id: Owning user
            language: Language code

        Returns:
            Shuffled review cards
        """
        due_items = self.get_due_items(user_id, language)
        new_limit = max(0, self.session_cap - len(due_items))
        # A new item whose first due date has passed also matches the due query
        new_items = self.get_new_items(
            user_id,
            language,
            new_limit,
            exclude_ids=[item.id for item in due_items],
        )
        pool = due_items + new_items

        cards = [card for item in pool for card in self.expand_item(item)]
        self.rng.shuffle(cards)

        logger.info(
            f"Built session for {user_id}/{language}: {len(due_items)} due, "
            f"{len(pool) - len(due_items)} new, {len(cards)} cards"
        )
        return cards

    def expand_item(self, item: VocabularyItem) -> list[ReviewCard]:
        """Expand one item into its review cards.

        Args:
            item: Vocabulary item

        Returns:
            Two cards for learning items, one target-to-native card otherwise
        """
        examples = item.example_sentences
        example = examples[0] if examples else None

        directions = [CardDirection.TARGET_TO_NATIVE]
        if item.word_status.is_learning:
            directions.append(CardDirection.NATIVE_TO_TARGET)

        return [
            ReviewCard(
                item=item,
                direction=direction,
                example=example,
                native_language=self.native_language,
            )
            for direction in directions
        ]
