"""Vocabulary management for one user and language.

Keeps an in-memory list of the user's vocabulary that is refetched from the
store after every write made through this service and after every review
event for the same user and language. There is no other synchronization.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from vocab_srs.core.clock import Clock, to_timestamp, utc_now
from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import (
    ExampleSentence,
    VocabularyEntryData,
    VocabularyItem,
    WordStatus,
    normalize_word,
)
from vocab_srs.domain.learning.events.review_events import WordReviewedEvent
from vocab_srs.infrastructure.messaging.event_bus import EventBus

logger = logging.getLogger(__name__)

INITIAL_EASE_FACTOR = 2.3


class VocabularyService:
    """Word-level operations on a user's vocabulary for one language."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        user_id: str,
        language: str,
        event_bus: EventBus | None = None,
        clock: Clock = utc_now,
        initial_ease_factor: float = INITIAL_EASE_FACTOR,
    ) -> None:
        """Initialize vocabulary service.

        Args:
            db_manager: Item store
            user_id: Owning user
            language: Language code
            event_bus: Optional event bus; review events refresh the cache
            clock: Source of the current instant
            initial_ease_factor: Ease factor given to newly added words
        """
        self.db_manager = db_manager
        self.user_id = user_id
        self.language = language
        self.clock = clock
        self.initial_ease_factor = initial_ease_factor
        self._items: list[VocabularyItem] = []
        self._loaded = False

        if event_bus is not None:
            event_bus.subscribe(WordReviewedEvent, self._on_word_reviewed)

    @property
    def items(self) -> list[VocabularyItem]:
        """Cached vocabulary, newest first."""
        if not self._loaded:
            self.refresh()
        return list(self._items)

    def refresh(self) -> None:
        """Refetch the vocabulary from the store.

        A store failure leaves an empty cache.
        """
        try:
            self._items = self.db_manager.list_vocabulary(
                self.user_id,
                self.language,
                order_by=VocabularyItem.created_at.desc(),
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching vocabulary for {self.language}: {e}")
            self._items = []
        self._loaded = True
        logger.debug(f"Loaded {len(self._items)} vocabulary items for {self.language}")

    def get_word_data(self, word: str) -> VocabularyItem | None:
        """Get the tracked item for a word, if any."""
        normalized = normalize_word(word)
        for item in self.items:
            if item.word == normalized:
                return item
        return None

    def get_word_status(self, word: str) -> WordStatus | None:
        """Get the status of a word, or None if it is not tracked."""
        item = self.get_word_data(word)
        return item.word_status if item else None

    def add_word(
        self,
        word: str,
        translation: str | None = None,
        definition: str | None = None,
        lesson_id: str | None = None,
        examples: Iterable[ExampleSentence] = (),
    ) -> VocabularyItem | None:
        """Start tracking a word as NEW.

        Args:
            word: Word or phrase as it appears in the text
            translation: Optional translation
            definition: Optional definition
            lesson_id: Optional source lesson
            examples: Example sentences

        Returns:
            The new item, the already tracked item, or None on failure
        """
        existing = self.get_word_data(word)
        if existing:
            return existing

        return self._create(
            word,
            WordStatus.NEW,
            translation=translation,
            definition=definition,
            lesson_id=lesson_id,
            examples=list(examples),
        )

    def update_word_status(self, item_id: int, status: WordStatus) -> bool:
        """Set an item's status manually.

        Args:
            item_id: Item ID
            status: New status

        Returns:
            True if the item was updated
        """
        logger.info(f"Updating word status: {item_id} -> {status.label}")
        return self._update(item_id, {"status": WordStatus(status).value})

    def update_word_translation(
        self, item_id: int, translation: str, definition: str | None = None
    ) -> bool:
        """Set an item's translation and, optionally, its definition."""
        fields: dict[str, str] = {"translation": translation}
        if definition:
            fields["definition"] = definition
        return self._update(item_id, fields)

    def mark_as_known(self, word: str) -> bool:
        """Mark a word as KNOWN, creating it if it is not tracked."""
        return self._set_or_create(word, WordStatus.KNOWN)

    def ignore_word(self, word: str) -> bool:
        """Mark a word as IGNORED, creating it if it is not tracked."""
        return self._set_or_create(word, WordStatus.IGNORED)

    def mark_all_words_as_known(self, words: Iterable[str]) -> tuple[bool, int]:
        """Create KNOWN items for every untracked word in a text.

        Args:
            words: Words, in any form; blanks and duplicates are skipped

        Returns:
            Tuple of (success, number of words created); success is False
            when a store error stopped the run part way
        """
        tracked = {item.word for item in self.items}
        to_create: list[str] = []
        for word in words:
            normalized = normalize_word(word)
            if normalized and normalized not in tracked:
                tracked.add(normalized)
                to_create.append(normalized)

        success = True
        marked_count = 0
        for word in to_create:
            try:
                self.db_manager.insert_vocabulary(
                    self._new_item_fields(
                        VocabularyEntryData(
                            user_id=self.user_id,
                            language=self.language,
                            word=word,
                            status=WordStatus.KNOWN,
                        )
                    )
                )
            except SQLAlchemyError as e:
                logger.error(f"Error marking words as known: {e}")
                success = False
                break
            marked_count += 1

        self.refresh()
        return success, marked_count

    def reset_language_progress(self, language: str | None = None) -> bool:
        """Delete all vocabulary and review history for a language.

        Args:
            language: Language code, defaults to the service's language

        Returns:
            True on success
        """
        language = language or self.language
        try:
            self.db_manager.delete_language_progress(self.user_id, language)
        except SQLAlchemyError as e:
            logger.error(f"Error resetting {language} progress: {e}")
            return False

        if language == self.language:
            self.refresh()
        return True

    @property
    def known_count(self) -> int:
        """Words counted as known (KNOWN or MASTERED)."""
        return sum(
            1
            for item in self.items
            if item.word_status in (WordStatus.KNOWN, WordStatus.MASTERED)
        )

    @property
    def learning_count(self) -> int:
        return sum(1 for item in self.items if item.word_status.is_learning)

    @property
    def ignored_count(self) -> int:
        return sum(1 for item in self.items if item.word_status == WordStatus.IGNORED)

    def _set_or_create(self, word: str, status: WordStatus) -> bool:
        existing = self.get_word_data(word)
        if existing:
            return self.update_word_status(existing.id, status)  # type: ignore[arg-type]
        return self._create(word, status) is not None

    def _create(
        self,
        word: str,
        status: WordStatus,
        translation: str | None = None,
        definition: str | None = None,
        lesson_id: str | None = None,
        examples: list[ExampleSentence] | None = None,
    ) -> VocabularyItem | None:
        try:
            entry = VocabularyEntryData(
                user_id=self.user_id,
                language=self.language,
                word=word,
                status=status,
                translation=translation,
                definition=definition,
                source_lesson_id=lesson_id,
                examples=examples or [],
            )
        except PydanticValidationError as e:
            logger.warning(f"Rejected vocabulary entry {word!r}: {e}")
            return None

        try:
            item = self.db_manager.insert_vocabulary(self._new_item_fields(entry))
        except SQLAlchemyError as e:
            logger.error(f"Error adding word {entry.word!r}: {e}")
            return None

        logger.info(f"Added {entry.word!r} as {status.label}")
        self.refresh()
        return item

    def _update(self, item_id: int, fields: dict[str, object]) -> bool:
        try:
            updated = self.db_manager.update_vocabulary_fields(item_id, fields)
        except SQLAlchemyError as e:
            logger.error(f"Error updating word {item_id}: {e}")
            return False
        self.refresh()
        return updated

    def _new_item_fields(self, entry: VocabularyEntryData) -> dict[str, object]:
        now = to_timestamp(self.clock())
        fields: dict[str, object] = {
            "user_id": entry.user_id,
            "language": entry.language,
            "word": entry.word,
            "status": entry.status.value,
            "is_phrase": entry.is_phrase,
            "ease_factor": self.initial_ease_factor,
            "interval_days": 0,
            "repetitions": 0,
            "next_review_date": now,
            "created_at": now,
            "updated_at": now,
        }
        if entry.translation:
            fields["translation"] = entry.translation
        if entry.definition:
            fields["definition"] = entry.definition
        if entry.source_lesson_id:
            fields["source_lesson_id"] = entry.source_lesson_id
        if entry.examples:
            fields["examples"] = json.dumps(
                [example.model_dump() for example in entry.examples],
                ensure_ascii=False,
            )
        return fields

    def _on_word_reviewed(self, event: WordReviewedEvent) -> None:
        if event.user_id == self.user_id and event.language == self.language:
            self.refresh()
