"""Core data models for the vocabulary review system."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase

from vocab_srs.core.clock import from_timestamp

DEFAULT_NATIVE_LANGUAGE = "en"
NO_TRANSLATION = "No translation"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class WordStatus(int, Enum):
    """Learning status of a vocabulary item.

    The integer values are the ones persisted in the ``vocabulary.status``
    column and shared with every other part of the application.
    """

    IGNORED = -1
    KNOWN = 0
    NEW = 1
    LEARNING_1 = 2
    LEARNING_2 = 3
    LEARNING_3 = 4
    MASTERED = 5

    @property
    def is_learning(self) -> bool:
        """Whether items with this status take part in scheduling."""
        return WordStatus.NEW <= self <= WordStatus.LEARNING_3

    @property
    def label(self) -> str:
        """Human-readable label used by list views."""
        return _STATUS_LABELS[self]

    @classmethod
    def coerce(cls, value: int | None) -> WordStatus:
        """Map a stored value to a status, clamping malformed values."""
        if value is None:
            return cls.NEW
        return cls(max(cls.IGNORED.value, min(cls.MASTERED.value, int(value))))


_STATUS_LABELS = {
    WordStatus.IGNORED: "Ignored",
    WordStatus.KNOWN: "Known",
    WordStatus.NEW: "New",
    WordStatus.LEARNING_1: "Learning 1",
    WordStatus.LEARNING_2: "Learning 2",
    WordStatus.LEARNING_3: "Learning 3",
    WordStatus.MASTERED: "Learned",
}


class CardDirection(str, Enum):
    """Which side of a vocabulary item is shown as the prompt."""

    TARGET_TO_NATIVE = "target_to_native"
    NATIVE_TO_TARGET = "native_to_target"


def normalize_word(word: str) -> str:
    """Normalize word text the way it is stored (lowercased, trimmed)."""
    return word.strip().lower()


# Pydantic models for data validation
class ExampleSentence(BaseModel):
    """Example sentence attached to a vocabulary item."""

    target: str = Field(..., description="Sentence in the target language")
    translation: str | None = Field(
        None, description="Sentence translated to the native language"
    )


class VocabularyEntryData(BaseModel):
    """Input data for creating a vocabulary item."""

    user_id: str = Field(..., min_length=1, description="Owning user")
    language: str = Field(..., min_length=1, description="Target language code")
    word: str = Field(..., description="Word or phrase as clicked in the text")
    status: WordStatus = Field(WordStatus.NEW, description="Initial status")
    translation: str | None = Field(None, description="Optional translation")
    definition: str | None = Field(None, description="Optional definition")
    source_lesson_id: str | None = Field(None, description="Lesson the word came from")
    examples: list[ExampleSentence] = Field(
        default_factory=list, description="Example sentences"
    )

    @field_validator("word")
    @classmethod
    def word_not_blank(cls, v: str) -> str:
        """Normalize the word and reject blank input."""
        normalized = normalize_word(v)
        if not normalized:
            raise ValueError("Word must not be blank")
        return normalized

    @property
    def is_phrase(self) -> bool:
        """Phrases are entries containing a space."""
        return " " in self.word


# SQLAlchemy models for database
class VocabularyItem(Base):
    """One word or phrase a user is tracking for one language."""

    __tablename__ = "vocabulary"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(100), nullable=False)
    language = Column(String(10), nullable=False)
    word = Column(String(500), nullable=False)  # Normalized

    # Learning state
    status = Column(Integer, nullable=False, default=WordStatus.NEW.value)
    is_phrase = Column(Boolean, nullable=False, default=False)

    # SM-2 state
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=0)
    repetitions = Column(Integer, nullable=False, default=0)
    next_review_date = Column(
        Float, nullable=False, default=lambda: datetime.now(UTC).timestamp()
    )  # Unix timestamp
    last_reviewed_at = Column(Float)  # Unix timestamp

    # Content
    translation = Column(Text)
    definition = Column(Text)
    notes = Column(Text)
    examples = Column(Text)  # JSON serialized list of example sentences
    source_lesson_id = Column(String(100))

    created_at = Column(
        Float, nullable=False, default=lambda: datetime.now(UTC).timestamp()
    )
    updated_at = Column(
        Float, nullable=False, default=lambda: datetime.now(UTC).timestamp()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "language", "word"),
        Index("idx_vocabulary_next_review", "next_review_date"),
        Index("idx_vocabulary_user_language_status", "user_id", "language", "status"),
    )

    @property
    def word_status(self) -> WordStatus:
        """Status as an enumeration member."""
        return WordStatus.coerce(self.status)

    @property
    def example_sentences(self) -> list[ExampleSentence]:
        """Parsed example sentences; malformed JSON or entries are skipped."""
        if not self.examples:
            return []
        try:
            data = json.loads(self.examples)
        except json.JSONDecodeError:
            return []
        if not isinstance(data, list):
            return []
        sentences = []
        for entry in data:
            if not isinstance(entry, dict) or not entry.get("target"):
                continue
            try:
                sentences.append(ExampleSentence.model_validate(entry))
            except ValidationError:
                continue
        return sentences

    @property
    def next_review_at(self) -> datetime | None:
        """Next review date as an aware datetime."""
        return from_timestamp(self.next_review_date)

    @property
    def last_reviewed(self) -> datetime | None:
        """Last review date as an aware datetime."""
        return from_timestamp(self.last_reviewed_at)

    def __repr__(self) -> str:
        return (
            f"VocabularyItem(id={self.id}, word={self.word!r}, "
            f"status={self.status}, repetitions={self.repetitions})"
        )


class ReviewSessionRecord(Base):
    """History of completed review sessions."""

    __tablename__ = "review_sessions"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(36), nullable=False, unique=True)
    user_id = Column(String(100), nullable=False)
    language = Column(String(10), nullable=False)

    started_at = Column(Float, nullable=False)  # Unix timestamp
    ended_at = Column(Float)

    cards_total = Column(Integer, default=0)
    cards_reviewed = Column(Integer, default=0)
    correct_count = Column(Integer, default=0)
    incorrect_count = Column(Integer, default=0)

    __table_args__ = (
        Index("idx_review_sessions_user_language", "user_id", "language"),
    )


# Dataclasses for business logic
@dataclass(frozen=True)
class ReviewOutcome:
    """Result of one scheduling computation (not persisted)."""

    interval: int
    repetitions: int
    ease_factor: float
    next_review_date: datetime


@dataclass
class ReviewCard:
    """Presentation unit derived from a vocabulary item (not persisted)."""

    item: VocabularyItem
    direction: CardDirection
    example: ExampleSentence | None = None
    native_language: str = DEFAULT_NATIVE_LANGUAGE

    @property
    def item_id(self) -> int:
        return self.item.id  # type: ignore[return-value]

    @property
    def _target_text(self) -> str:
        if self.example:
            return self.example.target
        return self.item.word  # type: ignore[return-value]

    @property
    def _native_text(self) -> str:
        if self.example and self.example.translation:
            return self.example.translation
        return self.item.translation or NO_TRANSLATION  # type: ignore[return-value]

    @property
    def front_text(self) -> str:
        """Prompt shown before the answer is revealed."""
        if self.direction == CardDirection.TARGET_TO_NATIVE:
            return self._target_text
        return self._native_text

    @property
    def back_text(self) -> str:
        """Answer shown after reveal."""
        if self.direction == CardDirection.TARGET_TO_NATIVE:
            return self._native_text
        return self._target_text

    @property
    def front_language(self) -> str:
        if self.direction == CardDirection.TARGET_TO_NATIVE:
            return self.item.language  # type: ignore[return-value]
        return self.native_language

    @property
    def back_language(self) -> str:
        if self.direction == CardDirection.TARGET_TO_NATIVE:
            return self.native_language
        return self.item.language  # type: ignore[return-value]


@dataclass
class SessionSummary:
    """Totals reported when a review session completes."""

    session_id: str
    total_cards: int = 0
    reviewed: int = 0
    correct: int = 0
    incorrect: int = 0

    @property
    def accuracy_percentage(self) -> float:
        if self.reviewed == 0:
            return 0.0
        return round(self.correct / self.reviewed * 100, 1)


@dataclass
class VocabularyStats:
    """Vocabulary counts for one user and language."""

    known: int = 0
    learning: int = 0
    ignored: int = 0
    mastered: int = 0
    due_now: int = 0
    total: int = 0
