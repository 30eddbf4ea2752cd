"""Core module for vocabulary spaced-repetition review."""

from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import (
    CardDirection,
    ExampleSentence,
    ReviewCard,
    ReviewOutcome,
    SessionSummary,
    VocabularyItem,
    VocabularyStats,
    WordStatus,
)
from vocab_srs.core.scheduler import compute_next_state, derive_status
from vocab_srs.core.session_builder import SessionBuilder
from vocab_srs.core.vocabulary_service import VocabularyService

__all__ = [
    # Store
    "DatabaseManager",
    # Models
    "CardDirection",
    "ExampleSentence",
    "ReviewCard",
    "ReviewOutcome",
    "SessionSummary",
    "VocabularyItem",
    "VocabularyStats",
    "WordStatus",
    # Scheduling
    "compute_next_state",
    "derive_status",
    # Sessions
    "SessionBuilder",
    # Vocabulary
    "VocabularyService",
]
