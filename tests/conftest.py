"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vocab_srs.core.clock import to_timestamp  # noqa: E402
from vocab_srs.core.database import DatabaseManager  # noqa: E402
from vocab_srs.core.models import VocabularyItem, WordStatus  # noqa: E402

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    """Clock returning the fixed reference instant."""
    return lambda: now


@pytest.fixture
def db_manager(tmp_path) -> DatabaseManager:
    """Database manager backed by a temporary SQLite file."""
    return DatabaseManager(tmp_path / "vocabulary.db")


@pytest.fixture
def add_item(db_manager, now):
    """Factory inserting vocabulary items with sensible defaults."""

    def _add(
        word: str,
        status: WordStatus = WordStatus.NEW,
        due_in_days: float = 0,
        created_offset_days: float = 0,
        **overrides: Any,
    ) -> VocabularyItem:
        created = to_timestamp(now + timedelta(days=created_offset_days))
        fields: dict[str, Any] = {
            "user_id": "local",
            "language": "es",
            "word": word,
            "status": WordStatus(status).value,
            "is_phrase": " " in word,
            "ease_factor": 2.5,
            "interval_days": 0,
            "repetitions": 0,
            "next_review_date": to_timestamp(now + timedelta(days=due_in_days)),
            "created_at": created,
            "updated_at": created,
        }
        fields.update(overrides)
        return db_manager.insert_vocabulary(fields)

    return _add
