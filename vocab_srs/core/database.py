"""Database management module for the vocabulary item store."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import ColumnElement, create_engine, event, func
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vocab_srs.core.clock import to_timestamp, utc_now
from vocab_srs.core.models import (
    Base,
    ReviewSessionRecord,
    VocabularyItem,
    VocabularyStats,
    WordStatus,
)

logger = logging.getLogger(__name__)

_VOCABULARY_COLUMNS = frozenset(VocabularyItem.__table__.columns.keys())


class DatabaseManager:
    """Manages database connections and vocabulary persistence."""

    def __init__(self, db_path: str | Path = "data/vocabulary.db") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with proper SQLite configuration
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

        # Enable foreign keys for SQLite
        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, _: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._create_tables()

    def _create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Yields:
            Database session.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_vocabulary(
        self,
        user_id: str,
        language: str,
        *criteria: ColumnElement[bool],
        order_by: Any = None,
        limit: int | None = None,
    ) -> list[VocabularyItem]:
        """List a user's vocabulary for one language.

        Args:
            user_id: Owning user.
            language: Language code.
            *criteria: Additional filter expressions on VocabularyItem columns.
            order_by: Optional ordering expression.
            limit: Optional maximum number of items.

        Returns:
            Matching vocabulary items.
        """
        with self.get_session() as session:
            query = session.query(VocabularyItem).filter(
                VocabularyItem.user_id == user_id,
                VocabularyItem.language == language,
                *criteria,
            )
            if order_by is not None:
                query = query.order_by(order_by)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def get_vocabulary_item(self, item_id: int) -> VocabularyItem | None:
        """Get a vocabulary item by ID.

        Args:
            item_id: Item ID.

        Returns:
            Vocabulary item or None if not found.
        """
        with self.get_session() as session:
            return session.query(VocabularyItem).filter_by(id=item_id).first()

    def find_vocabulary_item(
        self, user_id: str, language: str, word: str
    ) -> VocabularyItem | None:
        """Find a vocabulary item by its normalized word.

        Args:
            user_id: Owning user.
            language: Language code.
            word: Normalized word text.

        Returns:
            Vocabulary item or None if not tracked.
        """
        with self.get_session() as session:
            return (
                session.query(VocabularyItem)
                .filter_by(user_id=user_id, language=language, word=word)
                .first()
            )

    def insert_vocabulary(self, fields: dict[str, Any]) -> VocabularyItem:
        """Insert a new vocabulary item.

        Args:
            fields: Column values for the new item.

        Returns:
            Created vocabulary item.
        """
        self._check_columns(fields)
        with self.get_session() as session:
            item = VocabularyItem(**fields)
            session.add(item)
            session.commit()
            logger.debug(f"Inserted vocabulary item {item.id} ({item.word!r})")
            return item

    def update_vocabulary_fields(self, item_id: int, fields: dict[str, Any]) -> bool:
        """Update columns of one vocabulary item in a single transaction.

        Args:
            item_id: Item ID.
            fields: Column values to write.

        Returns:
            True if the item existed and was updated, False otherwise.
        """
        self._check_columns(fields)
        with self.get_session() as session:
            item = session.query(VocabularyItem).filter_by(id=item_id).first()
            if not item:
                logger.warning(f"Vocabulary item {item_id} not found for update")
                return False

            for key, value in fields.items():
                setattr(item, key, value)
            item.updated_at = utc_now().timestamp()
            session.commit()
            return True

    def delete_language_progress(self, user_id: str, language: str) -> int:
        """Delete a user's vocabulary and review history for one language.

        Args:
            user_id: Owning user.
            language: Language code.

        Returns:
            Number of vocabulary items deleted.
        """
        with self.get_session() as session:
            deleted = (
                session.query(VocabularyItem)
                .filter_by(user_id=user_id, language=language)
                .delete()
            )
            sessions_deleted = (
                session.query(ReviewSessionRecord)
                .filter_by(user_id=user_id, language=language)
                .delete()
            )
            session.commit()
            logger.info(
                f"Reset {language} progress for {user_id}: "
                f"{deleted} items, {sessions_deleted} sessions removed"
            )
            return deleted

    def record_review_session(
        self,
        session_id: str,
        user_id: str,
        language: str,
        started_at: datetime,
        ended_at: datetime,
        cards_total: int,
        cards_reviewed: int,
        correct_count: int,
        incorrect_count: int,
    ) -> int:
        """Record a finished review session.

        Args:
            session_id: Review session identifier.
            user_id: Owning user.
            language: Language code.
            started_at: Session start.
            ended_at: Session end.
            cards_total: Cards in the session.
            cards_reviewed: Cards answered.
            correct_count: Answers graded 3 or higher.
            incorrect_count: Answers graded below 3.

        Returns:
            Database ID of the history record.
        """
        with self.get_session() as session:
            record = ReviewSessionRecord(
                session_id=session_id,
                user_id=user_id,
                language=language,
                started_at=to_timestamp(started_at),
                ended_at=to_timestamp(ended_at),
                cards_total=cards_total,
                cards_reviewed=cards_reviewed,
                correct_count=correct_count,
                incorrect_count=incorrect_count,
            )
            session.add(record)
            session.commit()
            return record.id

    def get_review_sessions(
        self, user_id: str, language: str
    ) -> list[ReviewSessionRecord]:
        """Get review session history, most recent first.

        Args:
            user_id: Owning user.
            language: Language code.

        Returns:
            Review session records.
        """
        with self.get_session() as session:
            return (
                session.query(ReviewSessionRecord)
                .filter_by(user_id=user_id, language=language)
                .order_by(ReviewSessionRecord.started_at.desc())
                .all()
            )

    def get_vocabulary_stats(
        self, user_id: str, language: str, now: datetime | None = None
    ) -> VocabularyStats:
        """Get vocabulary counts by status bucket.

        Args:
            user_id: Owning user.
            language: Language code.
            now: Reference instant for the due count.

        Returns:
            Vocabulary statistics.
        """
        reference = to_timestamp(now or utc_now())

        with self.get_session() as session:
            rows = (
                session.query(VocabularyItem.status, func.count(VocabularyItem.id))
                .filter_by(user_id=user_id, language=language)
                .group_by(VocabularyItem.status)
                .all()
            )
            counts = {status: count for status, count in rows}

            due_now = (
                session.query(func.count(VocabularyItem.id))
                .filter(
                    VocabularyItem.user_id == user_id,
                    VocabularyItem.language == language,
                    VocabularyItem.status > WordStatus.KNOWN.value,
                    VocabularyItem.status < WordStatus.MASTERED.value,
                    VocabularyItem.next_review_date <= reference,
                )
                .scalar()
            )

        learning = sum(
            counts.get(status.value, 0) for status in WordStatus if status.is_learning
        )
        mastered = counts.get(WordStatus.MASTERED.value, 0)

        return VocabularyStats(
            known=counts.get(WordStatus.KNOWN.value, 0) + mastered,
            learning=learning,
            ignored=counts.get(WordStatus.IGNORED.value, 0),
            mastered=mastered,
            due_now=due_now or 0,
            total=sum(counts.values()),
        )

    @staticmethod
    def _check_columns(fields: dict[str, Any]) -> None:
        unknown = set(fields) - _VOCABULARY_COLUMNS
        if unknown:
            raise ValueError(f"Unknown vocabulary fields: {sorted(unknown)}")
