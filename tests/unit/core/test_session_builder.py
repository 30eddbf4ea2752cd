"""Tests for review session assembly."""

from __future__ import annotations

import json
import random
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import CardDirection, WordStatus
from vocab_srs.core.session_builder import SESSION_CAP, SessionBuilder


class TestSessionBuilder:
    """Test due/new selection, expansion and shuffling."""

    @pytest.fixture
    def builder(self, db_manager, clock):
        """Session builder over the temporary store with a seeded shuffle."""
        return SessionBuilder(db_manager, clock=clock, rng=random.Random(7))

    def test_default_cap(self, db_manager):
        assert SessionBuilder(db_manager).session_cap == SESSION_CAP == 20

    def test_rejects_non_positive_cap(self, db_manager):
        with pytest.raises(ValueError):
            SessionBuilder(db_manager, session_cap=0)

    def test_due_items_ordered_most_overdue_first(self, builder, add_item):
        """Only learning items whose due date has passed are selected."""
        add_item("dos", WordStatus.LEARNING_1, due_in_days=-1, repetitions=1)
        add_item("uno", WordStatus.LEARNING_2, due_in_days=-5, repetitions=2)
        add_item("tres", WordStatus.LEARNING_3, due_in_days=0, repetitions=3)
        add_item("futuro", WordStatus.LEARNING_1, due_in_days=2, repetitions=1)
        add_item("sabido", WordStatus.KNOWN, due_in_days=-10)
        add_item("maestro", WordStatus.MASTERED, due_in_days=-10, repetitions=4)
        add_item("nada", WordStatus.IGNORED, due_in_days=-10)

        due = builder.get_due_items("local", "es")

        assert [item.word for item in due] == ["uno", "dos", "tres"]

    def test_due_items_scoped_to_user_and_language(self, builder, add_item):
        add_item("hola", WordStatus.LEARNING_1, due_in_days=-1)
        add_item("bonjour", WordStatus.LEARNING_1, due_in_days=-1, language="fr")
        add_item("adios", WordStatus.LEARNING_1, due_in_days=-1, user_id="other")

        due = builder.get_due_items("local", "es")

        assert [item.word for item in due] == ["hola"]

    def test_due_items_capped(self, db_manager, clock, add_item):
        builder = SessionBuilder(db_manager, session_cap=2, clock=clock)
        for days in range(5):
            add_item(f"palabra{days}", WordStatus.LEARNING_1, due_in_days=-days)

        due = builder.get_due_items("local", "es")

        assert [item.word for item in due] == ["palabra4", "palabra3"]

    def test_new_items_oldest_first(self, builder, add_item):
        """New items are NEW status with no repetitions, oldest first."""
        add_item("reciente", due_in_days=1, created_offset_days=-1)
        add_item("antiguo", due_in_days=1, created_offset_days=-3)
        add_item("repasado", due_in_days=1, created_offset_days=-5, repetitions=1)
        add_item("aprendiendo", WordStatus.LEARNING_1, due_in_days=1)

        new = builder.get_new_items("local", "es", limit=10)

        assert [item.word for item in new] == ["antiguo", "reciente"]

    def test_new_items_respect_limit(self, builder, add_item):
        for offset in range(3):
            add_item(f"nuevo{offset}", due_in_days=1, created_offset_days=-offset)

        assert len(builder.get_new_items("local", "es", limit=2)) == 2
        assert builder.get_new_items("local", "es", limit=0) == []

    def test_build_session_expands_learning_items_to_two_cards(
        self, builder, add_item
    ):
        item = add_item("gato", WordStatus.LEARNING_1, due_in_days=-1)

        cards = builder.build_session("local", "es")

        assert len(cards) == 2
        assert {card.direction for card in cards} == {
            CardDirection.TARGET_TO_NATIVE,
            CardDirection.NATIVE_TO_TARGET,
        }
        assert all(card.item_id == item.id for card in cards)

    def test_build_session_tops_up_with_new_items(self, db_manager, clock, add_item):
        """New items fill the session up to the cap after due items."""
        builder = SessionBuilder(db_manager, session_cap=3, clock=clock)
        add_item("uno", WordStatus.LEARNING_1, due_in_days=-2)
        add_item("dos", WordStatus.LEARNING_2, due_in_days=-1)
        add_item("tres", due_in_days=1, created_offset_days=-2)
        add_item("cuatro", due_in_days=1, created_offset_days=-1)

        cards = builder.build_session("local", "es")

        assert {card.item.word for card in cards} == {"uno", "dos", "tres"}
        assert len(cards) == 6

    def test_build_session_skips_new_pool_when_due_fills_cap(
        self, db_manager, clock, add_item
    ):
        builder = SessionBuilder(db_manager, session_cap=1, clock=clock)
        add_item("uno", WordStatus.LEARNING_1, due_in_days=-1)
        add_item("nuevo", due_in_days=1)

        cards = builder.build_session("local", "es")

        assert {card.item.word for card in cards} == {"uno"}

    def test_build_session_does_not_duplicate_due_new_items(self, builder, add_item):
        """A never-reviewed item that is already due appears only once."""
        add_item("hola", due_in_days=-1)

        cards = builder.build_session("local", "es")

        assert len(cards) == 2
        assert len({card.item_id for card in cards}) == 1

    def test_overdue_new_item_does_not_take_a_new_slot(
        self, db_manager, clock, add_item
    ):
        """The new pool still fills the cap when its oldest item is already due."""
        builder = SessionBuilder(db_manager, session_cap=2, clock=clock)
        add_item("antiguo", due_in_days=-1, created_offset_days=-5)
        add_item("reciente", due_in_days=1, created_offset_days=-1)

        cards = builder.build_session("local", "es")

        assert {card.item.word for card in cards} == {"antiguo", "reciente"}
        assert len(cards) == 4

    def test_new_items_exclude_ids(self, builder, add_item):
        first = add_item("uno", due_in_days=1, created_offset_days=-2)
        add_item("dos", due_in_days=1, created_offset_days=-1)

        new = builder.get_new_items("local", "es", limit=1, exclude_ids=[first.id])

        assert [item.word for item in new] == ["dos"]

    def test_malformed_stored_example_is_skipped(self, builder, add_item):
        """Example entries that fail validation do not break the session."""
        add_item(
            "raro",
            WordStatus.LEARNING_1,
            due_in_days=-1,
            translation="odd",
            examples=json.dumps([{"target": "x", "translation": 5}]),
        )

        cards = builder.build_session("local", "es")

        assert len(cards) == 2
        assert all(card.example is None for card in cards)
        assert {card.front_text for card in cards} == {"raro", "odd"}

    def test_build_session_empty_store(self, builder):
        assert builder.build_session("local", "es") == []

    def test_shuffle_is_deterministic_for_seed(self, db_manager, clock, add_item):
        for index in range(6):
            add_item(f"palabra{index}", WordStatus.LEARNING_1, due_in_days=-index)

        def order(seed):
            builder = SessionBuilder(db_manager, clock=clock, rng=random.Random(seed))
            return [
                (card.item_id, card.direction)
                for card in builder.build_session("local", "es")
            ]

        assert order(3) == order(3)
        assert sorted(order(3)) == sorted(order(4))

    def test_expand_non_learning_item_to_single_card(self, builder, add_item):
        item = add_item("casa", WordStatus.KNOWN)

        cards = builder.expand_item(item)

        assert len(cards) == 1
        assert cards[0].direction == CardDirection.TARGET_TO_NATIVE

    def test_expand_uses_first_example(self, builder, add_item):
        examples = [
            {"target": "El perro ladra.", "translation": "The dog barks."},
            {"target": "Mi perro.", "translation": "My dog."},
        ]
        item = add_item(
            "perro",
            WordStatus.LEARNING_1,
            translation="dog",
            examples=json.dumps(examples),
        )

        cards = builder.expand_item(item)

        assert all(card.example.target == "El perro ladra." for card in cards)
        forward = next(
            card for card in cards if card.direction == CardDirection.TARGET_TO_NATIVE
        )
        assert forward.front_text == "El perro ladra."
        assert forward.back_text == "The dog barks."

    def test_cards_carry_native_language(self, db_manager, clock, add_item):
        builder = SessionBuilder(db_manager, clock=clock, native_language="de")
        item = add_item("luna", WordStatus.LEARNING_1)

        reverse = builder.expand_item(item)[1]

        assert reverse.front_language == "de"
        assert reverse.back_language == "es"

    def test_store_failure_yields_empty_session(self, clock):
        """Store errors are logged and produce an empty session."""
        mock_db = Mock(spec=DatabaseManager)
        mock_db.list_vocabulary.side_effect = SQLAlchemyError("database is locked")
        builder = SessionBuilder(mock_db, clock=clock)

        assert builder.get_due_items("local", "es") == []
        assert builder.get_new_items("local", "es", limit=5) == []
        assert builder.build_session("local", "es") == []
