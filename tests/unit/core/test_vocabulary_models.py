"""Tests for vocabulary data models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from vocab_srs.core.models import (
    NO_TRANSLATION,
    CardDirection,
    ExampleSentence,
    ReviewCard,
    SessionSummary,
    VocabularyEntryData,
    VocabularyItem,
    WordStatus,
)


class TestWordStatus:
    """Test WordStatus enumeration."""

    def test_persisted_values(self):
        assert [status.value for status in WordStatus] == [-1, 0, 1, 2, 3, 4, 5]

    def test_is_learning(self):
        learning = {status for status in WordStatus if status.is_learning}

        assert learning == {
            WordStatus.NEW,
            WordStatus.LEARNING_1,
            WordStatus.LEARNING_2,
            WordStatus.LEARNING_3,
        }

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, WordStatus.NEW), (3, WordStatus.LEARNING_2), (9, WordStatus.MASTERED), (-4, WordStatus.IGNORED)],
    )
    def test_coerce(self, value, expected):
        assert WordStatus.coerce(value) == expected

    def test_labels(self):
        assert WordStatus.MASTERED.label == "Learned"
        assert WordStatus.LEARNING_1.label == "Learning 1"


class TestVocabularyEntryData:
    """Test input validation for new vocabulary."""

    def test_normalizes_word(self):
        entry = VocabularyEntryData(user_id="local", language="es", word="  Hola ")

        assert entry.word == "hola"
        assert entry.status == WordStatus.NEW
        assert entry.is_phrase is False

    def test_phrase_detection(self):
        entry = VocabularyEntryData(user_id="local", language="es", word="por favor")

        assert entry.is_phrase is True

    def test_blank_word_rejected(self):
        with pytest.raises(ValidationError):
            VocabularyEntryData(user_id="local", language="es", word="  ")

    def test_empty_language_rejected(self):
        with pytest.raises(ValidationError):
            VocabularyEntryData(user_id="local", language="", word="hola")


class TestVocabularyItem:
    """Test VocabularyItem helpers."""

    def test_example_sentences(self):
        item = VocabularyItem(
            word="perro",
            examples=json.dumps(
                [{"target": "Un perro.", "translation": "A dog."}, {"target": ""}]
            ),
        )

        assert item.example_sentences == [
            ExampleSentence(target="Un perro.", translation="A dog.")
        ]

    def test_invalid_example_entries_skipped(self):
        item = VocabularyItem(
            word="perro",
            examples=json.dumps(
                [
                    {"target": "x", "translation": 5},
                    {"target": "Un perro."},
                ]
            ),
        )

        assert item.example_sentences == [ExampleSentence(target="Un perro.")]

    @pytest.mark.parametrize("raw", [None, "", "not json", '{"target": "x"}'])
    def test_malformed_examples_ignored(self, raw):
        assert VocabularyItem(word="perro", examples=raw).example_sentences == []

    def test_word_status_of_malformed_value(self):
        assert VocabularyItem(word="perro", status=17).word_status == WordStatus.MASTERED

    def test_timestamps_as_datetimes(self):
        item = VocabularyItem(word="perro", next_review_date=0.0)

        assert item.next_review_at.year == 1970
        assert item.last_reviewed is None


class TestReviewCard:
    """Test card rendering for both directions."""

    @pytest.fixture
    def item(self):
        return VocabularyItem(id=3, word="perro", language="es", translation="dog")

    def test_target_to_native(self, item):
        card = ReviewCard(item=item, direction=CardDirection.TARGET_TO_NATIVE)

        assert card.item_id == 3
        assert card.front_text == "perro"
        assert card.back_text == "dog"
        assert card.front_language == "es"
        assert card.back_language == "en"

    def test_native_to_target(self, item):
        card = ReviewCard(
            item=item, direction=CardDirection.NATIVE_TO_TARGET, native_language="de"
        )

        assert card.front_text == "dog"
        assert card.back_text == "perro"
        assert card.front_language == "de"
        assert card.back_language == "es"

    def test_example_replaces_word(self, item):
        card = ReviewCard(
            item=item,
            direction=CardDirection.NATIVE_TO_TARGET,
            example=ExampleSentence(target="Mi perro.", translation="My dog."),
        )

        assert card.front_text == "My dog."
        assert card.back_text == "Mi perro."

    def test_example_without_translation_falls_back(self, item):
        card = ReviewCard(
            item=item,
            direction=CardDirection.TARGET_TO_NATIVE,
            example=ExampleSentence(target="Mi perro."),
        )

        assert card.front_text == "Mi perro."
        assert card.back_text == "dog"

    def test_missing_translation(self):
        item = VocabularyItem(id=4, word="gato", language="es")
        card = ReviewCard(item=item, direction=CardDirection.TARGET_TO_NATIVE)

        assert card.back_text == NO_TRANSLATION


class TestSessionSummary:
    """Test session summary helpers."""

    def test_accuracy(self):
        summary = SessionSummary(session_id="s", reviewed=3, correct=2, incorrect=1)

        assert summary.accuracy_percentage == 66.7

    def test_accuracy_without_reviews(self):
        assert SessionSummary(session_id="s").accuracy_percentage == 0.0
