"""Tests for the vocab-srs command line interface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from vocab_srs.cli.main import cli
from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import WordStatus


class TestVocabCli:
    """Drive the CLI against a temporary database."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def db_path(self, tmp_path):
        return str(tmp_path / "cli.db")

    @pytest.fixture
    def invoke(self, runner, db_path):
        """Invoke the CLI for user 'tester' learning Spanish."""

        def _invoke(*args: str, input: str | None = None):
            return runner.invoke(
                cli,
                ["--db", db_path, "--user", "tester", "--language", "es", *args],
                input=input,
            )

        return _invoke

    def _items(self, db_path):
        return DatabaseManager(db_path).list_vocabulary("tester", "es")

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ["add", "status", "list", "stats", "review", "reset"]:
            assert command in result.output

    def test_add_word(self, invoke, db_path):
        result = invoke("add", "Perro", "--translation", "dog")

        assert result.exit_code == 0
        assert "perro" in result.output
        [item] = self._items(db_path)
        assert item.word == "perro"
        assert item.translation == "dog"
        assert item.word_status == WordStatus.NEW

    def test_add_word_with_example(self, invoke, db_path):
        result = invoke("add", "gato", "-e", "El gato duerme.::The cat sleeps.")

        assert result.exit_code == 0
        [item] = self._items(db_path)
        [example] = item.example_sentences
        assert example.target == "El gato duerme."
        assert example.translation == "The cat sleeps."

    def test_add_blank_word_fails(self, invoke):
        result = invoke("add", "   ")

        assert result.exit_code == 1

    def test_status_command(self, invoke, db_path):
        invoke("add", "casa")

        result = invoke("status", "casa", "known")

        assert result.exit_code == 0
        [item] = self._items(db_path)
        assert item.word_status == WordStatus.KNOWN

    def test_status_creates_untracked_word(self, invoke, db_path):
        result = invoke("status", "sol", "learning-2")

        assert result.exit_code == 0
        [item] = self._items(db_path)
        assert item.word_status == WordStatus.LEARNING_2

    def test_status_rejects_unknown_choice(self, invoke):
        result = invoke("status", "sol", "expert")

        assert result.exit_code != 0

    def test_list_empty(self, invoke):
        result = invoke("list")

        assert result.exit_code == 0
        assert "No words yet" in result.output

    def test_list_words(self, invoke):
        invoke("add", "luna", "-t", "moon")

        result = invoke("list")

        assert result.exit_code == 0
        assert "luna" in result.output
        assert "moon" in result.output

    def test_stats(self, invoke):
        invoke("add", "agua")
        invoke("status", "el", "ignored")

        result = invoke("stats")

        assert result.exit_code == 0
        assert "Learning: 1" in result.output
        assert "Ignored: 1" in result.output

    def test_review_without_words(self, invoke):
        result = invoke("review")

        assert result.exit_code == 0
        assert "No reviews due" in result.output

    def test_review_session(self, invoke, db_path):
        invoke("add", "perro", "-t", "dog")

        result = invoke("review", "--seed", "1", input="\n5\n\n5\n")

        assert result.exit_code == 0, result.output
        assert "Session complete" in result.output
        assert "Correct: 2" in result.output
        [item] = self._items(db_path)
        assert item.repetitions == 2
        assert item.interval_days == 6
        assert item.word_status == WordStatus.LEARNING_1

    def test_reset_confirmed(self, invoke, db_path):
        invoke("add", "perro")

        result = invoke("reset", input="y\n")

        assert result.exit_code == 0
        assert "reset successfully" in result.output
        assert self._items(db_path) == []

    def test_reset_cancelled(self, invoke, db_path):
        invoke("add", "perro")

        result = invoke("reset", input="n\n")

        assert "Reset cancelled" in result.output
        assert len(self._items(db_path)) == 1
