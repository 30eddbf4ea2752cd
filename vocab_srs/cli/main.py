"""Terminal front end for reviewing vocabulary."""

from __future__ import annotations

import asyncio
import logging
import random
import sys
from dataclasses import dataclass

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vocab_srs.core.database import DatabaseManager
from vocab_srs.core.models import ExampleSentence, WordStatus
from vocab_srs.core.session_builder import SessionBuilder
from vocab_srs.core.session_manager import SessionManager
from vocab_srs.core.settings import Settings, get_settings
from vocab_srs.core.vocabulary_service import VocabularyService
from vocab_srs.domain.learning.services.review_word import ReviewWord
from vocab_srs.infrastructure.messaging.event_bus import EventBus

console = Console()

STATUS_CHOICES = {
    "ignored": WordStatus.IGNORED,
    "known": WordStatus.KNOWN,
    "new": WordStatus.NEW,
    "learning-1": WordStatus.LEARNING_1,
    "learning-2": WordStatus.LEARNING_2,
    "learning-3": WordStatus.LEARNING_3,
    "mastered": WordStatus.MASTERED,
}

STATUS_STYLES = {
    WordStatus.IGNORED: "dim",
    WordStatus.KNOWN: "white",
    WordStatus.NEW: "blue",
    WordStatus.LEARNING_1: "dark_orange",
    WordStatus.LEARNING_2: "orange1",
    WordStatus.LEARNING_3: "yellow",
    WordStatus.MASTERED: "green",
}


@dataclass
class AppContext:
    """Objects shared by all commands of one invocation."""

    settings: Settings
    user_id: str
    language: str
    db_manager: DatabaseManager
    event_bus: EventBus

    def vocabulary(self) -> VocabularyService:
        return VocabularyService(
            self.db_manager,
            self.user_id,
            self.language,
            event_bus=self.event_bus,
            initial_ease_factor=self.settings.initial_ease_factor,
        )

    def session_manager(self, seed: int | None = None) -> SessionManager:
        builder = SessionBuilder(
            self.db_manager,
            session_cap=self.settings.session_cap,
            rng=random.Random(seed),
            native_language=self.settings.native_language,
        )
        review_service = ReviewWord(self.db_manager, self.event_bus)
        return SessionManager(
            self.db_manager, builder, review_service, self.event_bus
        )


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.option("--user", "user_id", default=None, help="User ID (default from settings)")
@click.option(
    "--language", default=None, help="Target language code (default from settings)"
)
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version="0.1.0", prog_name="vocab-srs")
@click.pass_context
def cli(
    ctx: click.Context,
    user_id: str | None,
    language: str | None,
    db_path: str | None,
    verbose: bool,
) -> None:
    """vocab-srs - review the words you are learning with spaced repetition."""
    settings = get_settings()
    _configure_logging("DEBUG" if verbose else settings.log_level)

    ctx.obj = AppContext(
        settings=settings,
        user_id=user_id or settings.user_id,
        language=language or settings.target_language,
        db_manager=DatabaseManager(db_path or settings.database_path),
        event_bus=EventBus(),
    )


@cli.command()
@click.argument("word")
@click.option("--translation", "-t", default=None, help="Translation of the word")
@click.option("--definition", "-d", default=None, help="Definition of the word")
@click.option(
    "--example",
    "-e",
    "examples",
    multiple=True,
    help="Example sentence as 'TARGET::TRANSLATION' (repeatable)",
)
@click.pass_obj
def add(
    app: AppContext,
    word: str,
    translation: str | None,
    definition: str | None,
    examples: tuple[str, ...],
) -> None:
    """Start learning WORD."""
    sentences = []
    for raw in examples:
        target, _, native = raw.partition("::")
        if target.strip():
            sentences.append(
                ExampleSentence(target=target.strip(), translation=native.strip() or None)
            )

    item = app.vocabulary().add_word(
        word, translation=translation, definition=definition, examples=sentences
    )
    if item is None:
        console.print(f"[red]❌ Could not add {word!r}[/red]")
        sys.exit(1)
    console.print(f"[green]✅ Tracking {item.word!r} ({item.word_status.label})[/green]")


@cli.command()
@click.argument("word")
@click.argument("status", type=click.Choice(list(STATUS_CHOICES)))
@click.pass_obj
def status(app: AppContext, word: str, status: str) -> None:
    """Set the learning STATUS of WORD."""
    vocabulary = app.vocabulary()
    new_status = STATUS_CHOICES[status]

    if new_status == WordStatus.KNOWN:
        ok = vocabulary.mark_as_known(word)
    elif new_status == WordStatus.IGNORED:
        ok = vocabulary.ignore_word(word)
    else:
        item = vocabulary.get_word_data(word) or vocabulary.add_word(word)
        ok = item is not None and vocabulary.update_word_status(item.id, new_status)  # type: ignore[arg-type]

    if not ok:
        console.print("[red]❌ Update failed, try again[/red]")
        sys.exit(1)
    console.print(f"[green]✅ {word.strip().lower()!r} is now {new_status.label}[/green]")


@cli.command(name="list")
@click.pass_obj
def list_words(app: AppContext) -> None:
    """List tracked words."""
    vocabulary = app.vocabulary()
    items = vocabulary.items
    if not items:
        console.print("[yellow]No words yet. Start reading to build your vocabulary![/yellow]")
        return

    table = Table(title=f"Vocabulary ({app.language})")
    table.add_column("Word", style="bold")
    table.add_column("Translation")
    table.add_column("Status")
    table.add_column("Next review")

    for item in items:
        word_status = item.word_status
        next_review = item.next_review_at
        table.add_row(
            item.word,  # type: ignore[arg-type]
            item.translation or "",  # type: ignore[arg-type]
            f"[{STATUS_STYLES[word_status]}]{word_status.label}[/]",
            next_review.strftime("%Y-%m-%d") if next_review else "",
        )

    console.print(table)
    console.print(
        f"[green]{vocabulary.known_count} known[/green]  "
        f"[yellow]{vocabulary.learning_count} learning[/yellow]"
    )


@cli.command()
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display vocabulary statistics."""
    vocab_stats = app.db_manager.get_vocabulary_stats(app.user_id, app.language)

    console.print(f"\n[bold blue]📊 Vocabulary Statistics ({app.language})[/bold blue]")
    console.print("=" * 40)
    console.print(f"✅ Known words: {vocab_stats.known}")
    console.print(f"🏆 Mastered: {vocab_stats.mastered}")
    console.print(f"📖 Learning: {vocab_stats.learning}")
    console.print(f"🚫 Ignored: {vocab_stats.ignored}")
    console.print(f"⏰ Due now: {vocab_stats.due_now}")


@cli.command()
@click.option("--seed", type=int, default=None, help="Seed for card order")
@click.pass_obj
def review(app: AppContext, seed: int | None) -> None:
    """Review due and new words."""
    try:
        asyncio.run(_run_review(app.session_manager(seed), app.user_id, app.language))
    except (KeyboardInterrupt, click.Abort):
        console.print("\n[yellow]Review interrupted. Goodbye![/yellow]")


async def _run_review(manager: SessionManager, user_id: str, language: str) -> None:
    session_id = await manager.start_session(user_id, language)
    progress = manager.get_session_progress(session_id)

    if progress.total_cards == 0:
        console.print("[blue]No reviews due. Add words to your vocabulary![/blue]")
        await manager.end_session(session_id)
        return

    while (card := manager.current_card(session_id)) is not None:
        position = f"{progress.card_index + 1}/{progress.total_cards}"
        console.print(Panel(card.front_text, title=position, subtitle=card.front_language))
        click.prompt("Press Enter to reveal", default="", show_default=False)

        manager.reveal_answer(session_id)
        console.print(Panel(card.back_text, subtitle=card.back_language, style="bold"))
        if card.example:
            console.print(f"[dim]Word: {card.item.word}[/dim]")

        quality = click.prompt("Grade 0-5", type=click.IntRange(0, 5))
        result = await manager.submit_review(session_id, quality)
        if not result.success:
            console.print("[red]Update failed, try again[/red]")

    summary = await manager.end_session(session_id)
    console.print("\n[bold blue]🎉 Session complete[/bold blue]")
    console.print(f"✅ Correct: {summary.correct}")
    console.print(f"❌ Incorrect: {summary.incorrect}")
    console.print(f"🎯 Accuracy: {summary.accuracy_percentage}%")


@cli.command()
@click.pass_obj
def reset(app: AppContext) -> None:
    """Delete all progress for the language."""
    console.print(
        f"[yellow]This will delete ALL {app.language} words and review history![/yellow]"
    )
    if not click.confirm("Are you sure you want to continue?"):
        console.print("[blue]Reset cancelled.[/blue]")
        return

    if app.vocabulary().reset_language_progress():
        console.print("[green]✅ Progress reset successfully![/green]")
    else:
        console.print("[red]❌ Reset failed[/red]")
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
