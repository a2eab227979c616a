"""flashdeck CLI: catalog management, study sessions, stats and config."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Annotated, Literal

import typer

from flashdeck.application.catalog_service import CatalogService
from flashdeck.application.config import AppConfig, resolve_config
from flashdeck.application.deck_transfer import DeckTransferService
from flashdeck.application.factory import build_study_session, get_repository
from flashdeck.application.stats import ReviewStatsService
from flashdeck.application.study_session import Empty, InProgress, LoadFailed
from flashdeck.application.text_chunker import chunk_text_to_flashcards
from flashdeck.consts import VERSION
from flashdeck.domain.errors import FlashdeckError, InvalidGradeError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="flashdeck: Flashcards with SM-2 spaced repetition.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

subject_app = typer.Typer(help="Manage subjects.", no_args_is_help=True)
app.add_typer(subject_app, name="subject")

deck_app = typer.Typer(help="Manage, import and export decks.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

card_app = typer.Typer(help="Manage cards.", no_args_is_help=True)
app.add_typer(card_app, name="card")

config_app = typer.Typer(help="Manage flashdeck configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context) -> AppConfig:
    return resolve_config(ctx.obj or {})


def _run(coro):
    """Run a coroutine, turning flashdeck errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except FlashdeckError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from None


def _fmt_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _log_file_handler(config: AppConfig) -> logging.Handler:
    """Attach a file handler under log_dir so session warnings outlive the terminal."""
    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_dir / "flashdeck.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    logging.getLogger("flashdeck").addHandler(handler)
    return handler


def _version_callback(value: bool):
    if value:
        typer.echo(f"flashdeck {VERSION}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="Override the JSON store location.")
    ] = None,
    backend: Annotated[
        Literal["json", "memory"] | None, typer.Option(help="Storage backend.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    version: Annotated[
        bool,
        typer.Option(
            "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
        ),
    ] = False,
):
    """Global settings for flashdeck."""
    ctx.ensure_object(dict)
    ctx.obj.update({"data_file": data_file, "backend": backend})
    if verbose:
        ctx.obj["verbose"] = verbose
        logging.getLogger().setLevel(logging.INFO if verbose == 1 else logging.DEBUG)


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


@subject_app.command("add")
def subject_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Subject name.")],
    description: Annotated[str, typer.Option(help="Optional description.")] = "",
):
    """Create a subject."""
    catalog = CatalogService(get_repository(_config(ctx)))
    subject = _run(catalog.create_subject(name, description))
    typer.secho(f"Created subject '{subject.name}' ({subject.id})", fg="green")


@subject_app.command("list")
def subject_list(ctx: typer.Context):
    """List subjects."""
    catalog = CatalogService(get_repository(_config(ctx)))
    subjects = _run(catalog.list_subjects())
    if not subjects:
        typer.secho("No subjects yet.", fg="yellow")
        return
    for s in subjects:
        line = f"{s.id}  {s.name}"
        if s.description:
            line += f"  - {s.description}"
        typer.echo(line)


# ---------------------------------------------------------------------------
# Decks
# ---------------------------------------------------------------------------


@deck_app.command("add")
def deck_add(
    ctx: typer.Context,
    subject_id: Annotated[str, typer.Argument(help="Owning subject ID.")],
    name: Annotated[str, typer.Argument(help="Deck name.")],
):
    """Create a deck inside a subject."""
    catalog = CatalogService(get_repository(_config(ctx)))
    deck = _run(catalog.create_deck(subject_id, name))
    typer.secho(f"Created deck '{deck.name}' ({deck.id})", fg="green")


@deck_app.command("list")
def deck_list(
    ctx: typer.Context,
    subject: Annotated[str | None, typer.Option(help="Only decks of this subject ID.")] = None,
):
    """List decks with their due-card counts."""
    catalog = CatalogService(get_repository(_config(ctx)))

    async def run():
        decks = await catalog.list_decks(subject)
        return [(d, await catalog.count_due(d.id)) for d in decks]

    rows = _run(run())
    if not rows:
        typer.secho("No decks yet.", fg="yellow")
        return
    for deck, due in rows:
        typer.echo(f"{deck.id}  {deck.name}  ({due} due)")


@deck_app.command("delete")
def deck_delete(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Delete a deck with all of its cards and review history."""
    if not force and not typer.confirm(f"Delete deck {deck_id} and all its cards?"):
        raise typer.Exit(1)
    catalog = CatalogService(get_repository(_config(ctx)))
    _run(catalog.delete_deck(deck_id))
    typer.secho("Deck deleted.", fg="green")


@deck_app.command("export")
def deck_export(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    fmt: Annotated[
        Literal["json", "csv"], typer.Option("--format", help="Export format.")
    ] = "json",
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout.")
    ] = None,
):
    """Export a deck, including review state, as JSON or CSV."""
    transfer = DeckTransferService(get_repository(_config(ctx)))
    if fmt == "csv":
        text = _run(transfer.export_deck_csv(deck_id))
    else:
        text = _run(transfer.export_deck_json(deck_id))

    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    typer.secho(f"Exported to {output}", fg="green")


@deck_app.command("import")
def deck_import(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="A .json or .csv deck file.")],
    subject: Annotated[
        str | None, typer.Option(help="Subject name (required for CSV).")
    ] = None,
    deck: Annotated[str | None, typer.Option(help="Deck name (required for CSV).")] = None,
):
    """Import a deck exported by flashdeck. Subject and deck are created if missing."""
    if not path.exists():
        typer.secho(f"File not found: {path}", fg="red", err=True)
        raise typer.Exit(1)

    transfer = DeckTransferService(get_repository(_config(ctx)))
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        result = _run(transfer.import_deck_csv(text, subject or "", deck or ""))
    else:
        result = _run(transfer.import_deck_json(text))

    typer.secho(
        f"Imported {result.imported_cards} cards into "
        f"'{result.subject.name} / {result.deck.name}' ({result.deck.id})",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@card_app.command("add")
def card_add(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    front: Annotated[str, typer.Argument(help="Front (question) text.")],
    back: Annotated[str, typer.Argument(help="Back (answer) text.")],
):
    """Create a card; it is due immediately."""
    catalog = CatalogService(get_repository(_config(ctx)))
    card = _run(catalog.create_card(deck_id, front, back))
    typer.secho(f"Created card {card.id}", fg="green")


@card_app.command("import-text")
def card_import_text(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    path: Annotated[Path, typer.Argument(help="Plain-text notes to turn into cards.")],
):
    """Create cards from numbered Q&A or paragraphs in a text file."""
    if not path.exists():
        typer.secho(f"File not found: {path}", fg="red", err=True)
        raise typer.Exit(1)

    chunks = chunk_text_to_flashcards(path.read_text(encoding="utf-8"))
    if not chunks:
        typer.secho(f"No flashcards found in {path}.", fg="yellow")
        raise typer.Exit(1)

    catalog = CatalogService(get_repository(_config(ctx)))
    cards = _run(catalog.create_cards(deck_id, [(c.front, c.back) for c in chunks]))
    typer.secho(f"Created {len(cards)} cards from {path.name}", fg="green")


@card_app.command("list")
def card_list(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
):
    """List the cards of a deck with their schedule."""
    catalog = CatalogService(get_repository(_config(ctx)))
    cards = _run(catalog.list_cards(deck_id))
    if not cards:
        typer.secho("Deck is empty.", fg="yellow")
        return
    for c in cards:
        s = c.review_state
        typer.echo(
            f"{c.id}  {c.front[:40]!r}  due {_fmt_ms(s.due)}  "
            f"ivl={s.interval}d rep={s.repetition} ef={s.ease_factor:.2f}"
        )


@card_app.command("edit")
def card_edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    front: Annotated[str | None, typer.Option(help="New front text.")] = None,
    back: Annotated[str | None, typer.Option(help="New back text.")] = None,
):
    """Edit card text without touching its schedule."""
    if front is None and back is None:
        typer.secho("Nothing to change: pass --front and/or --back.", fg="yellow")
        raise typer.Exit(2)
    catalog = CatalogService(get_repository(_config(ctx)))
    _run(catalog.update_card(card_id, front=front, back=back))
    typer.secho("Card updated.", fg="green")


@card_app.command("delete")
def card_delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
):
    """Delete a card and its review history."""
    catalog = CatalogService(get_repository(_config(ctx)))
    _run(catalog.delete_card(card_id))
    typer.secho("Card deleted.", fg="green")


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only study this deck ID.")] = None,
    seed: Annotated[
        int | None, typer.Option(help="Shuffle seed for a reproducible card order.")
    ] = None,
    blocking: Annotated[
        bool | None,
        typer.Option(
            "--blocking/--background",
            help="Wait for each review to be saved before showing the next card.",
        ),
    ] = None,
):
    """[bold green]Study[/bold green] every due card (or one deck) in random order."""
    overrides = dict(ctx.obj or {})
    overrides["shuffle_seed"] = seed
    if blocking is not None:
        overrides["persistence_mode"] = "blocking" if blocking else "background"
    config = resolve_config(overrides)

    async def run():
        repo = get_repository(config)
        session = build_study_session(config, repo, deck_id=deck)

        phase = await session.start()
        if isinstance(phase, LoadFailed):
            typer.secho(f"Could not load due cards: {phase.error}", fg="red", err=True)
            raise typer.Exit(1)
        if isinstance(phase, Empty):
            typer.secho("Nothing to study: no cards are due.", fg="yellow")
            return

        while isinstance(session.phase, InProgress):
            card = session.current_card
            typer.echo(f"\n[{session.position + 1}/{session.total}] {card.front}")
            typer.prompt("Press Enter to reveal", default="", show_default=False)
            session.reveal()
            typer.secho(f"  {card.back}", fg="cyan")

            while True:
                quality = typer.prompt("Grade (1=forgot ... 5=perfect)", type=int)
                try:
                    outcome = await session.grade(quality)
                    break
                except InvalidGradeError as e:
                    typer.secho(str(e), fg="yellow")

            if outcome.error:
                typer.secho(f"Warning: review not saved ({outcome.error})", fg="yellow")
            # Give background writes a turn before the next prompt
            await asyncio.sleep(0)

        failures = await session.flush()
        summary = session.summary
        typer.secho("\nSession complete!", fg="green", bold=True)
        typer.echo(f"Reviewed: {summary.reviewed_count}")
        typer.echo(f"Accuracy: {summary.accuracy:.0f}%")
        typer.echo(f"Average grade: {summary.average_grade:.2f}")
        typer.echo(
            "Grades: " + "  ".join(f"{q}:{n}" for q, n in summary.grade_counts.items())
        )
        if failures:
            typer.secho(f"{len(failures)} review(s) could not be saved.", fg="yellow")

    handler = _log_file_handler(config)
    try:
        _run(run())
    finally:
        logging.getLogger("flashdeck").removeHandler(handler)
        handler.close()


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only this deck ID.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show accuracy and review history statistics."""
    service = ReviewStatsService(get_repository(_config(ctx)))
    report = _run(service.get_report(deck))

    if json_output:
        typer.echo(json.dumps(asdict(report), indent=2))
        return

    overall = report.overall
    if overall.reviewed_count == 0:
        typer.secho("No reviews yet.", fg="yellow")
        return

    typer.echo(
        f"Reviews: {overall.reviewed_count}  Accuracy: {overall.accuracy:.0f}%  "
        f"Average grade: {overall.average_grade:.2f}"
    )
    typer.echo("\nBy day:")
    for day in report.daily:
        typer.echo(f"  {day.day}  {day.reviewed} reviewed, {day.correct} correct")
    if len(report.decks) > 1:
        typer.echo("\nBy deck:")
        for row in report.decks:
            typer.echo(
                f"  {row.deck_id}  {row.summary.reviewed_count} reviewed, "
                f"{row.summary.accuracy:.0f}% accuracy"
            )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration, including global options."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
