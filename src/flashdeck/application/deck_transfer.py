"""
Deck import/export in JSON and CSV.

Both formats carry the four review-state numbers so a deck keeps its
schedule across an export/import cycle.
"""

import csv
import io
import json
import logging
import math
from dataclasses import dataclass
from typing import Any

from flashdeck.domain.constants import CSV_HEADER, EXPORT_VERSION, MIN_EASE_FACTOR
from flashdeck.domain.errors import DeckImportError
from flashdeck.domain.id_service import generate_id
from flashdeck.domain.models import Card, Deck, ReviewState, Subject, now_ms
from flashdeck.domain.ports import CatalogRepository

from .catalog_service import CatalogService

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    subject: Subject
    deck: Deck
    imported_cards: int


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _is_whole(value: float) -> bool:
    return isinstance(value, int) or float(value).is_integer()


def _review_state_from_numbers(
    interval: float, repetition: float, ease_factor: float, due: float
) -> ReviewState | None:
    """
    Build a ReviewState only if the numbers are a state SM-2 could have produced.

    interval, repetition and due must be whole; interval >= 1, repetition >= 0,
    ease_factor >= 1.3. Returns None otherwise.
    """
    values = (interval, repetition, ease_factor, due)
    if not all(math.isfinite(v) for v in values):
        return None
    if not (_is_whole(interval) and _is_whole(repetition) and _is_whole(due)):
        return None
    if interval < 1 or repetition < 0 or ease_factor < MIN_EASE_FACTOR:
        return None
    return ReviewState(
        interval=int(interval),
        repetition=int(repetition),
        ease_factor=float(ease_factor),
        due=int(due),
    )


def _parse_review_state(data: Any) -> ReviewState | None:
    if not isinstance(data, dict):
        return None
    keys = ("interval", "repetition", "easeFactor", "due")
    if not all(_is_number(data.get(k)) for k in keys):
        return None
    return _review_state_from_numbers(*(data[k] for k in keys))


class DeckTransferService:
    """Exports decks to text and imports them back through CatalogService."""

    def __init__(self, repo: CatalogRepository, catalog: CatalogService | None = None):
        """
        Args:
            repo: The repository (port) holding subjects, decks and cards.
            catalog: Optional custom catalog service; built over repo if not provided.
        """
        self._repo = repo
        self._catalog = catalog or CatalogService(repo)

    # ---------- JSON ----------

    async def export_deck_json(self, deck_id: str) -> str:
        deck = await self._catalog.get_deck(deck_id)
        subject = await self._repo.get_subject(deck.subject_id)
        cards = await self._repo.list_cards(deck_id)

        payload = {
            "version": EXPORT_VERSION,
            "exportedAt": now_ms(),
            "subject": {
                "name": subject.name if subject else "",
                "description": subject.description if subject else "",
            },
            "deck": {"name": deck.name, "createdAt": deck.created_at},
            "cards": [
                {"front": c.front, "back": c.back, "reviewState": c.review_state.to_dict()}
                for c in cards
            ],
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    async def import_deck_json(self, text: str) -> ImportResult:
        """
        Import a deck exported by export_deck_json.

        Subject and deck are matched by name (case-insensitive) and created if missing.
        The whole payload is validated before anything is written.
        """
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise DeckImportError("Invalid JSON file.") from e

        if not isinstance(parsed, dict):
            raise DeckImportError("Invalid deck export format.")
        if parsed.get("version") != EXPORT_VERSION:
            raise DeckImportError("Unsupported export version.")

        subject_data = parsed.get("subject")
        deck_data = parsed.get("deck")
        cards_data = parsed.get("cards")

        if not isinstance(subject_data, dict) or not isinstance(subject_data.get("name"), str):
            raise DeckImportError("Invalid subject data in import file.")
        if not isinstance(deck_data, dict) or not isinstance(deck_data.get("name"), str):
            raise DeckImportError("Invalid deck data in import file.")
        if not isinstance(cards_data, list):
            raise DeckImportError("Invalid cards array in import file.")

        rows: list[tuple[str, str, ReviewState]] = []
        for index, item in enumerate(cards_data, start=1):
            if not isinstance(item, dict):
                raise DeckImportError(f"Card {index} is invalid.")
            front, back = item.get("front"), item.get("back")
            if not isinstance(front, str) or not isinstance(back, str):
                raise DeckImportError(f"Card {index} must include front and back text.")
            state = _parse_review_state(item.get("reviewState"))
            if state is None:
                raise DeckImportError(f"Card {index} has an invalid review state.")
            rows.append((front, back, state))

        description = subject_data.get("description")
        return await self._store(
            subject_data["name"],
            description if isinstance(description, str) else "",
            deck_data["name"],
            rows,
        )

    # ---------- CSV ----------

    async def export_deck_csv(self, deck_id: str) -> str:
        await self._catalog.get_deck(deck_id)
        cards = await self._repo.list_cards(deck_id)

        buf = io.StringIO()
        buf.write(",".join(CSV_HEADER) + "\n")
        # Text columns quoted, numeric columns bare
        writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
        for card in cards:
            state = card.review_state
            writer.writerow(
                [card.front, card.back, state.interval, state.repetition, state.ease_factor, state.due]
            )
        return buf.getvalue().rstrip("\n")

    async def import_deck_csv(self, text: str, subject_name: str, deck_name: str) -> ImportResult:
        subject_name = subject_name.strip()
        deck_name = deck_name.strip()
        if not subject_name:
            raise DeckImportError("Subject name is required for CSV import.")
        if not deck_name:
            raise DeckImportError("Deck name is required for CSV import.")

        records = _read_csv_records(text)
        if not records:
            raise DeckImportError("CSV file is empty.")

        header = [h.strip().lower() for h in records[0][1]]
        if header != [h.lower() for h in CSV_HEADER]:
            raise DeckImportError(f"Invalid CSV header. Expected: {','.join(CSV_HEADER)}")

        rows: list[tuple[str, str, ReviewState]] = []
        for number, cols in records[1:]:
            if len(cols) != len(CSV_HEADER):
                raise DeckImportError(f"CSV row {number} is invalid.")

            front, back = cols[0].strip(), cols[1].strip()
            if not front or not back:
                raise DeckImportError(f"CSV row {number} must include front and back text.")
            try:
                values = [float(c) for c in cols[2:]]
            except ValueError as e:
                raise DeckImportError(f"CSV row {number} has invalid review state values.") from e

            state = _review_state_from_numbers(*values)
            if state is None:
                raise DeckImportError(f"CSV row {number} has invalid review state values.")
            rows.append((front, back, state))

        return await self._store(subject_name, "", deck_name, rows)

    # ---------- Internals ----------

    async def _store(
        self,
        subject_name: str,
        description: str,
        deck_name: str,
        rows: list[tuple[str, str, ReviewState]],
    ) -> ImportResult:
        subject = await self._catalog.get_or_create_subject(subject_name, description)
        deck = await self._catalog.get_or_create_deck(subject.id, deck_name)

        now = now_ms()
        cards = [
            Card(
                id=generate_id(),
                deck_id=deck.id,
                front=front,
                back=back,
                review_state=state,
                created_at=now,
            )
            for front, back, state in rows
        ]
        if cards:
            await self._repo.save_cards(cards)

        logger.info(f"Imported {len(cards)} cards into deck '{deck.name}'")
        return ImportResult(subject=subject, deck=deck, imported_cards=len(cards))


def _read_csv_records(text: str) -> list[tuple[int, list[str]]]:
    """
    Parse CSV text into (line number, columns) pairs, skipping blank records.

    Quoted fields may span lines; a record is numbered by the line it starts on.
    """
    reader = csv.reader(io.StringIO(text, newline=""))
    records: list[tuple[int, list[str]]] = []
    start = 1
    try:
        for cols in reader:
            if any(c.strip() for c in cols):
                records.append((start, cols))
            start = reader.line_num + 1
    except csv.Error as e:
        raise DeckImportError(f"CSV row {start} is invalid.") from e
    return records
