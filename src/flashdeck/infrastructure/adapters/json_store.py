"""
JSON File Repository: Infrastructure adapter for a single local JSON file.

The whole store is read on first use and rewritten after every mutation.
Writes go to a temp file that replaces the original, so a crash never
leaves a half-written store behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from flashdeck.domain.errors import RepositoryError
from flashdeck.domain.models import Card, Deck, ReviewHistoryEntry, ReviewState, Subject

from .memory_store import InMemoryRepository

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class JsonFileRepository(InMemoryRepository):
    """
    Persists subjects, decks, cards and review history to ``path``.

    A missing file is an empty store. An unreadable or malformed file raises
    RepositoryError from whichever operation first touches it.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return

        if not self.path.exists():
            logger.debug(f"No store at {self.path}, starting empty")
            self._loaded = True
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.subjects = {s["id"]: Subject(**s) for s in data.get("subjects", [])}
            self.decks = {
                d["id"]: Deck(
                    id=d["id"],
                    subject_id=d["subjectId"],
                    name=d["name"],
                    created_at=d["createdAt"],
                )
                for d in data.get("decks", [])
            }
            self.cards = {c["id"]: _card_from_dict(c) for c in data.get("cards", [])}
            self.history = [_entry_from_dict(e) for e in data.get("reviewHistory", [])]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise RepositoryError(f"Failed to read store {self.path}: {e}") from e

        self._loaded = True
        logger.debug(f"Loaded {len(self.cards)} cards from {self.path}")

    def _commit(self) -> None:
        payload = {
            "version": STORE_VERSION,
            "subjects": [
                {"id": s.id, "name": s.name, "description": s.description}
                for s in self.subjects.values()
            ],
            "decks": [
                {"id": d.id, "subjectId": d.subject_id, "name": d.name, "createdAt": d.created_at}
                for d in self.decks.values()
            ],
            "cards": [_card_to_dict(c) for c in self.cards.values()],
            "reviewHistory": [
                {
                    "id": e.id,
                    "cardId": e.card_id,
                    "deckId": e.deck_id,
                    "quality": e.quality,
                    "reviewedAt": e.reviewed_at,
                }
                for e in self.history
            ],
        }

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise RepositoryError(f"Failed to write store {self.path}: {e}") from e


def _card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "deckId": card.deck_id,
        "front": card.front,
        "back": card.back,
        "reviewState": card.review_state.to_dict(),
        "createdAt": card.created_at,
    }


def _card_from_dict(data: dict[str, Any]) -> Card:
    return Card(
        id=data["id"],
        deck_id=data["deckId"],
        front=data["front"],
        back=data["back"],
        review_state=ReviewState.from_dict(data["reviewState"]),
        created_at=data["createdAt"],
    )


def _entry_from_dict(data: dict[str, Any]) -> ReviewHistoryEntry:
    return ReviewHistoryEntry(
        id=data["id"],
        card_id=data["cardId"],
        deck_id=data["deckId"],
        quality=data["quality"],
        reviewed_at=data["reviewedAt"],
    )
