"""
In-Memory Repository: dict-backed implementation of every storage port.

Used directly by tests and the "memory" backend, and as the working set of
JsonFileRepository.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace

from flashdeck.domain.errors import NotFoundError
from flashdeck.domain.id_service import generate_id
from flashdeck.domain.models import Card, Deck, DeckScope, ReviewHistoryEntry, ReviewState, Subject
from flashdeck.domain.ports import CardRepository, CatalogRepository, HistoryRepository

logger = logging.getLogger(__name__)


class InMemoryRepository(CardRepository, CatalogRepository, HistoryRepository):
    """
    Keeps subjects, decks, cards and review history in insertion-ordered dicts.

    Subclasses hook _load() (before every operation) and _commit() (after
    every mutation) to add durability. A failed commit rolls the mutation back.
    """

    def __init__(self):
        self.subjects: dict[str, Subject] = {}
        self.decks: dict[str, Deck] = {}
        self.cards: dict[str, Card] = {}
        self.history: list[ReviewHistoryEntry] = []

    def _load(self) -> None:
        pass

    def _commit(self) -> None:
        pass

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """
        Wrap one change to the working set.

        The change is committed on exit. If it or the commit fails, every
        collection is put back as it was so memory never runs ahead of storage.
        """
        self._load()
        snapshot = (dict(self.subjects), dict(self.decks), dict(self.cards), list(self.history))
        try:
            yield
            self._commit()
        except Exception:
            self.subjects, self.decks, self.cards, self.history = snapshot
            raise

    # ---------- CardRepository ----------

    async def fetch_due_cards(self, scope: DeckScope | None, now: int) -> list[Card]:
        self._load()
        return [
            card
            for card in self.cards.values()
            if card.review_state.is_due(now) and (scope is None or card.deck_id == scope.deck_id)
        ]

    async def persist_review_state(self, card_id: str, state: ReviewState) -> None:
        with self._mutation():
            card = self.cards.get(card_id)
            if card is None:
                raise NotFoundError("card", card_id)
            self.cards[card_id] = replace(card, review_state=state)

    async def append_review_history(
        self, card_id: str, deck_id: str, quality: int, reviewed_at: int
    ) -> ReviewHistoryEntry:
        entry = ReviewHistoryEntry(
            id=generate_id(),
            card_id=card_id,
            deck_id=deck_id,
            quality=quality,
            reviewed_at=reviewed_at,
        )
        with self._mutation():
            self.history.append(entry)
        return entry

    # ---------- HistoryRepository ----------

    async def list_review_history(self, deck_id: str | None = None) -> list[ReviewHistoryEntry]:
        self._load()
        entries = [e for e in self.history if deck_id is None or e.deck_id == deck_id]
        return sorted(entries, key=lambda e: e.reviewed_at)

    # ---------- CatalogRepository ----------

    async def list_subjects(self) -> list[Subject]:
        self._load()
        return list(self.subjects.values())

    async def save_subject(self, subject: Subject) -> Subject:
        with self._mutation():
            self.subjects[subject.id] = subject
        return subject

    async def get_subject(self, subject_id: str) -> Subject | None:
        self._load()
        return self.subjects.get(subject_id)

    async def list_decks(self, subject_id: str | None = None) -> list[Deck]:
        self._load()
        return [d for d in self.decks.values() if subject_id is None or d.subject_id == subject_id]

    async def save_deck(self, deck: Deck) -> Deck:
        with self._mutation():
            self.decks[deck.id] = deck
        return deck

    async def get_deck(self, deck_id: str) -> Deck | None:
        self._load()
        return self.decks.get(deck_id)

    async def delete_deck(self, deck_id: str) -> bool:
        self._load()
        if deck_id not in self.decks:
            return False
        with self._mutation():
            del self.decks[deck_id]
            self.cards = {cid: c for cid, c in self.cards.items() if c.deck_id != deck_id}
            self.history = [e for e in self.history if e.deck_id != deck_id]
        return True

    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        self._load()
        return [c for c in self.cards.values() if deck_id is None or c.deck_id == deck_id]

    async def save_cards(self, cards: list[Card]) -> None:
        with self._mutation():
            for card in cards:
                self.cards[card.id] = card

    async def get_card(self, card_id: str) -> Card | None:
        self._load()
        return self.cards.get(card_id)

    async def delete_card(self, card_id: str) -> bool:
        self._load()
        if card_id not in self.cards:
            return False
        with self._mutation():
            del self.cards[card_id]
            self.history = [e for e in self.history if e.card_id != card_id]
        return True
