"""Service for managing subjects, decks and cards."""

import logging
from dataclasses import replace

from flashdeck.domain.errors import FlashdeckError, NotFoundError
from flashdeck.domain.id_service import generate_id
from flashdeck.domain.models import Card, Deck, ReviewState, Subject, now_ms
from flashdeck.domain.ports import CatalogRepository

logger = logging.getLogger(__name__)


def normalize_name(value: str) -> str:
    return value.strip().lower()


def _require_text(value: str, what: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise FlashdeckError(f"{what} is required.")
    return text


class CatalogService:
    """
    CRUD over the subject -> deck -> card hierarchy.

    Scheduling state is never touched here except to assign the default
    state to new cards; graded reviews go through StudySession.
    """

    def __init__(self, repo: CatalogRepository):
        self._repo = repo

    # ---------- Subjects ----------

    async def list_subjects(self) -> list[Subject]:
        return await self._repo.list_subjects()

    async def find_subject_by_name(self, name: str) -> Subject | None:
        target = normalize_name(name)
        for subject in await self._repo.list_subjects():
            if normalize_name(subject.name) == target:
                return subject
        return None

    async def create_subject(self, name: str, description: str = "") -> Subject:
        name = _require_text(name, "Subject name")
        if await self.find_subject_by_name(name):
            raise FlashdeckError(f"Subject '{name}' already exists.")

        subject = Subject(id=generate_id(), name=name, description=description.strip())
        logger.info(f"Created subject '{name}' ({subject.id})")
        return await self._repo.save_subject(subject)

    async def get_or_create_subject(self, name: str, description: str = "") -> Subject:
        """
        Look a subject up by name (case-insensitive), creating it if missing.

        An existing subject with an empty description adopts ``description``.
        """
        existing = await self.find_subject_by_name(name)
        if existing is None:
            return await self.create_subject(name, description)

        if not existing.description and description:
            return await self._repo.save_subject(replace(existing, description=description))
        return existing

    # ---------- Decks ----------

    async def list_decks(self, subject_id: str | None = None) -> list[Deck]:
        return await self._repo.list_decks(subject_id)

    async def get_deck(self, deck_id: str) -> Deck:
        deck = await self._repo.get_deck(deck_id)
        if deck is None:
            raise NotFoundError("deck", deck_id)
        return deck

    async def find_deck_by_name(self, subject_id: str, name: str) -> Deck | None:
        target = normalize_name(name)
        for deck in await self._repo.list_decks(subject_id):
            if normalize_name(deck.name) == target:
                return deck
        return None

    async def create_deck(self, subject_id: str, name: str) -> Deck:
        name = _require_text(name, "Deck name")
        if await self._repo.get_subject(subject_id) is None:
            raise NotFoundError("subject", subject_id)
        if await self.find_deck_by_name(subject_id, name):
            raise FlashdeckError(f"Deck '{name}' already exists in this subject.")

        deck = Deck(id=generate_id(), subject_id=subject_id, name=name, created_at=now_ms())
        logger.info(f"Created deck '{name}' ({deck.id})")
        return await self._repo.save_deck(deck)

    async def get_or_create_deck(self, subject_id: str, name: str) -> Deck:
        existing = await self.find_deck_by_name(subject_id, name)
        if existing is not None:
            return existing
        return await self.create_deck(subject_id, name)

    async def delete_deck(self, deck_id: str) -> None:
        if not await self._repo.delete_deck(deck_id):
            raise NotFoundError("deck", deck_id)
        logger.info(f"Deleted deck {deck_id}")

    # ---------- Cards ----------

    async def list_cards(self, deck_id: str) -> list[Card]:
        await self.get_deck(deck_id)
        return await self._repo.list_cards(deck_id)

    async def create_card(self, deck_id: str, front: str, back: str) -> Card:
        """Create a card due immediately with the default review state."""
        await self.get_deck(deck_id)
        now = now_ms()
        card = Card(
            id=generate_id(),
            deck_id=deck_id,
            front=_require_text(front, "Front text"),
            back=_require_text(back, "Back text"),
            review_state=ReviewState.initial(now),
            created_at=now,
        )
        await self._repo.save_cards([card])
        return card

    async def create_cards(self, deck_id: str, pairs: list[tuple[str, str]]) -> list[Card]:
        """Create several new cards in one write. Nothing is saved if any pair is blank."""
        await self.get_deck(deck_id)
        now = now_ms()
        cards = [
            Card(
                id=generate_id(),
                deck_id=deck_id,
                front=_require_text(front, "Front text"),
                back=_require_text(back, "Back text"),
                review_state=ReviewState.initial(now),
                created_at=now,
            )
            for front, back in pairs
        ]
        if cards:
            await self._repo.save_cards(cards)
        logger.info(f"Created {len(cards)} cards in deck {deck_id}")
        return cards

    async def update_card(
        self, card_id: str, front: str | None = None, back: str | None = None
    ) -> Card:
        """Edit card text. The review state is left as is."""
        card = await self._repo.get_card(card_id)
        if card is None:
            raise NotFoundError("card", card_id)

        updated = replace(
            card,
            front=_require_text(front, "Front text") if front is not None else card.front,
            back=_require_text(back, "Back text") if back is not None else card.back,
        )
        await self._repo.save_cards([updated])
        return updated

    async def delete_card(self, card_id: str) -> None:
        if not await self._repo.delete_card(card_id):
            raise NotFoundError("card", card_id)

    async def count_due(self, deck_id: str | None = None, now: int | None = None) -> int:
        now = now if now is not None else now_ms()
        cards = await self._repo.list_cards(deck_id)
        return sum(1 for card in cards if card.review_state.is_due(now))
