"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, Deck, DeckScope, ReviewHistoryEntry, ReviewState, Subject


class CardRepository(ABC):
    """
    Port used by the study session: due-card fetch and graded-review writes.

    Implementations:
        - InMemoryRepository: Dict-backed, for tests and throwaway sessions.
        - JsonFileRepository: Persists to a single local JSON file.

    All methods raise RepositoryError when the underlying store fails.
    """

    @abstractmethod
    async def fetch_due_cards(self, scope: DeckScope | None, now: int) -> list[Card]:
        """
        Fetch cards whose review_state.due <= now.

        Args:
            scope: Restrict to one deck, or None for every card.
            now: Epoch milliseconds.
        """
        pass

    @abstractmethod
    async def persist_review_state(self, card_id: str, state: ReviewState) -> None:
        """
        Overwrite a card's scheduling state. Idempotent.
        """
        pass

    @abstractmethod
    async def append_review_history(
        self, card_id: str, deck_id: str, quality: int, reviewed_at: int
    ) -> ReviewHistoryEntry:
        """
        Append a graded review to the history log.
        """
        pass


class HistoryRepository(ABC):
    """Port for reading the review history log."""

    @abstractmethod
    async def list_review_history(self, deck_id: str | None = None) -> list[ReviewHistoryEntry]:
        """
        Returns:
            Entries sorted by reviewed_at ascending, optionally for one deck.
        """
        pass


class CatalogRepository(ABC):
    """
    Port for subject/deck/card CRUD.

    Name uniqueness and text validation are enforced by CatalogService;
    adapters only store and look up.
    """

    # ---------- Subjects ----------

    @abstractmethod
    async def list_subjects(self) -> list[Subject]:
        pass

    @abstractmethod
    async def save_subject(self, subject: Subject) -> Subject:
        pass

    @abstractmethod
    async def get_subject(self, subject_id: str) -> Subject | None:
        pass

    # ---------- Decks ----------

    @abstractmethod
    async def list_decks(self, subject_id: str | None = None) -> list[Deck]:
        pass

    @abstractmethod
    async def save_deck(self, deck: Deck) -> Deck:
        pass

    @abstractmethod
    async def get_deck(self, deck_id: str) -> Deck | None:
        pass

    @abstractmethod
    async def delete_deck(self, deck_id: str) -> bool:
        """Delete a deck with its cards and their review history."""
        pass

    # ---------- Cards ----------

    @abstractmethod
    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        pass

    @abstractmethod
    async def save_cards(self, cards: list[Card]) -> None:
        """Insert or replace cards by ID."""
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Card | None:
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> bool:
        """Delete a card and its review history."""
        pass
