"""
Domain models for cards, decks and review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

import time
from dataclasses import dataclass, field

from .constants import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL, DEFAULT_REPETITION


def now_ms() -> int:
    """Current wall clock as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ReviewState:
    """
    SM-2 scheduling state of a card.

    Replaced as a whole after every graded review, never mutated.

    Attributes:
        interval: Days until the next review (>= 1).
        repetition: Consecutive successful recalls (>= 0).
        ease_factor: Interval growth multiplier (>= 1.3).
        due: Epoch milliseconds of the next scheduled review.
    """

    interval: int
    repetition: int
    ease_factor: float
    due: int

    @classmethod
    def initial(cls, now: int | None = None) -> "ReviewState":
        """State of a freshly created card: due immediately."""
        return cls(
            interval=DEFAULT_INTERVAL,
            repetition=DEFAULT_REPETITION,
            ease_factor=DEFAULT_EASE_FACTOR,
            due=now if now is not None else now_ms(),
        )

    def is_due(self, now: int) -> bool:
        return self.due <= now

    def to_dict(self) -> dict:
        """Serialized shape shared by storage and import/export."""
        return {
            "interval": self.interval,
            "repetition": self.repetition,
            "easeFactor": self.ease_factor,
            "due": self.due,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewState":
        return cls(
            interval=int(data["interval"]),
            repetition=int(data["repetition"]),
            ease_factor=float(data["easeFactor"]),
            due=int(data["due"]),
        )


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class Deck:
    id: str
    subject_id: str
    name: str
    created_at: int


@dataclass(frozen=True)
class Card:
    """
    A flashcard with front/back text and its scheduling state.

    Cards are replaced (dataclasses.replace) rather than edited in place,
    either with a new review_state after grading or with new text.
    """

    id: str
    deck_id: str
    front: str
    back: str
    review_state: ReviewState
    created_at: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class ReviewHistoryEntry:
    """
    A single graded review, append-only.

    Attributes:
        id: Entry ID.
        card_id: The card that was reviewed.
        deck_id: Deck the card belonged to at review time.
        quality: Self-assessed recall grade (1-5).
        reviewed_at: Epoch milliseconds of the review.
    """

    id: str
    card_id: str
    deck_id: str
    quality: int
    reviewed_at: int


@dataclass(frozen=True)
class DeckScope:
    """Restricts a due-card fetch to a single deck. ``None`` scope means all cards."""

    deck_id: str
