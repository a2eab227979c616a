"""
Study session controller.

Drives one study pass over a snapshot of due cards:

1. Loading: fetch due cards (all, or one deck) from the CardRepository
2. InProgress: present cards in a once-shuffled order, face down then face up
3. Grade: schedule with SM-2, persist state and history, tally, advance
4. Complete / Empty: terminal phases; restart() goes back to Loading

Phases are explicit variants so illegal actions (grading a face-down card,
revealing after completion) are rejected instead of silently ignored.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from flashdeck.domain.constants import MAX_QUALITY, MIN_QUALITY
from flashdeck.domain.errors import InvalidGradeError, RepositoryError, SessionStateError
from flashdeck.domain.models import Card, DeckScope, ReviewState, now_ms
from flashdeck.domain.ports import CardRepository
from flashdeck.domain.scheduler import update_sm2

from .stats.metrics_calculator import GradeSummary, empty_grade_counts, summarize_grades

logger = logging.getLogger(__name__)

PersistenceMode = Literal["background", "blocking"]


# ---------- Phases ----------


@dataclass(frozen=True)
class FaceDown:
    """Only the front of the current card is shown."""


@dataclass(frozen=True)
class FaceUp:
    """Front and back of the current card are shown; grading is allowed."""


Face = FaceDown | FaceUp


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class InProgress:
    order: tuple[Card, ...]
    cursor: int
    face: Face

    @property
    def card(self) -> Card:
        return self.order[self.cursor]


@dataclass(frozen=True)
class Empty:
    """No cards were due when the session loaded."""


@dataclass(frozen=True)
class Complete:
    summary: GradeSummary


@dataclass(frozen=True)
class LoadFailed:
    """The due-card fetch failed. Only this session is affected; start() retries."""

    error: RepositoryError


SessionPhase = Loading | InProgress | Empty | Complete | LoadFailed


# ---------- Results ----------


@dataclass(frozen=True)
class WriteFailure:
    card_id: str
    quality: int
    error: RepositoryError


@dataclass(frozen=True)
class GradeOutcome:
    """
    Result of a grade submission.

    Attributes:
        card: The card that was graded (with its pre-review state).
        quality: The accepted grade.
        new_state: Scheduler output written back for the card.
        completed: True if this grade finished the session.
        error: Persistence failure, only reported in blocking mode.
        pending: True if the write was scheduled in the background.
    """

    card: Card
    quality: int
    new_state: ReviewState
    completed: bool
    error: RepositoryError | None = None
    pending: bool = False


def validate_quality(quality: object) -> int:
    """Return ``quality`` if it is an integer grade in 1-5, else raise InvalidGradeError."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidGradeError(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidGradeError(quality)
    return quality


class StudySession:
    """
    Stateful orchestrator for a single study pass.

    Not safe to drive from multiple tasks at once: each action runs to
    completion in memory before the next is accepted. Background writes
    may still be in flight; use flush() to wait for them.
    """

    def __init__(
        self,
        repo: CardRepository,
        deck_id: str | None = None,
        persistence_mode: PersistenceMode = "background",
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            repo: Storage collaborator for due cards and review writes.
            deck_id: Study only this deck; None studies every due card.
            persistence_mode: "background" advances without awaiting writes,
                "blocking" awaits them before grade() returns.
            rng: Random source for the shuffle; seed it for a reproducible order.
            clock: Returns the current time in epoch milliseconds.
        """
        self._repo = repo
        self.scope = DeckScope(deck_id) if deck_id else None
        self.persistence_mode = persistence_mode
        self._rng = rng or random.Random()
        self._clock = clock

        self._phase: SessionPhase = Loading()
        self._tally: dict[int, int] = empty_grade_counts()
        self._pending: set[asyncio.Task] = set()
        self.write_failures: list[WriteFailure] = []

    # ---------- Projections ----------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def current_card(self) -> Card | None:
        if isinstance(self._phase, InProgress):
            return self._phase.card
        return None

    @property
    def is_revealed(self) -> bool:
        return isinstance(self._phase, InProgress) and isinstance(self._phase.face, FaceUp)

    @property
    def position(self) -> int:
        """Zero-based index of the current card (equals total once complete)."""
        if isinstance(self._phase, InProgress):
            return self._phase.cursor
        return self.reviewed_count

    @property
    def total(self) -> int:
        if isinstance(self._phase, InProgress):
            return len(self._phase.order)
        return self.reviewed_count

    @property
    def reviewed_count(self) -> int:
        return sum(self._tally.values())

    @property
    def grade_counts(self) -> dict[int, int]:
        return dict(self._tally)

    @property
    def summary(self) -> GradeSummary | None:
        if isinstance(self._phase, Complete):
            return self._phase.summary
        return None

    # ---------- Actions ----------

    async def start(self) -> SessionPhase:
        """
        Load a snapshot of the due set and shuffle it.

        Returns the resulting phase: InProgress, Empty, or LoadFailed.
        """
        if isinstance(self._phase, InProgress):
            raise SessionStateError("Session already in progress.")

        self._phase = Loading()
        self._tally = empty_grade_counts()
        now = self._clock()

        try:
            cards = await self._repo.fetch_due_cards(self.scope, now)
        except RepositoryError as e:
            logger.error(f"Failed to load due cards: {e}")
            self._phase = LoadFailed(error=e)
            return self._phase

        # Only keep what was actually due at load time
        due = [card for card in cards if card.review_state.is_due(now)]
        if not due:
            logger.info("No cards due.")
            self._phase = Empty()
            return self._phase

        self._rng.shuffle(due)
        logger.info(f"Session started with {len(due)} due cards.")
        self._phase = InProgress(order=tuple(due), cursor=0, face=FaceDown())
        return self._phase

    async def restart(self) -> SessionPhase:
        """Re-enter Loading from a terminal phase."""
        if isinstance(self._phase, InProgress):
            raise SessionStateError("Cannot restart a session that is in progress.")
        return await self.start()

    def reveal(self) -> Card:
        """Flip the current card face up."""
        phase = self._require_in_progress("reveal")
        if isinstance(phase.face, FaceDown):
            self._phase = InProgress(order=phase.order, cursor=phase.cursor, face=FaceUp())
        return phase.card

    async def grade(self, quality: int) -> GradeOutcome:
        """
        Grade the current (revealed) card and advance.

        Raises:
            InvalidGradeError: quality is not an integer in 1-5.
            SessionStateError: no card in progress, or the card is face down.
        """
        quality = validate_quality(quality)
        phase = self._require_in_progress("grade")
        if not isinstance(phase.face, FaceUp):
            raise SessionStateError("Reveal the card before grading it.")

        card = phase.card
        reviewed_at = self._clock()
        new_state = update_sm2(card.review_state, quality, now=reviewed_at)

        # In-memory transition is complete before any write is awaited
        self._tally[quality] += 1
        next_cursor = phase.cursor + 1
        completed = next_cursor >= len(phase.order)
        if completed:
            self._phase = Complete(summary=summarize_grades(self._tally))
            logger.info(f"Session complete: {self.reviewed_count} cards reviewed.")
        else:
            self._phase = InProgress(order=phase.order, cursor=next_cursor, face=FaceDown())

        if self.persistence_mode == "blocking":
            error = await self._write(card, new_state, quality, reviewed_at)
            return GradeOutcome(card, quality, new_state, completed, error=error)

        task = asyncio.create_task(self._write(card, new_state, quality, reviewed_at))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return GradeOutcome(card, quality, new_state, completed, pending=True)

    async def flush(self) -> list[WriteFailure]:
        """Wait for background writes and return every write failure so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
        return list(self.write_failures)

    # ---------- Internals ----------

    def _require_in_progress(self, action: str) -> InProgress:
        if not isinstance(self._phase, InProgress):
            raise SessionStateError(
                f"Cannot {action}: session is {type(self._phase).__name__}."
            )
        return self._phase

    async def _write(
        self, card: Card, state: ReviewState, quality: int, reviewed_at: int
    ) -> RepositoryError | None:
        """Persist the new state, then the history entry. Failures are recorded, not raised."""
        try:
            await self._repo.persist_review_state(card.id, state)
            await self._repo.append_review_history(card.id, card.deck_id, quality, reviewed_at)
        except RepositoryError as e:
            error = e
        except Exception as e:
            error = RepositoryError(f"Unexpected storage error: {e}")
            error.__cause__ = e
        else:
            return None

        logger.warning(f"Failed to save review for card {card.id}: {error}")
        self.write_failures.append(WriteFailure(card_id=card.id, quality=quality, error=error))
        return error
