"""
Metrics calculator for review grades and history.

This is a pure computation module with no I/O.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime

from flashdeck.domain.constants import CORRECT_QUALITY, MAX_QUALITY, MIN_QUALITY
from flashdeck.domain.models import ReviewHistoryEntry


def empty_grade_counts() -> dict[int, int]:
    return {q: 0 for q in range(MIN_QUALITY, MAX_QUALITY + 1)}


@dataclass(frozen=True)
class GradeSummary:
    """
    Aggregate over a set of grades.

    Attributes:
        reviewed_count: Total grades.
        accuracy: Percentage of grades that were 4 or 5 (0 when empty).
        average_grade: Mean grade weighted by counts (0 when empty).
        grade_counts: Count per grade, keys 1..5 always present.
    """

    reviewed_count: int
    accuracy: float
    average_grade: float
    grade_counts: dict[int, int] = field(default_factory=empty_grade_counts)


@dataclass(frozen=True)
class DailyReviewCount:
    day: str  # ISO date, UTC
    reviewed: int
    correct: int


@dataclass(frozen=True)
class DeckReviewBreakdown:
    deck_id: str
    summary: GradeSummary


def summarize_grades(grade_counts: dict[int, int]) -> GradeSummary:
    """
    Build a GradeSummary from a per-grade tally.
    """
    counts = empty_grade_counts()
    for quality, count in grade_counts.items():
        counts[quality] = counts.get(quality, 0) + count

    total = sum(counts.values())
    if total == 0:
        return GradeSummary(reviewed_count=0, accuracy=0, average_grade=0, grade_counts=counts)

    correct = sum(count for quality, count in counts.items() if quality >= CORRECT_QUALITY)
    weighted = sum(quality * count for quality, count in counts.items())

    return GradeSummary(
        reviewed_count=total,
        accuracy=correct / total * 100,
        average_grade=weighted / total,
        grade_counts=counts,
    )


class ReviewMetricsCalculator:
    """
    Computes accuracy and trend metrics from review history entries.

    Stateless and side-effect free.
    """

    def summarize(self, entries: list[ReviewHistoryEntry]) -> GradeSummary:
        return summarize_grades(Counter(e.quality for e in entries))

    def daily_counts(self, entries: list[ReviewHistoryEntry]) -> list[DailyReviewCount]:
        """
        Bucket reviews by UTC calendar day, oldest first.

        Days without reviews are omitted.
        """
        reviewed: dict[str, int] = defaultdict(int)
        correct: dict[str, int] = defaultdict(int)

        for entry in entries:
            day = datetime.fromtimestamp(entry.reviewed_at / 1000, tz=UTC).date().isoformat()
            reviewed[day] += 1
            if entry.quality >= CORRECT_QUALITY:
                correct[day] += 1

        return [
            DailyReviewCount(day=day, reviewed=reviewed[day], correct=correct[day])
            for day in sorted(reviewed)
        ]

    def per_deck(self, entries: list[ReviewHistoryEntry]) -> list[DeckReviewBreakdown]:
        """Grade summary for each deck that has history, ordered by deck ID."""
        by_deck: dict[str, list[ReviewHistoryEntry]] = defaultdict(list)
        for entry in entries:
            by_deck[entry.deck_id].append(entry)

        return [
            DeckReviewBreakdown(deck_id=deck_id, summary=self.summarize(by_deck[deck_id]))
            for deck_id in sorted(by_deck)
        ]
