"""
Review Stats Service: Application layer orchestrator.

Coordinates fetching review history from the repository and computing metrics.
"""

import logging
from dataclasses import dataclass, field

from flashdeck.domain.ports import HistoryRepository

from .metrics_calculator import (
    DailyReviewCount,
    DeckReviewBreakdown,
    GradeSummary,
    ReviewMetricsCalculator,
)

logger = logging.getLogger(__name__)


@dataclass
class ReviewStatsReport:
    """Everything the dashboard/analytics views show."""

    overall: GradeSummary
    daily: list[DailyReviewCount] = field(default_factory=list)
    decks: list[DeckReviewBreakdown] = field(default_factory=list)


class ReviewStatsService:
    """
    Application service for review history analytics.

    Depends on the HistoryRepository abstraction, not a concrete adapter.
    """

    def __init__(
        self,
        history_repo: HistoryRepository,
        calculator: ReviewMetricsCalculator | None = None,
    ):
        """
        Args:
            history_repo: The repository (port) for reading history.
            calculator: Optional custom calculator; uses default if not provided.
        """
        self._repo = history_repo
        self._calc = calculator or ReviewMetricsCalculator()

    async def get_report(self, deck_id: str | None = None) -> ReviewStatsReport:
        """
        Build a full report, optionally restricted to one deck.
        """
        entries = await self._repo.list_review_history(deck_id)
        logger.debug(f"Computing stats over {len(entries)} history entries (deck={deck_id})")

        return ReviewStatsReport(
            overall=self._calc.summarize(entries),
            daily=self._calc.daily_counts(entries),
            decks=self._calc.per_deck(entries),
        )
