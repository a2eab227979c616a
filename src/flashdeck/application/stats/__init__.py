# Application Stats Package
from .metrics_calculator import GradeSummary, ReviewMetricsCalculator, summarize_grades
from .service import ReviewStatsReport, ReviewStatsService

__all__ = [
    "GradeSummary",
    "ReviewMetricsCalculator",
    "ReviewStatsReport",
    "ReviewStatsService",
    "summarize_grades",
]
