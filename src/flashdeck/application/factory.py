"""
Repository Factory
Centralizes the logic for selecting the storage adapter.
"""

import logging
import random

from flashdeck.application.config import AppConfig
from flashdeck.application.study_session import StudySession
from flashdeck.infrastructure.adapters.json_store import JsonFileRepository
from flashdeck.infrastructure.adapters.memory_store import InMemoryRepository

logger = logging.getLogger(__name__)


def get_repository(config: AppConfig) -> InMemoryRepository:
    """
    Returns the storage adapter for the configured backend.

    Both adapters implement CardRepository, CatalogRepository and HistoryRepository.
    """
    if config.backend == "memory":
        logger.debug("Backend: memory")
        return InMemoryRepository()

    logger.debug(f"Backend: json ({config.data_file})")
    return JsonFileRepository(config.data_file)


def build_study_session(
    config: AppConfig, repo: InMemoryRepository, deck_id: str | None = None
) -> StudySession:
    """Create a StudySession using the configured persistence mode and shuffle seed."""
    rng = random.Random(config.shuffle_seed) if config.shuffle_seed is not None else None
    return StudySession(
        repo,
        deck_id=deck_id,
        persistence_mode=config.persistence_mode,
        rng=rng,
    )
