# Domain Package
from .models import Card, Deck, DeckScope, ReviewHistoryEntry, ReviewState, Subject
from .ports import CardRepository, CatalogRepository, HistoryRepository
from .scheduler import update_sm2

__all__ = [
    "Card",
    "Deck",
    "DeckScope",
    "ReviewHistoryEntry",
    "ReviewState",
    "Subject",
    "CardRepository",
    "CatalogRepository",
    "HistoryRepository",
    "update_sm2",
]
