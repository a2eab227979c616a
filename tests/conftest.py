import pytest

from flashdeck.domain.models import Card, Deck, ReviewState, Subject
from flashdeck.infrastructure.adapters.memory_store import InMemoryRepository

NOW = 1_700_000_000_000  # fixed epoch ms used as "now" across tests
DAY_MS = 86_400_000


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    for var in ("FLASHDECK_BACKEND", "FLASHDECK_DATA_FILE", "FLASHDECK_PERSISTENCE_MODE"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def make_card():
    """Factory for cards that are due at NOW unless told otherwise."""

    def _make(card_id: str, deck_id: str = "deck-1", due: int = NOW - 1000, **state) -> Card:
        review_state = ReviewState(
            interval=state.get("interval", 1),
            repetition=state.get("repetition", 0),
            ease_factor=state.get("ease_factor", 2.5),
            due=due,
        )
        return Card(
            id=card_id,
            deck_id=deck_id,
            front=f"Q {card_id}",
            back=f"A {card_id}",
            review_state=review_state,
            created_at=NOW - DAY_MS,
        )

    return _make


@pytest.fixture
def repo():
    """In-memory repository with one subject, two decks and no cards."""
    r = InMemoryRepository()
    r.subjects["subj-1"] = Subject(id="subj-1", name="Biology", description="")
    r.decks["deck-1"] = Deck(id="deck-1", subject_id="subj-1", name="Cells", created_at=NOW)
    r.decks["deck-2"] = Deck(id="deck-2", subject_id="subj-1", name="Genetics", created_at=NOW)
    return r


@pytest.fixture
def clock():
    return lambda: NOW
