import json
from unittest.mock import patch

import pytest

from flashdeck.domain.errors import NotFoundError, RepositoryError
from flashdeck.domain.models import Card, Deck, DeckScope, ReviewState, Subject
from flashdeck.infrastructure.adapters.json_store import JsonFileRepository

NOW = 1_700_000_000_000


def card(card_id, deck_id="d1", due=NOW):
    return Card(
        id=card_id,
        deck_id=deck_id,
        front="Q",
        back="A",
        review_state=ReviewState(interval=1, repetition=0, ease_factor=2.5, due=due),
        created_at=NOW,
    )


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "store.json"


@pytest.mark.asyncio
async def test_missing_file_is_empty_store(store_path):
    repo = JsonFileRepository(store_path)

    assert await repo.list_subjects() == []
    assert await repo.fetch_due_cards(None, NOW) == []
    assert not store_path.exists()


@pytest.mark.asyncio
async def test_data_survives_reopen(store_path):
    repo = JsonFileRepository(store_path)
    await repo.save_subject(Subject("s1", "Math", "Numbers"))
    await repo.save_deck(Deck("d1", "s1", "Algebra", NOW))
    await repo.save_cards([card("c1"), card("c2", due=NOW + 1)])
    await repo.persist_review_state("c1", ReviewState(6, 2, 2.36, NOW + 5))
    await repo.append_review_history("c1", "d1", 4, NOW)

    reopened = JsonFileRepository(store_path)

    assert await reopened.list_subjects() == [Subject("s1", "Math", "Numbers")]
    assert (await reopened.get_card("c1")).review_state == ReviewState(6, 2, 2.36, NOW + 5)
    history = await reopened.list_review_history()
    assert [(e.card_id, e.quality, e.reviewed_at) for e in history] == [("c1", 4, NOW)]


@pytest.mark.asyncio
async def test_review_state_stored_as_four_numbers(store_path):
    repo = JsonFileRepository(store_path)
    await repo.save_cards([card("c1")])

    data = json.loads(store_path.read_text())
    assert data["cards"][0]["reviewState"] == {
        "interval": 1,
        "repetition": 0,
        "easeFactor": 2.5,
        "due": NOW,
    }


@pytest.mark.asyncio
async def test_fetch_due_cards_filters_by_due_and_scope(store_path):
    repo = JsonFileRepository(store_path)
    await repo.save_cards([card("a", "d1"), card("b", "d2"), card("c", "d1", due=NOW + 1)])

    assert [c.id for c in await repo.fetch_due_cards(None, NOW)] == ["a", "b"]
    assert [c.id for c in await repo.fetch_due_cards(DeckScope("d1"), NOW)] == ["a"]


@pytest.mark.asyncio
async def test_persist_unknown_card(store_path):
    repo = JsonFileRepository(store_path)
    with pytest.raises(NotFoundError):
        await repo.persist_review_state("ghost", ReviewState(1, 0, 2.5, NOW))


@pytest.mark.asyncio
async def test_corrupt_file_raises_repository_error(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{ this is not json")

    repo = JsonFileRepository(store_path)
    with pytest.raises(RepositoryError, match="Failed to read store"):
        await repo.fetch_due_cards(None, NOW)


@pytest.mark.asyncio
async def test_history_sorted_and_filtered(store_path):
    repo = JsonFileRepository(store_path)
    await repo.append_review_history("c1", "d1", 5, NOW + 10)
    await repo.append_review_history("c2", "d2", 3, NOW)
    await repo.append_review_history("c3", "d1", 1, NOW + 5)

    all_entries = await repo.list_review_history()
    assert [e.reviewed_at for e in all_entries] == [NOW, NOW + 5, NOW + 10]

    d1 = await repo.list_review_history("d1")
    assert [e.card_id for e in d1] == ["c3", "c1"]


@pytest.mark.asyncio
async def test_failed_write_rolls_back_memory(store_path):
    repo = JsonFileRepository(store_path)
    await repo.save_cards([card("c1"), card("c2")])

    with patch(
        "flashdeck.infrastructure.adapters.json_store.os.replace",
        side_effect=OSError("disk full"),
    ):
        with pytest.raises(RepositoryError, match="Failed to write store"):
            await repo.persist_review_state("c1", ReviewState(6, 2, 2.36, NOW + 5))

    # Memory matches disk, and no temp file is left behind
    assert (await repo.get_card("c1")).review_state == card("c1").review_state
    assert [p.name for p in store_path.parent.iterdir()] == ["store.json"]

    # A later successful write must not carry the failed change along
    await repo.persist_review_state("c2", ReviewState(1, 0, 1.96, NOW + 1))
    reopened = JsonFileRepository(store_path)
    assert (await reopened.get_card("c1")).review_state == card("c1").review_state
    assert (await reopened.get_card("c2")).review_state == ReviewState(1, 0, 1.96, NOW + 1)


@pytest.mark.asyncio
async def test_failed_delete_keeps_cascaded_rows(store_path):
    repo = JsonFileRepository(store_path)
    await repo.save_deck(Deck("d1", "s1", "Algebra", NOW))
    await repo.save_cards([card("c1")])
    await repo.append_review_history("c1", "d1", 4, NOW)

    with patch(
        "flashdeck.infrastructure.adapters.json_store.os.replace",
        side_effect=OSError("read-only"),
    ):
        with pytest.raises(RepositoryError):
            await repo.delete_deck("d1")

    assert await repo.get_deck("d1") is not None
    assert await repo.get_card("c1") is not None
    assert len(await repo.list_review_history()) == 1


def test_adapters_do_not_import_application_layer():
    from pathlib import Path

    import flashdeck.infrastructure.adapters as adapters

    for source in Path(adapters.__file__).parent.glob("*.py"):
        assert "flashdeck.application" not in source.read_text(), source.name
