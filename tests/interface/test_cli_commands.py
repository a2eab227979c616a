"""Tests for CLI commands: help, catalog, import/export, study, stats and config."""

import json
import re

import pytest
from typer.testing import CliRunner

from flashdeck.interface.cli import app

runner = CliRunner()


@pytest.fixture
def data_file(mock_home, tmp_path):
    return tmp_path / "store.json"


def invoke(data_file, *args, input=None):
    return runner.invoke(app, ["--data-file", str(data_file), *args], input=input)


def created_id(result) -> str:
    match = re.search(r"\(([0-9A-Z]{26})\)", result.output)
    assert match, result.output
    return match.group(1)


@pytest.fixture
def deck_id(data_file):
    subject = invoke(data_file, "subject", "add", "Biology")
    assert subject.exit_code == 0, subject.output
    deck = invoke(data_file, "deck", "add", created_id(subject), "Cells")
    assert deck.exit_code == 0, deck.output
    return created_id(deck)


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "flashdeck: Flashcards with SM-2 spaced repetition" in result.stdout
    assert "study" in result.stdout
    assert "deck" in result.stdout


def test_cli_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "flashdeck 0.3.0"


# --- Catalog ---


def test_subject_add_and_list(data_file):
    result = invoke(data_file, "subject", "add", "Biology", "--description", "Life")
    assert result.exit_code == 0
    assert "Created subject 'Biology'" in result.output

    listing = invoke(data_file, "subject", "list")
    assert "Biology  - Life" in listing.output


def test_duplicate_subject_fails(data_file):
    invoke(data_file, "subject", "add", "Biology")
    result = invoke(data_file, "subject", "add", "biology")

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_deck_add_unknown_subject(data_file):
    result = invoke(data_file, "deck", "add", "NOPE", "Cells")

    assert result.exit_code == 1
    assert "Subject not found: NOPE" in result.output


def test_card_add_list_edit_delete(data_file, deck_id):
    added = invoke(data_file, "card", "add", deck_id, "What is ATP?", "Energy")
    assert added.exit_code == 0
    card_id = added.output.strip().split()[-1]

    listing = invoke(data_file, "card", "list", deck_id)
    assert "What is ATP?" in listing.output
    assert "ivl=1d rep=0 ef=2.50" in listing.output

    edited = invoke(data_file, "card", "edit", card_id, "--back", "Adenosine triphosphate")
    assert edited.exit_code == 0

    data = json.loads(data_file.read_text())
    assert data["cards"][0]["back"] == "Adenosine triphosphate"

    deleted = invoke(data_file, "card", "delete", card_id)
    assert deleted.exit_code == 0
    assert json.loads(data_file.read_text())["cards"] == []


def test_card_edit_requires_change(data_file):
    result = invoke(data_file, "card", "edit", "X")
    assert result.exit_code == 2


def test_deck_list_shows_due_count(data_file, deck_id):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")
    invoke(data_file, "card", "add", deck_id, "Q2", "A2")

    result = invoke(data_file, "deck", "list")
    assert f"{deck_id}  Cells  (2 due)" in result.output


def test_deck_delete_with_force(data_file, deck_id):
    result = invoke(data_file, "deck", "delete", deck_id, "--force")
    assert result.exit_code == 0
    assert json.loads(data_file.read_text())["decks"] == []


# --- Import / Export ---


def test_export_import_json(data_file, deck_id, tmp_path):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")
    out = tmp_path / "deck.json"

    exported = invoke(data_file, "deck", "export", deck_id, "-o", str(out))
    assert exported.exit_code == 0
    assert json.loads(out.read_text())["deck"]["name"] == "Cells"

    other_store = tmp_path / "other.json"
    imported = invoke(other_store, "deck", "import", str(out))
    assert imported.exit_code == 0
    assert "Imported 1 cards into 'Biology / Cells'" in imported.output


def test_export_csv_to_stdout(data_file, deck_id):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")

    result = invoke(data_file, "deck", "export", deck_id, "--format", "csv")

    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == "front,back,interval,repetition,easeFactor,due"
    assert result.stdout.splitlines()[1].startswith('"Q1","A1",1,0,2.5,')


def test_import_csv_requires_names(data_file, tmp_path):
    path = tmp_path / "cards.csv"
    path.write_text("front,back,interval,repetition,easeFactor,due\nq,a,1,0,2.5,0\n")

    result = invoke(data_file, "deck", "import", str(path))

    assert result.exit_code == 1
    assert "Subject name is required" in result.output


def test_import_missing_file(data_file, tmp_path):
    result = invoke(data_file, "deck", "import", str(tmp_path / "nope.json"))
    assert result.exit_code == 1
    assert "File not found" in result.output


# --- Study ---


def test_study_nothing_due(data_file):
    result = invoke(data_file, "study")
    assert result.exit_code == 0
    assert "Nothing to study" in result.output


def test_study_session_flow(data_file, deck_id):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")
    invoke(data_file, "card", "add", deck_id, "Q2", "A2")

    # reveal, bad grade, good grade; reveal, grade
    result = invoke(data_file, "study", "--seed", "1", input="\n9\n5\n\n2\n")

    assert result.exit_code == 0, result.output
    assert "[1/2]" in result.output
    assert "[2/2]" in result.output
    assert "Invalid grade 9" in result.output
    assert "Session complete!" in result.output
    assert "Reviewed: 2" in result.output
    assert "Accuracy: 50%" in result.output

    data = json.loads(data_file.read_text())
    assert sorted(e["quality"] for e in data["reviewHistory"]) == [2, 5]
    assert all(c["reviewState"]["due"] > c["createdAt"] for c in data["cards"])

    # Everything is scheduled in the future now
    again = invoke(data_file, "study")
    assert "Nothing to study" in again.output


def test_study_blocking_single_deck(data_file, deck_id):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")

    result = invoke(data_file, "study", "--deck", deck_id, "--blocking", input="\n4\n")

    assert result.exit_code == 0, result.output
    assert "Accuracy: 100%" in result.output


def test_study_corrupt_store(data_file, mock_home):
    data_file.write_text("not json")

    result = invoke(data_file, "study")

    assert result.exit_code == 1
    assert "Could not load due cards" in result.output

    log_file = mock_home / ".config/flashdeck/logs/flashdeck.log"
    assert "Failed to load due cards" in log_file.read_text()


# --- Stats ---


def test_stats_after_study(data_file, deck_id):
    invoke(data_file, "card", "add", deck_id, "Q1", "A1")
    invoke(data_file, "study", input="\n4\n")

    result = invoke(data_file, "stats", "--json")

    assert result.exit_code == 0
    report = json.loads(result.stdout)
    assert report["overall"]["reviewed_count"] == 1
    assert report["overall"]["accuracy"] == 100
    assert report["decks"][0]["deck_id"] == deck_id


def test_stats_no_reviews(data_file):
    result = invoke(data_file, "stats")
    assert "No reviews yet." in result.output


# --- Config ---


def test_config_show(mock_home):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["backend"] == "json"
    assert output_data["persistence_mode"] == "background"


# --- Text import ---


def test_card_import_text(data_file, deck_id, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text(
        "1. What is osmosis?\nDiffusion of water across a membrane.\n"
        "2. What is a ribosome?\nThe site of protein synthesis.\n"
    )

    result = invoke(data_file, "card", "import-text", deck_id, str(notes))

    assert result.exit_code == 0, result.output
    assert "Created 2 cards from notes.txt" in result.output
    fronts = [c["front"] for c in json.loads(data_file.read_text())["cards"]]
    assert fronts == ["What is osmosis?", "What is a ribosome?"]


def test_card_import_text_nothing_found(data_file, deck_id, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("tiny")

    result = invoke(data_file, "card", "import-text", deck_id, str(notes))

    assert result.exit_code == 1
    assert "No flashcards found" in result.output


# --- Global options ---


def test_invalid_backend_is_a_usage_error(data_file):
    result = invoke(data_file, "--backend", "sqlite", "subject", "list")

    assert result.exit_code == 2
    assert "sqlite" in result.output
    assert isinstance(result.exception, SystemExit)


def test_config_show_reflects_global_options(mock_home, tmp_path):
    target = tmp_path / "elsewhere.json"
    result = runner.invoke(
        app, ["--data-file", str(target), "--backend", "memory", "config", "show"]
    )

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["backend"] == "memory"
    assert output_data["data_file"] == str(target.resolve())
