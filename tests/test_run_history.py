from __future__ import annotations

import csv
from datetime import date
from pathlib import Path

import pytest

import run_history


@pytest.fixture(autouse=True)
def patch_csv_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point RUN_HISTORY_CSV_PATH at a temp file for every test."""
    output = tmp_path / "runs.csv"
    monkeypatch.setattr(run_history, "RUN_HISTORY_CSV_PATH", str(output))


def _rows() -> list[dict[str, str]]:
    path = Path(run_history.RUN_HISTORY_CSV_PATH)
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


def test_winner_already_selected_false_when_no_file() -> None:
    assert run_history.winner_already_selected("2403.00001") is False


def test_write_run_entry_creates_file_with_header() -> None:
    run_history.write_run_entry(date(2024, 3, 14), 42, 5, "2403.00001", "Summary text", published=True)

    rows = _rows()
    assert len(rows) == 1
    row = rows[0]
    assert row["target_date"] == "2024-03-14"
    assert row["candidates"] == "42"
    assert row["relevant"] == "5"
    assert row["winner_id"] == "2403.00001"
    assert row["abstract_url"] == "https://arxiv.org/abs/2403.00001"
    assert row["summary"] == "Summary text"
    assert row["published"] == "True"


def test_write_run_entry_appends_without_second_header() -> None:
    run_history.write_run_entry(date(2024, 3, 14), 3, 1, "2403.00001", "s1", published=False)
    run_history.write_run_entry(date(2024, 3, 15), 0, 0, None, None, published=False)

    rows = _rows()
    assert len(rows) == 2
    assert rows[1]["winner_id"] == ""
    assert rows[1]["abstract_url"] == ""


def test_winner_already_selected_after_write() -> None:
    run_history.write_run_entry(date(2024, 3, 14), 3, 1, "2403.00001", "s1", published=True)

    assert run_history.winner_already_selected("2403.00001") is True
    assert run_history.winner_already_selected("2403.00002") is False
