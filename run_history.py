"""CSV log of completed paper-of-the-day runs."""

from __future__ import annotations

import csv
import logging
import os
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

RUN_HISTORY_CSV_PATH = os.getenv("RUN_HISTORY_CSV_PATH", "paper_of_the_day_runs.csv")

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = [
    "run_date",
    "target_date",
    "candidates",     # identifiers found under the target date
    "relevant",       # candidates that entered the tournament
    "winner_id",
    "abstract_url",
    "summary",
    "published",      # True only if the post was actually sent
    "created_at",
]


def winner_already_selected(arxiv_id: str) -> bool:
    """Return True if a previous run already picked arxiv_id."""
    path = Path(RUN_HISTORY_CSV_PATH)
    if not path.exists():
        return False

    with path.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        for row in reader:
            if row.get("winner_id") == arxiv_id:
                return True
    return False


def write_run_entry(
    target_date: date,
    candidates: int,
    relevant: int,
    winner_id: str | None,
    summary: str | None,
    published: bool,
) -> None:
    """Append a row to the CSV (creating it with a header if needed)."""
    path = Path(RUN_HISTORY_CSV_PATH)
    write_header = not path.exists() or path.stat().st_size == 0

    now = datetime.now(UTC)
    row: dict[str, Any] = {
        "run_date": now.date().isoformat(),
        "target_date": target_date.isoformat(),
        "candidates": candidates,
        "relevant": relevant,
        "winner_id": winner_id or "",
        "abstract_url": f"https://arxiv.org/abs/{winner_id}" if winner_id else "",
        "summary": (summary or "").strip(),
        "published": published,
        "created_at": now.isoformat(),
    }

    with path.open("a", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        if write_header:
            writer.writeheader()
        writer.writerow(row)

    LOGGER.info("Wrote run history row for target_date=%s to %s", target_date, RUN_HISTORY_CSV_PATH)
