"""CLI entrypoint for the daily arXiv paper-of-the-day workflow."""

from __future__ import annotations

import argparse
import logging
import os
import time
from collections.abc import Callable, Iterator, Sequence
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from dotenv import load_dotenv

from arxiv_feed import get_arxiv_ids_for_date
from classifier import classify
from errors import (
    ComparatorInvalidResponseError,
    OracleError,
    RetrievalError,
    SummarizationError,
)
from models import Paper
from oracle import DecisionOracle, create_oracle
from publisher import publish_summary
from run_history import winner_already_selected, write_run_entry
from summarizer import summarize
from tournament import TournamentPhase, TournamentState, compare_papers, run_tournament

# Pause between candidates to stay under the arXiv and oracle rate limits.
PACING_SECONDS = float(os.getenv("PACING_SECONDS", "1.0"))


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Select, summarize and post the arXiv paper of the day")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Listing date to evaluate (YYYY-MM-DD). Defaults to today (UTC) minus --days-ago.",
    )
    parser.add_argument("--days-ago", type=int, default=0, help="Offset from today when --date is not given")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of candidates to examine")
    parser.add_argument(
        "--pacing",
        type=float,
        default=PACING_SECONDS,
        help="Seconds to wait between candidate evaluations",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the selection and summary but never post and never write run history",
    )
    parser.add_argument("--save-winner", type=Path, default=None, help="Write the winning paper as JSON to this path")
    return parser.parse_args(argv)


def resolve_target_date(explicit: date | None, days_ago: int = 0) -> date:
    if explicit is not None:
        return explicit
    return datetime.now(UTC).date() - timedelta(days=days_ago)


def iter_relevant_papers(
    arxiv_ids: Sequence[str],
    oracle: DecisionOracle,
    *,
    limit: int | None = None,
    pacing_seconds: float = PACING_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    paper_factory: Callable[[str], Paper] = Paper,
) -> Iterator[Paper]:
    """Yield the candidates the classifier accepts, one at a time and in order.

    The generator is consumed by the tournament, so nothing past an aborted
    comparison is ever fetched or classified.
    """
    total = len(arxiv_ids) if limit is None else min(limit, len(arxiv_ids))
    for processed, arxiv_id in enumerate(arxiv_ids[:total], start=1):
        if processed > 1 and pacing_seconds > 0:
            sleep(pacing_seconds)

        paper = paper_factory(arxiv_id)
        try:
            abstract = paper.abstract()
        except RetrievalError as exc:
            logging.warning("%s/%s - Skipping %s - abstract unavailable: %s", processed, total, arxiv_id, exc)
            continue

        if not classify(abstract, oracle=oracle):
            logging.info("%s/%s - Skipping %s - not relevant", processed, total, arxiv_id)
            continue

        logging.info("%s/%s - Processing %s - relevant", processed, total, arxiv_id)
        yield paper


def select_paper_of_the_day(
    arxiv_ids: Sequence[str],
    oracle: DecisionOracle,
    *,
    limit: int | None = None,
    pacing_seconds: float = PACING_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    paper_factory: Callable[[str], Paper] = Paper,
) -> TournamentState:
    """Classify the candidates and run the tournament over the relevant ones."""
    relevant = iter_relevant_papers(
        arxiv_ids,
        oracle,
        limit=limit,
        pacing_seconds=pacing_seconds,
        sleep=sleep,
        paper_factory=paper_factory,
    )
    return run_tournament(relevant, lambda leader, challenger: compare_papers(leader, challenger, oracle=oracle))


def run(
    target_date: date,
    *,
    dry_run: bool = False,
    limit: int | None = None,
    pacing_seconds: float = PACING_SECONDS,
    save_winner: Path | None = None,
    oracle: DecisionOracle | None = None,
) -> str | None:
    """Run one full workflow cycle; return the summary, or None when there is no winner."""
    logging.info("Starting paper of the day workflow for %s", target_date.isoformat())

    arxiv_ids = get_arxiv_ids_for_date(target_date)
    logging.info("Found %s arXiv IDs for %s", len(arxiv_ids), target_date.isoformat())
    if not arxiv_ids:
        logging.info("No publications listed for %s; nothing to select", target_date.isoformat())
        if not dry_run:
            write_run_entry(target_date, 0, 0, None, None, published=False)
        return None

    oracle = oracle or create_oracle()
    state = select_paper_of_the_day(arxiv_ids, oracle, limit=limit, pacing_seconds=pacing_seconds)

    if state.phase is TournamentPhase.ABORTED and state.error is not None:
        raise state.error

    winner = state.leader
    if winner is None:
        logging.info("No relevant paper among %s candidates; skipping summary", len(arxiv_ids))
        if not dry_run:
            write_run_entry(target_date, len(arxiv_ids), 0, None, None, published=False)
        return None

    logging.info("Selected paper: %s (relevant=%s)", winner.arxiv_id, state.evaluated)
    if winner_already_selected(winner.arxiv_id):
        logging.info("Skipping existing winner arxiv_id=%s", winner.arxiv_id)
        if not dry_run:
            write_run_entry(target_date, len(arxiv_ids), state.evaluated, winner.arxiv_id, None, published=False)
        return None

    summary = summarize(winner, oracle=oracle)
    logging.info("Summary for %s:\n%s", winner.arxiv_id, summary)

    if save_winner is not None:
        save_winner.write_text(winner.to_json(resolve=True), encoding="utf-8")
        logging.info("Saved winner %s to %s", winner.arxiv_id, save_winner)

    if dry_run:
        logging.info("[dry-run] Would publish summary for %s", winner.arxiv_id)
        return summary

    published = publish_summary(summary)
    write_run_entry(target_date, len(arxiv_ids), state.evaluated, winner.arxiv_id, summary, published)
    return summary


def main(argv: Sequence[str] | None = None) -> None:
    """Initialize config and execute the workflow."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)
    target_date = resolve_target_date(args.date, args.days_ago)

    try:
        run(
            target_date,
            dry_run=args.dry_run,
            limit=args.limit,
            pacing_seconds=args.pacing,
            save_winner=args.save_winner,
        )
    except ComparatorInvalidResponseError as exc:
        logging.error(
            "Run aborted by compare_papers: leader=%s challenger=%s raw=%r",
            exc.leader_id,
            exc.challenger_id,
            exc.raw_text[:200],
        )
        raise SystemExit(1) from exc
    except (SummarizationError, RetrievalError, OracleError) as exc:
        logging.exception("Run failed for %s: %s", target_date.isoformat(), exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
