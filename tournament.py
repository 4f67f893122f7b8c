"""Pairwise tournament that folds relevant candidates down to one leader.

The fold is strictly sequential: every comparison depends on the leader left
by the previous one, so candidates are consumed in listing order and a
discarded candidate is never looked at again.
"""

from __future__ import annotations

import enum
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from errors import ComparatorInvalidResponseError, MalformedAnswerError
from models import Paper
from oracle import ChoiceAnswer, DecisionOracle, build_conversation, create_oracle

COMPARATOR_MODEL = os.getenv("COMPARATOR_MODEL", "deepseek-ai/DeepSeek-R1")

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert at comparing academic papers while following instructions."

_USER_PROMPT = (
    "Which paper focuses more on quantifiable efficiency improvements or cost reduction? "
    "We're looking specifically for techniques/strategies/algorithms that can increase the "
    "efficiency or reduce the cost of LLMs, reasoning models, or machine learning/neural "
    "networks/AI broadly. Here are the papers:\n"
    "Paper 1: {first}\n\n"
    "Paper 2: {second}\n\n"
    "Answer only 1 or 2, nothing else."
)

CLARIFICATION_PROMPT = "Please answer with 1 or 2 ONLY."

LEADER_KEEPS = 1
CHALLENGER_WINS = 2

Comparator = Callable[[Paper, Paper], int]


class ComparisonAttempt(enum.Enum):
    INITIAL = "initial"
    CLARIFICATION = "clarification"


class TournamentPhase(enum.Enum):
    NO_LEADER = "no_leader"
    HAS_LEADER = "has_leader"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class TournamentState:
    phase: TournamentPhase = TournamentPhase.NO_LEADER
    leader: Paper | None = None
    evaluated: int = 0
    error: ComparatorInvalidResponseError | None = None

    @classmethod
    def initial(cls) -> TournamentState:
        return cls()

    @property
    def is_terminal(self) -> bool:
        return self.phase is TournamentPhase.ABORTED


def compare_papers(
    leader: Paper,
    challenger: Paper,
    oracle: DecisionOracle | None = None,
    model: str = COMPARATOR_MODEL,
) -> int:
    """Ask the oracle which paper wins: 1 keeps the leader, 2 crowns the challenger.

    A malformed answer gets exactly one clarification turn. A second malformed
    answer raises ComparatorInvalidResponseError; transport failures propagate.
    """
    oracle = oracle or create_oracle()
    shape = ChoiceAnswer((LEADER_KEEPS, CHALLENGER_WINS))
    messages = build_conversation(
        SYSTEM_PROMPT,
        _USER_PROMPT.format(first=leader.abstract(), second=challenger.abstract()),
    )

    last_raw = ""
    for attempt in ComparisonAttempt:
        try:
            reply = oracle.ask(messages, shape, model)
        except MalformedAnswerError as exc:
            last_raw = exc.raw_text
            LOGGER.warning(
                "Comparator %s attempt returned an invalid answer for leader=%s challenger=%s: %r",
                attempt.value,
                leader.arxiv_id,
                challenger.arxiv_id,
                exc.raw_text[:200],
            )
            messages = [
                *messages,
                {"role": "assistant", "content": exc.reasoning + exc.raw_text},
                {"role": "user", "content": CLARIFICATION_PROMPT},
            ]
            continue

        LOGGER.info(
            "Comparator picked %s (leader=%s challenger=%s, attempt=%s)",
            reply.value,
            leader.arxiv_id,
            challenger.arxiv_id,
            attempt.value,
        )
        return int(reply.value)

    raise ComparatorInvalidResponseError(leader.arxiv_id, challenger.arxiv_id, last_raw)


def advance(state: TournamentState, candidate: Paper, compare: Comparator) -> TournamentState:
    """Apply one relevant candidate to the tournament state."""
    if state.phase is TournamentPhase.ABORTED:
        return state

    if state.leader is None:
        return replace(
            state,
            phase=TournamentPhase.HAS_LEADER,
            leader=candidate,
            evaluated=state.evaluated + 1,
        )

    try:
        choice = compare(state.leader, candidate)
    except ComparatorInvalidResponseError as exc:
        LOGGER.error("Tournament aborted: %s", exc)
        return replace(state, phase=TournamentPhase.ABORTED, error=exc)

    winner = candidate if choice == CHALLENGER_WINS else state.leader
    return replace(state, leader=winner, evaluated=state.evaluated + 1)


def run_tournament(
    candidates: Iterable[Paper],
    compare: Comparator,
    state: TournamentState | None = None,
) -> TournamentState:
    """Fold candidates into a final state, stopping as soon as the tournament aborts."""
    state = state or TournamentState.initial()
    for candidate in candidates:
        state = advance(state, candidate, compare)
        if state.is_terminal:
            break
        LOGGER.info(
            "Current leader: %s (evaluated=%s)",
            state.leader.arxiv_id if state.leader else None,
            state.evaluated,
        )
    return state
