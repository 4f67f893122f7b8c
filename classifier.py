"""Relevance filter: does an abstract focus on AI efficiency or cost reduction?"""

from __future__ import annotations

import logging
import os

from errors import OracleError
from oracle import BooleanAnswer, DecisionOracle, build_conversation, create_oracle

CLASSIFIER_MODEL = os.getenv("CLASSIFIER_MODEL", "meta-llama/Llama-3.3-70B-Instruct")

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a careful research assistant. Answer yes or no, nothing else."

_USER_PROMPT = (
    "Does this abstract focus on efficiency or cost reduction in relation to either "
    "Machine Learning (ML) generally or Large Language Models (LLM) specifically? "
    "Answer yes/no:\n{abstract}"
)


def classify(
    abstract_text: str,
    oracle: DecisionOracle | None = None,
    model: str = CLASSIFIER_MODEL,
) -> bool:
    """Return True if the abstract is relevant.

    Fails closed: an unreachable oracle or an answer that is not yes/no
    excludes the candidate instead of stopping the run.
    """
    oracle = oracle or create_oracle()
    messages = build_conversation(SYSTEM_PROMPT, _USER_PROMPT.format(abstract=abstract_text))

    try:
        reply = oracle.ask(messages, BooleanAnswer(), model)
    except OracleError as exc:
        LOGGER.warning("Classification failed, excluding candidate: %s", exc)
        return False

    return bool(reply.value)
