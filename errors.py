"""Error kinds raised across the paper-of-the-day workflow."""

from __future__ import annotations


class RetrievalError(RuntimeError):
    """A listing, abstract or full-text page could not be fetched or parsed."""


class OracleError(RuntimeError):
    """Base class for decision oracle failures."""


class OracleUnavailableError(OracleError):
    """The oracle could not be reached (transport error, API status, timeout)."""


class MalformedAnswerError(OracleError):
    """The oracle answered, but the answer failed validation against its shape."""

    def __init__(self, message: str, raw_text: str = "", reasoning: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.reasoning = reasoning


class ComparatorInvalidResponseError(RuntimeError):
    """The comparator gave no usable 1/2 answer, even after clarification."""

    def __init__(self, leader_id: str, challenger_id: str, raw_text: str = "") -> None:
        super().__init__(
            f"Comparator returned an invalid answer twice for "
            f"leader={leader_id} challenger={challenger_id}: {raw_text[:200]!r}"
        )
        self.leader_id = leader_id
        self.challenger_id = challenger_id
        self.raw_text = raw_text


class SummarizationError(RuntimeError):
    """No summary could be produced for the winning paper."""
