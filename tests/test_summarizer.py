from unittest.mock import MagicMock

import pytest

from errors import MalformedAnswerError, OracleUnavailableError, SummarizationError
from models import Paper
from oracle import OracleReply, TextAnswer
from summarizer import DEFAULT_STYLE_INSTRUCTIONS, SUMMARIZER_MODEL, summarize


def _paper() -> Paper:
    return Paper(
        "2403.00001",
        abstract_fetcher=lambda pid: "abstract",
        text_fetcher=lambda pid: "The full body of the paper.",
    )


def test_summarize_builds_prompt_from_full_text() -> None:
    oracle = MagicMock()
    oracle.ask.return_value = OracleReply(value="  A crisp summary.  ", raw_text="A crisp summary.")

    summary = summarize(_paper(), "Be brief.", 120, oracle=oracle)

    assert summary == "A crisp summary."
    messages, shape, model = oracle.ask.call_args.args
    assert isinstance(shape, TextAnswer)
    assert model == SUMMARIZER_MODEL
    user_prompt = messages[1]["content"]
    assert "approximately 120 word summary" in user_prompt
    assert "Be brief." in user_prompt
    assert "2403.00001" in user_prompt
    assert "https://arxiv.org/abs/2403.00001" in user_prompt
    assert user_prompt.endswith("The full body of the paper.")


def test_summarize_uses_house_style_by_default() -> None:
    oracle = MagicMock()
    oracle.ask.return_value = OracleReply(value="ok", raw_text="ok")

    summarize(_paper(), oracle=oracle)

    assert DEFAULT_STYLE_INSTRUCTIONS in oracle.ask.call_args.args[0][1]["content"]


@pytest.mark.parametrize(
    "error",
    [MalformedAnswerError("Expected a non-empty text answer"), OracleUnavailableError("503")],
)
def test_summarize_failures_are_fatal(error: Exception) -> None:
    oracle = MagicMock()
    oracle.ask.side_effect = error

    with pytest.raises(SummarizationError, match="2403.00001"):
        summarize(_paper(), oracle=oracle)


def test_summarize_rejects_blank_value() -> None:
    oracle = MagicMock()
    oracle.ask.return_value = OracleReply(value="   ", raw_text="   ")

    with pytest.raises(SummarizationError):
        summarize(_paper(), oracle=oracle)
