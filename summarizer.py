"""Long-form social post summarizing the winning paper."""

from __future__ import annotations

import logging
import os

from errors import OracleError, SummarizationError
from models import Paper
from oracle import DecisionOracle, TextAnswer, build_conversation, create_oracle

SUMMARIZER_MODEL = os.getenv("SUMMARIZER_MODEL", "deepseek-ai/DeepSeek-R1")
DEFAULT_SUMMARY_WORDS = int(os.getenv("SUMMARY_WORDS", "3000"))
POST_HANDLE = os.getenv("POST_HANDLE", "@CentML_Inc")

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at summarizing information for mass consumption on Twitter/X "
    "(one long post, not a thread), with hashtags. You follow instructions to the letter."
)

DEFAULT_STYLE_INSTRUCTIONS = (
    "The tone should be academic. No need for section titles, just a couple of paragraphs. "
    f'The summary should start with "{POST_HANDLE} presents today\'s paper of the day:" then a '
    "catchy hook which entices the reader to read it, like a newspaper headline. The final "
    'sentences of the summary should start with "This paper selected and summarized by '
    f'#AgenticAI using the {POST_HANDLE} serverless platform". "{POST_HANDLE} thanks" then '
    "list the authors by name as they appear in the paper. Include them all. Include the url "
    "to the abstract and the github repository if it exists. Don't use any markdown "
    "throughout the post. Don't bold things using *. Use plain urls as this is for Twitter/X. "
    "The rest of the sentences/paragraphs should summarize the interesting details of the "
    "paper. Include an appropriate amount of relevant Twitter hashtags."
)

_USER_PROMPT = (
    "Create an approximately {words} word summary of the following paper. {style} "
    "arXiv Id: {arxiv_id} Abstract URL: {abstract_url} Paper:\n{text}"
)


def summarize(
    paper: Paper,
    style_instructions: str = DEFAULT_STYLE_INSTRUCTIONS,
    length_words: int = DEFAULT_SUMMARY_WORDS,
    oracle: DecisionOracle | None = None,
    model: str = SUMMARIZER_MODEL,
) -> str:
    """Return the publishable summary for paper.

    Any oracle failure is fatal: there is no fallback artifact.
    """
    oracle = oracle or create_oracle()
    user_prompt = _USER_PROMPT.format(
        words=length_words,
        style=style_instructions,
        arxiv_id=paper.arxiv_id,
        abstract_url=paper.abstract_url,
        text=paper.text(),
    )

    LOGGER.info("Summarizing arxiv_id=%s (~%s words)", paper.arxiv_id, length_words)
    try:
        reply = oracle.ask(build_conversation(SYSTEM_PROMPT, user_prompt), TextAnswer(), model)
    except OracleError as exc:
        raise SummarizationError(f"Summarization failed for arxiv_id={paper.arxiv_id}: {exc}") from exc

    summary = str(reply.value).strip()
    if not summary:
        raise SummarizationError(f"Summarization returned empty text for arxiv_id={paper.arxiv_id}")
    return summary
