"""arXiv abstract and full-text retrieval for individual papers."""

from __future__ import annotations

import logging
import re

import requests
from bs4 import BeautifulSoup

from errors import RetrievalError
from models import ARXIV_ABS_URL, ARXIV_HTML_URL

ABSTRACT_TIMEOUT_SECONDS = 5
TEXT_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)

_ARXIV_FOOTER_RE = re.compile(r"^arXiv:\d{4}\.\d{5}")
_WHITESPACE_RE = re.compile(r"\s+")


def fetch_abstract(arxiv_id: str) -> str:
    """Fetch the abstract page for arxiv_id and return the cleaned abstract text."""
    html = _get_html(ARXIV_ABS_URL.format(arxiv_id=arxiv_id), ABSTRACT_TIMEOUT_SECONDS)
    abstract = parse_abstract(html)
    if not abstract:
        raise RetrievalError(f"Abstract not found for arxiv_id={arxiv_id}")
    LOGGER.debug("Fetched abstract for arxiv_id=%s (%s chars)", arxiv_id, len(abstract))
    return abstract


def fetch_paper_text(arxiv_id: str) -> str:
    """Fetch the HTML rendering of arxiv_id and return its paragraphs as plain text."""
    html = _get_html(ARXIV_HTML_URL.format(arxiv_id=arxiv_id), TEXT_TIMEOUT_SECONDS)
    text = parse_paper_text(html)
    if text is None:
        raise RetrievalError(f"Paper article element not found for arxiv_id={arxiv_id}")
    LOGGER.info("Fetched full text for arxiv_id=%s (%s chars)", arxiv_id, len(text))
    return text


def parse_abstract(html: str) -> str:
    """Extract the abstract from an arXiv abstract page; empty string if absent."""
    soup = BeautifulSoup(html, "lxml")
    block = soup.select_one("blockquote.abstract")
    if block is None:
        return ""
    text = block.get_text(" ").replace("Abstract:", " ")
    return _collapse(text)


def parse_paper_text(html: str) -> str | None:
    """Join the body paragraphs of an arXiv HTML paper; None if there is no article."""
    soup = BeautifulSoup(html, "lxml")
    article = soup.select_one("article.ltx_document")
    if article is None:
        return None

    paragraphs: list[str] = []
    for node in article.select("p.ltx_p"):
        text = _collapse(node.get_text(" ").replace("\u00a0", " "))
        if not text or text.startswith("References") or _ARXIV_FOOTER_RE.match(text):
            continue
        paragraphs.append(text)
    return "\n\n".join(paragraphs)


def _get_html(url: str, timeout: int) -> str:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise RetrievalError(f"Failed to fetch {url}: {exc}") from exc
    return response.text


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()
