from unittest.mock import MagicMock, patch

import pytest
import requests

from arxiv_content import fetch_abstract, fetch_paper_text, parse_abstract, parse_paper_text
from errors import RetrievalError

_ABSTRACT_PAGE = """
<html><body>
<h1 class="title mathjax"><span class="descriptor">Title:</span>Sparse Attention for Cheap Inference</h1>
<blockquote class="abstract mathjax">
    <span class="descriptor">Abstract:</span>We reduce   the cost of
    LLM inference
    by 40%.
</blockquote>
</body></html>
"""

_HTML_PAPER = """
<html><body>
<article class="ltx_document">
  <section><p class="ltx_p">First   paragraph
  of the paper.</p></section>
  <p class="ltx_p">   </p>
  <p class="ltx_p">Second&#160;paragraph.</p>
  <p class="ltx_p">References and further reading</p>
  <p class="ltx_p">arXiv:2403.00001v1 [cs.AI] 14 Mar 2024</p>
  <p class="other">Not a paper paragraph.</p>
</article>
</body></html>
"""


def _mock_resp(text: str) -> MagicMock:
    mock = MagicMock()
    mock.text = text
    return mock


def test_parse_abstract_strips_label_and_whitespace() -> None:
    assert parse_abstract(_ABSTRACT_PAGE) == "We reduce the cost of LLM inference by 40%."


def test_parse_abstract_missing_block_returns_empty() -> None:
    assert parse_abstract("<html><body><p>nothing</p></body></html>") == ""


def test_parse_paper_text_filters_and_joins_paragraphs() -> None:
    text = parse_paper_text(_HTML_PAPER)
    assert text == "First paragraph of the paper.\n\nSecond paragraph."


def test_parse_paper_text_without_article_returns_none() -> None:
    assert parse_paper_text("<html><body><p class='ltx_p'>x</p></body></html>") is None


def test_fetch_abstract_uses_abs_url() -> None:
    with patch("arxiv_content.requests.get", return_value=_mock_resp(_ABSTRACT_PAGE)) as mock_get:
        abstract = fetch_abstract("2403.00001")

    assert mock_get.call_args.args[0] == "https://arxiv.org/abs/2403.00001"
    assert abstract.startswith("We reduce the cost")


def test_fetch_abstract_raises_when_block_missing() -> None:
    with patch("arxiv_content.requests.get", return_value=_mock_resp("<html></html>")):
        with pytest.raises(RetrievalError, match="Abstract not found"):
            fetch_abstract("2403.00001")


def test_fetch_abstract_wraps_transport_errors() -> None:
    with patch("arxiv_content.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(RetrievalError, match="Failed to fetch"):
            fetch_abstract("2403.00001")


def test_fetch_paper_text_uses_html_v1_url() -> None:
    with patch("arxiv_content.requests.get", return_value=_mock_resp(_HTML_PAPER)) as mock_get:
        text = fetch_paper_text("2403.00001")

    assert mock_get.call_args.args[0] == "https://arxiv.org/html/2403.00001v1"
    assert "Second paragraph." in text


def test_fetch_paper_text_raises_on_http_status() -> None:
    response = _mock_resp("")
    response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")

    with patch("arxiv_content.requests.get", return_value=response):
        with pytest.raises(RetrievalError):
            fetch_paper_text("2403.00001")
