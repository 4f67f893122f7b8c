from unittest.mock import MagicMock

import pytest

from errors import RetrievalError
from models import LazyField, Paper


def _paper(abstract: str = "An abstract.", text: str = "Full text.") -> tuple[Paper, MagicMock, MagicMock]:
    abstract_fetcher = MagicMock(return_value=abstract)
    text_fetcher = MagicMock(return_value=text)
    return Paper("2403.00001", abstract_fetcher, text_fetcher), abstract_fetcher, text_fetcher


def test_abstract_is_fetched_once() -> None:
    paper, abstract_fetcher, _ = _paper()

    assert paper.abstract() == "An abstract."
    assert paper.abstract() == "An abstract."
    abstract_fetcher.assert_called_once_with("2403.00001")


def test_text_is_fetched_once() -> None:
    paper, _, text_fetcher = _paper()

    assert paper.text() == "Full text."
    assert paper.text() == "Full text."
    text_fetcher.assert_called_once_with("2403.00001")


def test_empty_result_is_still_cached() -> None:
    paper, abstract_fetcher, _ = _paper(abstract="")

    assert paper.abstract() == ""
    assert paper.abstract() == ""
    assert paper.is_resolved("abstract") is True
    abstract_fetcher.assert_called_once()


def test_retrieval_failure_propagates_and_leaves_field_unresolved() -> None:
    fetcher = MagicMock(side_effect=[RetrievalError("boom"), "Recovered."])
    paper = Paper("2403.00001", abstract_fetcher=fetcher)

    with pytest.raises(RetrievalError):
        paper.abstract()
    assert paper.is_resolved("abstract") is False
    assert paper.abstract() == "Recovered."


def test_to_dict_without_resolve_leaves_fields_none() -> None:
    paper, abstract_fetcher, text_fetcher = _paper()

    assert paper.to_dict() == {"arxiv_id": "2403.00001", "abstract": None, "text": None}
    abstract_fetcher.assert_not_called()
    text_fetcher.assert_not_called()


def test_to_dict_with_resolve_fetches_everything() -> None:
    paper, _, _ = _paper()

    assert paper.to_dict(resolve=True) == {
        "arxiv_id": "2403.00001",
        "abstract": "An abstract.",
        "text": "Full text.",
    }


def test_restored_fields_are_not_refetched() -> None:
    paper, _, _ = _paper()
    paper.abstract()
    payload = paper.to_json()

    abstract_fetcher = MagicMock(return_value="other")
    text_fetcher = MagicMock(return_value="Fetched later.")
    restored = Paper.from_json(payload, abstract_fetcher=abstract_fetcher, text_fetcher=text_fetcher)

    assert restored.arxiv_id == "2403.00001"
    assert restored.abstract() == "An abstract."
    abstract_fetcher.assert_not_called()
    assert restored.text() == "Fetched later."
    text_fetcher.assert_called_once()


def test_urls_and_identity() -> None:
    paper = Paper("2403.00001")

    assert paper.abstract_url == "https://arxiv.org/abs/2403.00001"
    assert paper.html_url == "https://arxiv.org/html/2403.00001v1"
    assert paper == Paper("2403.00001")
    assert paper != Paper("2403.00002")


def test_empty_identifier_is_rejected() -> None:
    with pytest.raises(ValueError):
        Paper("")


def test_lazy_field_set_marks_resolved() -> None:
    field = LazyField()
    assert field.resolved is False
    field.set("")
    assert field.resolved is True
    assert field.value == ""
