"""Shared typed models for the pipeline."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

ARXIV_ABS_URL = "https://arxiv.org/abs/{arxiv_id}"
ARXIV_HTML_URL = "https://arxiv.org/html/{arxiv_id}v1"

Fetcher = Callable[[str], str]


@dataclass(slots=True)
class LazyField:
    """A cached value that is either resolved (possibly empty) or not yet fetched."""

    resolved: bool = False
    value: str | None = None

    def set(self, value: str) -> None:
        self.value = value
        self.resolved = True


class Paper:
    """One arXiv candidate whose abstract and full text are fetched on first read.

    Each field is retrieved at most once per entity. Retrieval errors propagate
    to the caller and leave the field unresolved.
    """

    def __init__(
        self,
        arxiv_id: str,
        abstract_fetcher: Fetcher | None = None,
        text_fetcher: Fetcher | None = None,
    ) -> None:
        if not arxiv_id:
            raise ValueError("arxiv_id must be a non-empty string")
        self._arxiv_id = arxiv_id
        self._abstract_fetcher = abstract_fetcher
        self._text_fetcher = text_fetcher
        self._abstract = LazyField()
        self._text = LazyField()

    @property
    def arxiv_id(self) -> str:
        return self._arxiv_id

    @property
    def abstract_url(self) -> str:
        return ARXIV_ABS_URL.format(arxiv_id=self._arxiv_id)

    @property
    def html_url(self) -> str:
        return ARXIV_HTML_URL.format(arxiv_id=self._arxiv_id)

    def abstract(self) -> str:
        """Return the cleaned abstract, fetching it on first access."""
        if not self._abstract.resolved:
            fetcher = self._abstract_fetcher
            if fetcher is None:
                from arxiv_content import fetch_abstract as fetcher  # noqa: PLC0415
            self._abstract.set(fetcher(self._arxiv_id))
        return self._abstract.value or ""

    def text(self) -> str:
        """Return the full paper text, fetching it on first access."""
        if not self._text.resolved:
            fetcher = self._text_fetcher
            if fetcher is None:
                from arxiv_content import fetch_paper_text as fetcher  # noqa: PLC0415
            self._text.set(fetcher(self._arxiv_id))
        return self._text.value or ""

    def is_resolved(self, field: str) -> bool:
        return {"abstract": self._abstract, "text": self._text}[field].resolved

    def to_dict(self, resolve: bool = False) -> dict[str, Any]:
        """Return a transportable dict; unresolved fields are None.

        With resolve=True both fields are fetched first.
        """
        if resolve:
            self.abstract()
            self.text()
        return {
            "arxiv_id": self._arxiv_id,
            "abstract": self._abstract.value if self._abstract.resolved else None,
            "text": self._text.value if self._text.resolved else None,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        abstract_fetcher: Fetcher | None = None,
        text_fetcher: Fetcher | None = None,
    ) -> Paper:
        paper = cls(
            str(data["arxiv_id"]),
            abstract_fetcher=abstract_fetcher,
            text_fetcher=text_fetcher,
        )
        if isinstance(data.get("abstract"), str):
            paper._abstract.set(data["abstract"])
        if isinstance(data.get("text"), str):
            paper._text.set(data["text"])
        return paper

    def to_json(self, resolve: bool = False) -> str:
        return json.dumps(self.to_dict(resolve=resolve), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str, **fetchers: Fetcher | None) -> Paper:
        return cls.from_dict(json.loads(payload), **fetchers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Paper):
            return NotImplemented
        return self._arxiv_id == other._arxiv_id

    def __hash__(self) -> int:
        return hash(self._arxiv_id)

    def __repr__(self) -> str:
        return f"Paper(arxiv_id={self._arxiv_id!r})"
