"""arXiv "recent" listing ingestion: find the identifiers published on one day."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

import requests
from bs4 import BeautifulSoup, Tag

from errors import RetrievalError

# The "recent" page lists the last few announcement days on one document, with
# a navigation list of dates and one h3 heading per day inside dl#articles.
LISTING_URL = os.getenv(
    "ARXIV_LISTING_URL", "https://arxiv.org/list/cs.AI/recent?skip=0&show=2000"
)
REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)

MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


class DateMatchable(Protocol):
    year: int
    month: int
    day: int


@dataclass(frozen=True, slots=True)
class DatePhraseFormat:
    """How a listing writes a date, e.g. "Thu, 14 Mar 2024".

    `pattern` must expose the groups day, month and year. The canonical phrase
    is the entry text from its start through the end of the match, so an
    optional weekday prefix is kept and any trailing count is dropped.
    """

    pattern: re.Pattern[str] = re.compile(
        r"(?P<day>\d{1,2})\s+(?P<month>[A-Za-z]{3})\s+(?P<year>\d{4})"
    )
    months: tuple[str, ...] = MONTH_ABBREVIATIONS

    def parse(self, text: str) -> tuple[tuple[int, int, int], str] | None:
        """Return ((year, month, day), canonical_phrase) or None if text has no date."""
        head = _normalize(text.split("(", 1)[0])
        match = self.pattern.search(head)
        if match is None:
            return None
        month_name = match.group("month")
        if month_name not in self.months:
            return None
        key = (
            int(match.group("year")),
            self.months.index(month_name) + 1,
            int(match.group("day")),
        )
        return key, head[: match.end()]


@dataclass(frozen=True, slots=True)
class ListingLayout:
    """CSS selectors and tag names describing the listing page structure."""

    navigation_selector: str = "ul li a"
    heading_selector: str = "dl#articles h3"
    heading_tag: str = "h3"
    entry_tag: str = "dt"
    abstract_prefix: str = "/abs/"
    date_format: DatePhraseFormat = field(default_factory=DatePhraseFormat)


ARXIV_LAYOUT = ListingLayout()


def get_arxiv_ids_for_date(target_date: date, url: str | None = None) -> list[str]:
    """Fetch the listing page and return the identifiers published on target_date."""
    html = fetch_listing(url or LISTING_URL)
    return extract_arxiv_ids(html, target_date)


def fetch_listing(url: str = LISTING_URL) -> str:
    """Return the raw listing markup, raising RetrievalError on any HTTP failure."""
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise RetrievalError(f"Failed to fetch listing {url}: {exc}") from exc

    LOGGER.info("Listing fetch: url=%s bytes=%s", url, len(response.text))
    return response.text


def extract_arxiv_ids(
    document: str | BeautifulSoup,
    target_date: DateMatchable,
    layout: ListingLayout = ARXIV_LAYOUT,
) -> list[str]:
    """Return the identifiers listed under target_date, in document order.

    An empty list means the date is not on the page or has no entries; it is
    never an error.
    """
    soup = document if isinstance(document, BeautifulSoup) else BeautifulSoup(document, "lxml")
    target = (target_date.year, target_date.month, target_date.day)

    phrase = _find_navigation_phrase(soup, target, layout)
    if phrase is None:
        LOGGER.info("Listing extract: no navigation entry for %04d-%02d-%02d", *target)
        return []

    heading = _find_heading(soup, phrase, layout)
    if heading is None:
        LOGGER.info("Listing extract: no section heading contains %r", phrase)
        return []

    arxiv_ids: list[str] = []
    for entry in _section_entries(heading, layout):
        arxiv_id = _entry_id(entry, layout)
        if arxiv_id:
            arxiv_ids.append(arxiv_id)

    LOGGER.info("Listing extract: date=%r ids=%s", phrase, len(arxiv_ids))
    return arxiv_ids


def _find_navigation_phrase(
    soup: BeautifulSoup, target: tuple[int, int, int], layout: ListingLayout
) -> str | None:
    for entry in soup.select(layout.navigation_selector):
        parsed = layout.date_format.parse(entry.get_text(" "))
        if parsed is None:
            continue
        key, phrase = parsed
        if key == target:
            return phrase
    return None


def _find_heading(soup: BeautifulSoup, phrase: str, layout: ListingLayout) -> Tag | None:
    # Bounded so that "5 Mar 2024" does not match inside "15 Mar 2024".
    contains_phrase = re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")
    for heading in soup.select(layout.heading_selector):
        if contains_phrase.search(_normalize(heading.get_text(" "))):
            return heading
    return None


def _section_entries(heading: Tag, layout: ListingLayout) -> list[Tag]:
    entries: list[Tag] = []
    for sibling in heading.find_next_siblings():
        if sibling.name == layout.heading_tag:
            break
        if sibling.name == layout.entry_tag:
            entries.append(sibling)
    return entries


def _entry_id(entry: Tag, layout: ListingLayout) -> str | None:
    for link in entry.find_all("a", href=True):
        href = str(link["href"])
        if href.startswith(layout.abstract_prefix):
            return href.rstrip("/").rsplit("/", 1)[-1] or None
    return None


def _normalize(text: str) -> str:
    return " ".join(text.split())
