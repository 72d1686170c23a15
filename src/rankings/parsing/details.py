"""Rating and scouting-note extraction from per-row detail blocks."""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup
from bs4.element import Tag

_RATING_PATTERN = re.compile(r"rating\s*[:\-]?\s*(\d{1,3})", re.IGNORECASE)
_AFTER_RATING_PATTERN = re.compile(r".*?rating\s*[:\-]?\s*\d{1,3}\s*", re.IGNORECASE | re.DOTALL)

# Tried in order; the first paired match wins.
_QUOTE_PATTERNS = (
    re.compile(r"“([^”]+)”"),
    re.compile(r'"([^"]+)"'),
    re.compile(r"‘([^’]+)’"),
    re.compile(r"'([^']+)'"),
)
_OPENING_QUOTE = re.compile(r"[“\"‘']")
_LEADING_QUOTES = re.compile(r"^[“\"‘']+")
_TRAILING_QUOTES = re.compile(r"[”\"’']+$")
_LEADING_PUNCTUATION = re.compile(r"^[-–—:\s]+")

MIN_RATING = 0
MAX_RATING = 100


@dataclass(frozen=True)
class DetailFacts:
    rating: int | None = None
    comment: str | None = None


def parse_rating(text: str) -> int | None:
    """Return the labelled rating if it falls within 0-100."""

    match = _RATING_PATTERN.search(text)
    if not match:
        return None
    value = int(match.group(1))
    if MIN_RATING <= value <= MAX_RATING:
        return value
    return None


def _strip_quotes(text: str) -> str:
    text = _LEADING_QUOTES.sub("", text.strip())
    return _TRAILING_QUOTES.sub("", text).strip()


def parse_comment(text: str, *, rating: int | None = None) -> str | None:
    """Extract commentary: paired quotes, then an unclosed quote, then text after the rating."""

    for pattern in _QUOTE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    opening = _OPENING_QUOTE.search(text)
    if opening is not None:
        tail = _strip_quotes(text[opening.end() :])
        if tail:
            return tail

    if rating is None:
        return None
    after = _AFTER_RATING_PATTERN.sub("", text, count=1).strip()
    if not after:
        return None
    after = _LEADING_PUNCTUATION.sub("", after)
    return _strip_quotes(after) or None


def extract_detail(text: str | None) -> DetailFacts:
    """Mine a detail block's text for a rating and a scouting comment."""

    if not text or not text.strip():
        return DetailFacts()
    text = text.strip()
    rating = parse_rating(text)
    return DetailFacts(rating=rating, comment=parse_comment(text, rating=rating))


def find_detail_text(soup: BeautifulSoup, detail_id: str) -> str | None:
    """Locate the detail row addressed by ``detail_id`` and return its first paragraph."""

    anchor = soup.find(id=f"document_{detail_id}")
    if not isinstance(anchor, Tag):
        return None
    container = anchor if "divRow" in (anchor.get("class") or []) else anchor.find_parent(class_="divRow")
    if container is None:
        return None
    paragraph = container.find("p")
    if paragraph is None:
        return None
    return paragraph.get_text().strip()


__all__ = ["DetailFacts", "extract_detail", "find_detail_text", "parse_comment", "parse_rating"]
