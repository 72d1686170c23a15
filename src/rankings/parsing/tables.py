"""Ranking table extraction from publisher markup.

Pages are parsed by an ordered list of independent strategies. The first
strategy that yields at least one row wins; its rows are de-duplicated on
``(rank, lower-cased name)`` keeping the first occurrence.

* ``parse_structured`` reads the publisher's ``divTable`` ranking widget.
* ``parse_heuristic_table`` scans generic content containers for literal
  ``<table>`` markup.
* ``parse_heuristic_text`` scans the same containers for freeform lines such
  as ``12) Jane Doe - G - Lincoln HS - Stanford``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from rankings.entities.core import RowVariant, ScrapedRow
from rankings.utils.helpers import normalize_whitespace
from rankings.utils.logging import get_logger
from rankings.web_mining.utils import absolutize_url

from .details import extract_detail, find_detail_text

TABLE_SELECTOR = ".player__rank-table .divTable"
HEURISTIC_CONTAINERS = "article, .entry-content, .post, .elementor, .wp-block-table"
NON_DATA_ROW_CLASSES = frozenset({"player-founder"})
PLACEMENT_TOKENS = ("Champion", "Runner Up", "Final 4", "Elite 8", "Sweet 16")

_NON_DIGIT = re.compile(r"\D+")
_STATE_SUFFIX = re.compile(r",\s*([A-Z]{2})\s*$")
_TEXT_LINE = re.compile(r"^(\d{1,3})(?!\d)\)?\s*[-.)]?\s*(.+)$")
_TEXT_SEPARATOR = re.compile(r"\s+-\s+")
_PLACEMENT_ALTERNATION = "|".join(re.escape(token) for token in PLACEMENT_TOKENS)
_PARENTHESISED_LABEL = re.compile(r"^(.*)\s*\(([^)]+)\)\s*(.*)$")
_PLACEMENT_ONLY = re.compile(rf"({_PLACEMENT_ALTERNATION})", re.IGNORECASE)
_TRAILING_PLACEMENT = re.compile(rf"^(.*?)({_PLACEMENT_ALTERNATION})?$", re.IGNORECASE)
_IMAGE_ATTRIBUTES = ("src", "data-src", "data-lazy-src")


@dataclass(frozen=True)
class CircuitLabel:
    team: str
    circuit: str | None = None
    placement: str | None = None


def split_circuit_label(text: str) -> CircuitLabel:
    """Split ``"CyFair Elite (EYBL) Champion"`` into team, circuit and placement."""

    text = normalize_whitespace(text)
    match = _PARENTHESISED_LABEL.match(text)
    if match:
        tail = match.group(3).strip()
        placement = tail if tail and _PLACEMENT_ONLY.search(tail) else None
        return CircuitLabel(
            team=match.group(1).strip(),
            circuit=match.group(2).strip() or None,
            placement=placement,
        )
    match = _TRAILING_PLACEMENT.match(text)
    if match:
        team = (match.group(1) or text).strip()
        placement = match.group(2).strip() if match.group(2) else None
        return CircuitLabel(team=team or text, placement=placement)
    return CircuitLabel(team=text)


@dataclass(frozen=True)
class TableLayout:
    """Column addressing for one entity type's ranking widget.

    ``columns`` maps a :class:`ScrapedRow` attribute to a fixed cell index.
    When ``name_cell`` is ``None`` the name comes from the ``.player__name``
    cell; otherwise the text of that cell is split by ``split_label``.
    """

    kind: str
    columns: Mapping[str, int] = field(default_factory=dict)
    name_cell: int | None = None
    split_label: Callable[[str], CircuitLabel] | None = None
    capture_college: bool = False
    capture_details: bool = False


PLAYER_LAYOUT = TableLayout(
    kind="players",
    columns={"height": 2, "position": 3, "high_school": 5, "circuit_program": 6},
    capture_college=True,
    capture_details=True,
)
HIGH_SCHOOL_LAYOUT = TableLayout(kind="high_schools", columns={"record": 2, "key_wins": 3})
CIRCUIT_TEAM_LAYOUT = TableLayout(
    kind="circuit_teams",
    columns={"record": 2, "key_wins": 3},
    name_cell=1,
    split_label=split_circuit_label,
)


@dataclass(frozen=True)
class ParseContext:
    layout: TableLayout
    base_url: str | None = None


Strategy = Callable[[BeautifulSoup, ParseContext], List[ScrapedRow]]


def parse_rank(text: str | None) -> int | None:
    """Strip non-digits and parse; anything unparsable yields ``None``."""

    if not text:
        return None
    digits = _NON_DIGIT.sub("", text)
    if not digits:
        return None
    return int(digits)


def _text(element: Tag | None) -> str | None:
    if element is None:
        return None
    value = normalize_whitespace(element.get_text(" "))
    return value or None


def _image_source(image: Tag | None, base_url: str | None) -> str | None:
    if image is None:
        return None
    for attribute in _IMAGE_ATTRIBUTES:
        candidate = absolutize_url(image.get(attribute), base_url)
        if candidate:
            return candidate
    return None


def _state_from_affiliation(text: str | None) -> str | None:
    if not text:
        return None
    match = _STATE_SUFFIX.search(text)
    return match.group(1) if match else None


def _is_non_data_row(row: Tag) -> bool:
    classes = set(row.get("class") or [])
    if classes & NON_DATA_ROW_CLASSES:
        return True
    return str(row.get("id") or "").startswith("document_")


def _structured_row(row: Tag, context: ParseContext) -> ScrapedRow | None:
    layout = context.layout
    cells = row.find_all(class_="divCell", recursive=False)

    def cell_text(index: int) -> str | None:
        return _text(cells[index]) if index < len(cells) else None

    name_cell = row.select_one(".player__name")
    label: CircuitLabel | None = None
    if layout.name_cell is not None:
        raw_label = cell_text(layout.name_cell)
        if raw_label and layout.split_label is not None:
            label = layout.split_label(raw_label)
            name = label.team
        else:
            name = raw_label
    else:
        name = _text(row.select_one(".player__name .name"))
        if not name and name_cell is not None:
            name = _text(name_cell.find("a"))
    if not name:
        return None

    values: Dict[str, str | None] = {attr: cell_text(index) for attr, index in layout.columns.items()}
    scraped = ScrapedRow(
        name=name,
        variant=RowVariant.STRUCTURED,
        rank=parse_rank(_text(row.select_one(".rank-count"))),
        image_url=_image_source(name_cell.find("img") if name_cell else None, context.base_url),
        **values,
    )
    if label is not None:
        scraped.circuit = label.circuit
        scraped.placement = label.placement
    if scraped.high_school:
        scraped.state = _state_from_affiliation(scraped.high_school)
    if layout.capture_college:
        college_image = row.select_one(".college__cell img")
        if college_image is not None:
            scraped.committed_college = normalize_whitespace(college_image.get("alt") or "") or None
            scraped.college_logo_url = _image_source(college_image, context.base_url)
    if layout.capture_details and name_cell is not None:
        anchor = name_cell.find("a")
        detail_id = str(anchor.get("data_id") or "").strip() if anchor is not None else ""
        scraped.detail_id = detail_id or None
    return scraped


def parse_structured(soup: BeautifulSoup, context: ParseContext) -> List[ScrapedRow]:
    """Read rows of the publisher's ranking widget in document order."""

    table = soup.select_one(TABLE_SELECTOR)
    if table is None:
        return []
    rows: List[ScrapedRow] = []
    for element in table.find_all(class_="divRow", recursive=False):
        if _is_non_data_row(element):
            continue
        row = _structured_row(element, context)
        if row is not None:
            rows.append(row)
    return rows


def parse_heuristic_table(soup: BeautifulSoup, context: ParseContext) -> List[ScrapedRow]:
    """Map generic ``<table>`` rows: rank, name, position, height, school, college."""

    rows: List[ScrapedRow] = []
    for section in soup.select(HEURISTIC_CONTAINERS):
        for tr in section.select("table tr"):
            tds = tr.find_all("td")
            if len(tds) < 2:
                continue
            name = _text(tds[1])
            if not name:
                continue
            trailing = [_text(td) for td in tds[2:6]]
            trailing += [None] * (4 - len(trailing))
            position, height, high_school, college = trailing
            images = [src for src in (_image_source(img, context.base_url) for img in tr.find_all("img")) if src]
            rows.append(
                ScrapedRow(
                    name=name,
                    variant=RowVariant.HEURISTIC_TABLE,
                    rank=parse_rank(_text(tds[0])),
                    position=position,
                    height=height,
                    high_school=high_school,
                    state=_state_from_affiliation(high_school),
                    committed_college=college,
                    image_url=images[0] if images else None,
                    college_logo_url=images[1] if len(images) > 1 else None,
                )
            )
    return rows


def parse_heuristic_text(soup: BeautifulSoup, context: ParseContext) -> List[ScrapedRow]:
    """Match freeform ``N) Name - Pos - School - College`` lines."""

    rows: List[ScrapedRow] = []
    for section in soup.select(HEURISTIC_CONTAINERS):
        for line in re.split(r"[\n\r]", section.get_text()):
            match = _TEXT_LINE.match(line.strip())
            if not match:
                continue
            parts = [part.strip() for part in _TEXT_SEPARATOR.split(match.group(2))]
            if not parts or not parts[0]:
                continue
            parts += [""] * (4 - len(parts))
            rows.append(
                ScrapedRow(
                    name=parts[0],
                    variant=RowVariant.HEURISTIC_TEXT,
                    rank=int(match.group(1)),
                    position=parts[1] or None,
                    high_school=parts[2] or None,
                    state=_state_from_affiliation(parts[2]),
                    committed_college=parts[3] or None,
                )
            )
    return rows


def dedupe_rows(rows: Iterable[ScrapedRow]) -> List[ScrapedRow]:
    """Keep the first row for every ``(rank, lower-cased name)`` pair."""

    seen: set[Tuple[str, str]] = set()
    unique: List[ScrapedRow] = []
    for row in rows:
        key = row.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique


DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (parse_structured, parse_heuristic_table, parse_heuristic_text)


class RankingTableParser:
    """Turns one page's markup into ordered, de-duplicated :class:`ScrapedRow` objects."""

    def __init__(self, layout: TableLayout, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> None:
        self.layout = layout
        self.strategies = tuple(strategies)
        self._logger = get_logger(component="table_parser", kind=layout.kind)

    def parse(self, html: str, *, season_key: str | None = None, base_url: str | None = None) -> List[ScrapedRow]:
        soup = BeautifulSoup(html, "html.parser")
        context = ParseContext(layout=self.layout, base_url=base_url)
        for strategy in self.strategies:
            rows = strategy(soup, context)
            if not rows:
                continue
            unique = dedupe_rows(rows)
            if self.layout.capture_details:
                self._attach_details(soup, unique)
            self._logger.debug(
                "Parsed ranking rows",
                strategy=strategy.__name__,
                season_key=season_key,
                rows=len(unique),
                duplicates=len(rows) - len(unique),
            )
            return unique
        self._logger.warning("No ranking rows found", season_key=season_key, url=base_url)
        return []

    @staticmethod
    def _attach_details(soup: BeautifulSoup, rows: Iterable[ScrapedRow]) -> None:
        for row in rows:
            if not row.detail_id:
                continue
            facts = extract_detail(find_detail_text(soup, row.detail_id))
            row.rating = facts.rating
            row.rating_comment = facts.comment


__all__ = [
    "CIRCUIT_TEAM_LAYOUT",
    "DEFAULT_STRATEGIES",
    "HIGH_SCHOOL_LAYOUT",
    "PLAYER_LAYOUT",
    "CircuitLabel",
    "ParseContext",
    "RankingTableParser",
    "TableLayout",
    "dedupe_rows",
    "parse_heuristic_table",
    "parse_heuristic_text",
    "parse_rank",
    "parse_structured",
    "split_circuit_label",
]
