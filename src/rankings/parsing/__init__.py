"""Ranking table and detail-block extraction."""

from .details import DetailFacts, extract_detail, find_detail_text, parse_comment, parse_rating
from .tables import (
    CIRCUIT_TEAM_LAYOUT,
    HIGH_SCHOOL_LAYOUT,
    PLAYER_LAYOUT,
    CircuitLabel,
    RankingTableParser,
    TableLayout,
    dedupe_rows,
    parse_rank,
    split_circuit_label,
)

__all__ = [
    "CIRCUIT_TEAM_LAYOUT",
    "HIGH_SCHOOL_LAYOUT",
    "PLAYER_LAYOUT",
    "CircuitLabel",
    "DetailFacts",
    "RankingTableParser",
    "TableLayout",
    "dedupe_rows",
    "extract_detail",
    "find_detail_text",
    "parse_comment",
    "parse_rank",
    "parse_rating",
    "split_circuit_label",
]
