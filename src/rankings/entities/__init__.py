"""Domain entities for ranking ingestion."""

from .core import CircuitTeam, College, HighSchool, Player, RowVariant, ScrapedRow, SeasonMap, StoredEntity

__all__ = [
    "CircuitTeam",
    "College",
    "HighSchool",
    "Player",
    "RowVariant",
    "ScrapedRow",
    "SeasonMap",
    "StoredEntity",
]
