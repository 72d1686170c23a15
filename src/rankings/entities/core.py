"""Core domain entities used throughout the ranking ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

SeasonMap = Dict[str, Any]


class RowVariant(str, Enum):
    """Which extraction strategy produced a scraped row."""

    STRUCTURED = "structured"
    HEURISTIC_TABLE = "heuristic_table"
    HEURISTIC_TEXT = "heuristic_text"


@dataclass(slots=True)
class ScrapedRow:
    """One ranking row as extracted from a page, before any reconciliation.

    Every attribute other than ``name`` is optional: an unparsable or missing
    column is represented as ``None`` rather than an error.
    """

    name: str
    variant: RowVariant = RowVariant.STRUCTURED
    rank: int | None = None
    record: str | None = None
    key_wins: str | None = None
    position: str | None = None
    height: str | None = None
    high_school: str | None = None
    state: str | None = None
    circuit_program: str | None = None
    committed_college: str | None = None
    circuit: str | None = None
    placement: str | None = None
    image_url: str | None = None
    college_logo_url: str | None = None
    detail_id: str | None = None
    rating: int | None = None
    rating_comment: str | None = None

    @property
    def dedupe_key(self) -> tuple[str, str]:
        rank = "" if self.rank is None else str(self.rank)
        return rank, self.name.lower()

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, RowVariant):
                value = value.value
            payload[item.name] = value
        return payload


class StoredEntity(BaseModel):
    """Base class for rows persisted in the relational store."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    table: ClassVar[str]
    natural_key: ClassVar[str]

    id: int | None = Field(default=None, description="Identity assigned by the store")
    source_urls: List[str] = Field(default_factory=list)

    @field_validator("source_urls", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> List[str]:
        if value is None:
            return []
        return list(value)

    @property
    def key_value(self) -> str:
        return getattr(self, self.natural_key)

    def to_row(self) -> Dict[str, Any]:
        """Return the payload written by an upsert; the identity is store-managed."""

        return self.model_dump(mode="json", exclude={"id"})


def _empty_maps(value: Any) -> SeasonMap:
    return dict(value) if value else {}


class HighSchool(StoredEntity):
    table: ClassVar[str] = "high_schools"
    natural_key: ClassVar[str] = "school"

    school: str = Field(..., min_length=1)
    logo_path: str | None = None
    ranks: SeasonMap = Field(default_factory=dict)
    records: SeasonMap = Field(default_factory=dict)
    key_wins: SeasonMap = Field(default_factory=dict)

    @field_validator("ranks", "records", "key_wins", mode="before")
    @classmethod
    def _default_maps(cls, value: Any) -> SeasonMap:
        return _empty_maps(value)


class CircuitTeam(StoredEntity):
    table: ClassVar[str] = "circuit_teams"
    natural_key: ClassVar[str] = "team"

    team: str = Field(..., min_length=1)
    circuit: str | None = None
    ranks: SeasonMap = Field(default_factory=dict)
    records: SeasonMap = Field(default_factory=dict)
    key_wins: SeasonMap = Field(default_factory=dict)
    placements: SeasonMap = Field(default_factory=dict)

    @field_validator("ranks", "records", "key_wins", "placements", mode="before")
    @classmethod
    def _default_maps(cls, value: Any) -> SeasonMap:
        return _empty_maps(value)


class College(StoredEntity):
    table: ClassVar[str] = "colleges"
    natural_key: ClassVar[str] = "name"

    name: str = Field(..., min_length=1)
    logo_path: str | None = None
    logo_url: str | None = None

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id", "source_urls"})


class Player(StoredEntity):
    table: ClassVar[str] = "players"
    natural_key: ClassVar[str] = "name"

    name: str = Field(..., min_length=1)
    grade_year: int | None = None
    position: str | None = None
    height: str | None = None
    state: str | None = None
    high_school: str | None = None
    high_school_id: int | None = None
    circuit_program: str | None = None
    circuit_team_id: int | None = None
    committed_college: str | None = None
    committed_college_id: int | None = None
    rating: int | None = Field(default=None, ge=0, le=100)
    rating_comment: str | None = None
    image_path: str | None = None
    source_url: str | None = None
    ranks: SeasonMap = Field(default_factory=dict)
    ratings: SeasonMap = Field(default_factory=dict)
    notes: SeasonMap = Field(default_factory=dict)
    positions: SeasonMap = Field(default_factory=dict)
    heights: SeasonMap = Field(default_factory=dict)
    high_schools: SeasonMap = Field(default_factory=dict)
    circuit_programs: SeasonMap = Field(default_factory=dict)
    committed_colleges: SeasonMap = Field(default_factory=dict)

    @field_validator(
        "ranks",
        "ratings",
        "notes",
        "positions",
        "heights",
        "high_schools",
        "circuit_programs",
        "committed_colleges",
        mode="before",
    )
    @classmethod
    def _default_maps(cls, value: Any) -> SeasonMap:
        return _empty_maps(value)


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
