"""Combine season-tagged ranking rows into one record per natural key."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from rankings.entities.core import ScrapedRow, SeasonMap
from rankings.utils.logging import get_logger


def has_value(value: Any) -> bool:
    """True for anything other than ``None`` or a blank string."""

    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def merge_season_maps(existing: Mapping[str, Any] | None, incoming: Mapping[str, Any] | None) -> SeasonMap:
    """Overlay ``incoming`` on ``existing``; absent or empty values never clear an entry."""

    merged: SeasonMap = dict(existing or {})
    for season_key, value in (incoming or {}).items():
        if has_value(value):
            merged[season_key] = value
    return merged


def union_sources(existing: Iterable[str] | None, incoming: Iterable[str] | None) -> List[str]:
    """Order-preserving set union."""

    merged: List[str] = []
    for url in list(existing or []) + list(incoming or []):
        if url and url not in merged:
            merged.append(url)
    return merged


@dataclass(frozen=True)
class MergeSpec:
    """How scraped row attributes land on a merged record.

    ``season_maps`` pairs a row attribute with the per-season map it feeds.
    ``scalars`` are "last observed value wins"; ``first_seen`` keep the
    earliest non-empty value.
    """

    kind: str
    season_maps: Tuple[Tuple[str, str], ...]
    scalars: Tuple[str, ...] = ()
    first_seen: Tuple[str, ...] = ()


HIGH_SCHOOL_MERGE = MergeSpec(
    kind="high_schools",
    season_maps=(("rank", "ranks"), ("record", "records"), ("key_wins", "key_wins")),
    first_seen=("image_url",),
)

CIRCUIT_TEAM_MERGE = MergeSpec(
    kind="circuit_teams",
    season_maps=(
        ("rank", "ranks"),
        ("record", "records"),
        ("key_wins", "key_wins"),
        ("placement", "placements"),
    ),
    first_seen=("circuit",),
)

PLAYER_MERGE = MergeSpec(
    kind="players",
    season_maps=(
        ("rank", "ranks"),
        ("rating", "ratings"),
        ("rating_comment", "notes"),
        ("position", "positions"),
        ("height", "heights"),
        ("high_school", "high_schools"),
        ("circuit_program", "circuit_programs"),
        ("committed_college", "committed_colleges"),
    ),
    scalars=(
        "position",
        "height",
        "state",
        "high_school",
        "circuit_program",
        "committed_college",
        "rating",
        "rating_comment",
        "image_url",
        "college_logo_url",
    ),
)


@dataclass
class MergedRecord:
    """Everything observed for one natural key during a run."""

    key: str
    maps: Dict[str, SeasonMap] = field(default_factory=dict)
    scalars: Dict[str, Any] = field(default_factory=dict)
    first_seen: Dict[str, Any] = field(default_factory=dict)
    source_urls: List[str] = field(default_factory=list)

    @property
    def source_url(self) -> str | None:
        return self.source_urls[-1] if self.source_urls else None

    def value(self, name: str) -> Any:
        """Return a scalar or first-seen attribute, preferring the scalar."""

        if name in self.scalars:
            return self.scalars[name]
        return self.first_seen.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "maps": {name: dict(values) for name, values in self.maps.items()},
            "scalars": dict(self.scalars),
            "first_seen": dict(self.first_seen),
            "source_urls": list(self.source_urls),
        }


class SeasonMerger:
    """Accumulates pages in order and folds their rows by natural key."""

    def __init__(self, merge_spec: MergeSpec) -> None:
        self.merge_spec = merge_spec
        self._records: Dict[str, MergedRecord] = {}
        self._logger = get_logger(component="season_merger", kind=merge_spec.kind)

    def __len__(self) -> int:
        return len(self._records)

    def add_page(
        self,
        season_key: str,
        source_url: str,
        rows: Sequence[ScrapedRow],
        *,
        page_scalars: Mapping[str, Any] | None = None,
    ) -> None:
        """Fold one page's rows; ``page_scalars`` apply to every row of the page."""

        for row in rows:
            self.add_row(season_key, source_url, row, page_scalars=page_scalars)
        self._logger.debug("Merged page", season_key=season_key, url=source_url, rows=len(rows))

    def add_row(
        self,
        season_key: str,
        source_url: str,
        row: ScrapedRow,
        *,
        page_scalars: Mapping[str, Any] | None = None,
    ) -> MergedRecord:
        record = self._records.get(row.name)
        if record is None:
            record = MergedRecord(key=row.name, maps={name: {} for _, name in self.merge_spec.season_maps})
            self._records[row.name] = record

        for attribute, map_name in self.merge_spec.season_maps:
            value = getattr(row, attribute)
            if has_value(value):
                record.maps[map_name][season_key] = value
        for attribute in self.merge_spec.scalars:
            value = getattr(row, attribute)
            if has_value(value):
                record.scalars[attribute] = value
        for attribute in self.merge_spec.first_seen:
            value = getattr(row, attribute)
            if has_value(value) and attribute not in record.first_seen:
                record.first_seen[attribute] = value
        for name, value in (page_scalars or {}).items():
            if has_value(value):
                record.scalars[name] = value
        record.source_urls = union_sources(record.source_urls, [source_url])
        return record

    def records(self) -> List[MergedRecord]:
        """Merged records in order of first appearance."""

        return list(self._records.values())


__all__ = [
    "CIRCUIT_TEAM_MERGE",
    "HIGH_SCHOOL_MERGE",
    "PLAYER_MERGE",
    "MergeSpec",
    "MergedRecord",
    "SeasonMerger",
    "has_value",
    "merge_season_maps",
    "union_sources",
]
