"""Policy configuration primitives for the ranking ingestion pipeline."""

from __future__ import annotations

import re
from typing import Any, Dict, List
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

_CLASS_YEAR_PATTERN = re.compile(r"(20\d{2})")
DEFAULT_SEASON_KEY = "ranking"

_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124 Safari/537.36"
)


def class_year_from_url(url: str) -> int | None:
    """Return the first plausible 4-digit class year embedded in ``url``."""

    match = _CLASS_YEAR_PATTERN.search(url)
    if not match:
        return None
    year = int(match.group(1))
    if 2000 <= year <= 2100:
        return year
    return None


def season_key_from_url(url: str) -> str:
    """Derive a season key: class year, else the last path segment, else a default."""

    year = class_year_from_url(url)
    if year is not None:
        return str(year)
    try:
        path = urlparse(url).path
    except ValueError:
        return DEFAULT_SEASON_KEY
    segment = path.rstrip("/").split("/")[-1]
    return segment or DEFAULT_SEASON_KEY


class SourcePage(BaseModel):
    """A single ranking page and the season it describes."""

    url: str = Field(..., min_length=1)
    season_key: str | None = Field(
        default=None,
        description="Season label used as map key; derived from the URL when omitted.",
    )
    title: str | None = Field(default=None)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("source page url must be an absolute http(s) URL")
        return value

    @property
    def resolved_season_key(self) -> str:
        return self.season_key or season_key_from_url(self.url)


def _default_player_pages() -> List[SourcePage]:
    base = "https://0xc.821.myftpupload.com"
    return [
        SourcePage(url=f"{base}/top-350-for-class-of-2024-2/"),
        SourcePage(url=f"{base}/top-350-for-class-of-2025/"),
        SourcePage(url=f"{base}/top-350-for-class-of-2026/"),
        SourcePage(url=f"{base}/top-350-for-class-of-2027/"),
        SourcePage(url=f"{base}/top-350-for-class-of-2028/"),
    ]


def _default_high_school_pages() -> List[SourcePage]:
    base = "https://0xc.821.myftpupload.com"
    return [
        SourcePage(url=f"{base}/hs-rankings-2/", season_key="2023-24", title="2023-24 High School Rankings"),
        SourcePage(
            url=f"{base}/2024-25-high-school-rankings/",
            season_key="2024-25",
            title="2024-25 High School Rankings",
        ),
    ]


def _default_circuit_pages() -> List[SourcePage]:
    return [
        SourcePage(
            url="https://0xc.821.myftpupload.com/circuit-rankings/",
            season_key="2024 Circuit Season",
        )
    ]


class SourcePolicy(BaseModel):
    """Ordered source catalogue per entity type."""

    players: List[SourcePage] = Field(default_factory=_default_player_pages)
    high_schools: List[SourcePage] = Field(default_factory=_default_high_school_pages)
    circuit_teams: List[SourcePage] = Field(default_factory=_default_circuit_pages)


class FetchPolicy(BaseModel):
    """HTTP retrieval behaviour for source pages and assets."""

    user_agent: str = Field(default=_BROWSER_USER_AGENT, min_length=1)
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    retry_attempts: int = Field(
        default=1,
        ge=0,
        description="Retries for connection errors and timeouts; HTTP errors are never retried.",
    )
    login_wall_markers: List[str] = Field(
        default_factory=lambda: ["Please Log In", "Not a Member", "You need to be logged in"],
    )

    @field_validator("login_wall_markers")
    @classmethod
    def _strip_markers(cls, value: List[str]) -> List[str]:
        return [marker.strip() for marker in value if marker.strip()]


class StoragePolicy(BaseModel):
    """Object storage layout and housekeeping limits."""

    bucket: str = Field(default="asgr", min_length=1)
    player_image_prefix: str = Field(default="players")
    legacy_logo_prefix: str = Field(default="logos")
    high_school_logo_prefix: str = Field(default="hs_logos")
    college_logo_prefix: str = Field(default="college_logos")
    list_page_size: int = Field(default=1000, ge=1)
    remove_batch_size: int = Field(default=1000, ge=1)
    refresh_assets: bool = Field(
        default=False,
        description="Re-download assets for entities that already reference a stored asset.",
    )

    @property
    def asset_prefixes(self) -> List[str]:
        return [
            self.player_image_prefix,
            self.legacy_logo_prefix,
            self.high_school_logo_prefix,
            self.college_logo_prefix,
        ]


class Policies(BaseModel):
    """Aggregate policy object consumed by the ingestion pipeline."""

    sources: SourcePolicy = Field(default_factory=SourcePolicy)
    fetch: FetchPolicy = Field(default_factory=FetchPolicy)
    storage: StoragePolicy = Field(default_factory=StoragePolicy)


def load_policies(data: Dict[str, Any] | None = None) -> Policies:
    """Validate a raw mapping (typically parsed YAML) into :class:`Policies`."""

    return Policies.model_validate(data or {})


__all__ = [
    "DEFAULT_SEASON_KEY",
    "FetchPolicy",
    "Policies",
    "SourcePage",
    "SourcePolicy",
    "StoragePolicy",
    "class_year_from_url",
    "load_policies",
    "season_key_from_url",
]
