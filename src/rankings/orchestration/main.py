"""High-level orchestration entry points for ranking ingestion."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from rankings.config.policies import SourcePage, class_year_from_url
from rankings.config.settings import Settings
from rankings.entities.core import ScrapedRow
from rankings.parsing.tables import (
    CIRCUIT_TEAM_LAYOUT,
    HIGH_SCHOOL_LAYOUT,
    PLAYER_LAYOUT,
    RankingTableParser,
    TableLayout,
)
from rankings.pipeline.assets import AssetPipeline
from rankings.pipeline.metrics import IngestionSummary, MetricsCollector
from rankings.pipeline.reconciler import Reconciler
from rankings.pipeline.seasons import (
    CIRCUIT_TEAM_MERGE,
    HIGH_SCHOOL_MERGE,
    PLAYER_MERGE,
    MergedRecord,
    MergeSpec,
    SeasonMerger,
)
from rankings.storage.base import ObjectStorage, RecordStore
from rankings.storage.supabase import build_supabase_client
from rankings.utils.helpers import serialize_json, slugify
from rankings.utils.logging import get_logger, log_timing, logging_context
from rankings.web_mining import build_page_fetcher
from rankings.web_mining.client import FetchError, GatedContentError, PageFetcher

_LOGGER = get_logger(module=__name__)


def _no_page_scalars(page: SourcePage) -> Dict[str, Any]:
    return {}


def _player_page_scalars(page: SourcePage) -> Dict[str, Any]:
    return {"grade_year": class_year_from_url(page.url)}


@dataclass(frozen=True)
class StageDefinition:
    """Static wiring for one entity type's ingestion pass."""

    name: str
    layout: TableLayout
    merge_spec: MergeSpec
    reconcile: str
    page_scalars: Callable[[SourcePage], Dict[str, Any]] = _no_page_scalars


# Players resolve schools and teams by name, so those stages run first.
STAGES: Dict[str, StageDefinition] = {
    "high_schools": StageDefinition("high_schools", HIGH_SCHOOL_LAYOUT, HIGH_SCHOOL_MERGE, "reconcile_school"),
    "circuit_teams": StageDefinition("circuit_teams", CIRCUIT_TEAM_LAYOUT, CIRCUIT_TEAM_MERGE, "reconcile_team"),
    "players": StageDefinition(
        "players",
        PLAYER_LAYOUT,
        PLAYER_MERGE,
        "reconcile_player",
        page_scalars=_player_page_scalars,
    ),
}
STAGE_ORDER: Sequence[str] = ("high_schools", "circuit_teams", "players")


@dataclass(slots=True)
class ScrapedPage:
    url: str
    season_key: str
    rows: List[ScrapedRow]
    title: str | None = None
    page_scalars: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RunResult:
    run_id: str
    summaries: Dict[str, IngestionSummary]
    skipped: List[str]


class PageCollector:
    """Fetches and parses every configured page of a stage, in catalogue order."""

    def __init__(self, settings: Settings, fetcher: PageFetcher) -> None:
        self._settings = settings
        self._fetcher = fetcher

    def pages_for(self, stage: StageDefinition) -> List[SourcePage]:
        return list(getattr(self._settings.policies.sources, stage.name))

    def collect(self, stage: StageDefinition, metrics: MetricsCollector) -> List[ScrapedPage]:
        parser = RankingTableParser(stage.layout)
        scraped: List[ScrapedPage] = []
        for page in self.pages_for(stage):
            season_key = page.resolved_season_key
            started = time.perf_counter()
            try:
                html = self._fetcher.fetch_page(page.url)
            except GatedContentError as exc:
                _LOGGER.warning("Login wall detected; skipping page", url=page.url, marker=exc.marker)
                metrics.record_page_skipped()
                continue
            except FetchError as exc:
                _LOGGER.warning(
                    "Page fetch failed",
                    url=page.url,
                    status_code=exc.status_code,
                    error_type=exc.error_type,
                    error=str(exc),
                )
                metrics.record_page_failed(exc.error_type)
                continue
            metrics.record_timing("page_fetch_seconds", time.perf_counter() - started)
            rows = parser.parse(html, season_key=season_key, base_url=page.url)
            metrics.record_page(rows=len(rows))
            _LOGGER.info("Parsed page", url=page.url, title=page.title, season_key=season_key, rows=len(rows))
            scraped.append(
                ScrapedPage(
                    url=page.url,
                    season_key=season_key,
                    rows=rows,
                    title=page.title,
                    page_scalars=stage.page_scalars(page),
                )
            )
        return scraped


def merge_pages(stage: StageDefinition, pages: Sequence[ScrapedPage]) -> List[MergedRecord]:
    merger = SeasonMerger(stage.merge_spec)
    for page in pages:
        merger.add_page(page.season_key, page.url, page.rows, page_scalars=page.page_scalars)
    return merger.records()


class IngestionOrchestrator:
    """Runs the school, circuit team and player passes against the store."""

    def __init__(
        self,
        *,
        settings: Settings,
        fetcher: PageFetcher,
        store: RecordStore,
        storage: ObjectStorage,
        run_id: str,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._store = store
        self._storage = storage
        self._collector = PageCollector(settings, fetcher)
        self.run_id = run_id

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        run_id: Optional[str] = None,
        store: Optional[RecordStore] = None,
        storage: Optional[ObjectStorage] = None,
        fetcher: Optional[PageFetcher] = None,
    ) -> "IngestionOrchestrator":
        """Wire collaborators; credentials are checked before any network activity."""

        if store is None or storage is None:
            client = build_supabase_client(settings)
            store = store or client
            storage = storage or client
        return cls(
            settings=settings,
            fetcher=fetcher or build_page_fetcher(settings.policies),
            store=store,
            storage=storage,
            run_id=run_id or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S"),
        )

    def run_stage(self, name: str) -> IngestionSummary:
        stage = STAGES[name]
        metrics = MetricsCollector(stage=name)
        assets = AssetPipeline(self._storage, self._fetcher, bucket=self._settings.bucket, metrics=metrics)
        reconciler = Reconciler(self._store, assets, self._settings.policies.storage, metrics=metrics)
        reconcile = getattr(reconciler, stage.reconcile)

        with logging_context(run_id=self.run_id, stage=name), log_timing(name, logger_=_LOGGER):
            pages = self._collector.collect(stage, metrics)
            records = merge_pages(stage, pages)
            _LOGGER.info("Reconciling records", stage=name, records=len(records), pages=len(pages))
            for record in records:
                reconcile(record)
        return metrics.finalize()

    def run(
        self,
        *,
        skip_high_schools: bool = False,
        skip_circuit_teams: bool = False,
        skip_players: bool = False,
    ) -> RunResult:
        skip_flags: Mapping[str, bool] = {
            "high_schools": skip_high_schools,
            "circuit_teams": skip_circuit_teams,
            "players": skip_players,
        }
        summaries: Dict[str, IngestionSummary] = {}
        skipped: List[str] = []
        for name in STAGE_ORDER:
            if skip_flags[name]:
                _LOGGER.info("Stage skipped", stage=name, run_id=self.run_id)
                skipped.append(name)
                continue
            summaries[name] = self.run_stage(name)
        return RunResult(run_id=self.run_id, summaries=summaries, skipped=skipped)


def export_snapshot(
    settings: Settings,
    stage_name: str,
    *,
    output_dir: Optional[Path] = None,
    fetcher: Optional[PageFetcher] = None,
) -> List[Path]:
    """Fetch and parse a stage's pages without touching the store; write JSON files.

    Writes ``<stage>_<season>.json`` per page and ``<stage>_combined.json`` with the
    season-merged records.
    """

    stage = STAGES[stage_name]
    destination = Path(output_dir or settings.paths.data_dir)
    collector = PageCollector(settings, fetcher or build_page_fetcher(settings.policies))
    metrics = MetricsCollector(stage=f"snapshot:{stage_name}")

    with logging_context(stage=f"snapshot:{stage_name}"):
        pages = collector.collect(stage, metrics)
        written: List[Path] = []
        for page in pages:
            payload = {
                "source_url": page.url,
                "season_key": page.season_key,
                "title": page.title,
                "rows": [row.to_dict() for row in page.rows],
            }
            target = destination / f"{stage_name}_{slugify(page.season_key, fallback='season')}.json"
            written.append(serialize_json(payload, target))
        combined = [record.to_dict() for record in merge_pages(stage, pages)]
        written.append(serialize_json(combined, destination / f"{stage_name}_combined.json"))
        metrics.finalize()
    return written


__all__ = [
    "IngestionOrchestrator",
    "PageCollector",
    "RunResult",
    "STAGES",
    "STAGE_ORDER",
    "ScrapedPage",
    "StageDefinition",
    "export_snapshot",
    "merge_pages",
]
