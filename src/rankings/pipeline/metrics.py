"""Run counters and the per-stage ingestion summary."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from statistics import mean
from typing import Any, DefaultDict, Dict, List

from rankings.utils.logging import get_logger


@dataclass
class IngestionSummary:
    stage: str
    pages_fetched: int = 0
    pages_skipped: int = 0
    pages_failed: int = 0
    rows_parsed: int = 0
    entities_upserted: int = 0
    entities_failed: int = 0
    assets_uploaded: int = 0
    assets_reused: int = 0
    assets_failed: int = 0
    errors: Dict[str, int] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)
    finalized_at: str | None = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "pages_fetched": self.pages_fetched,
            "pages_skipped": self.pages_skipped,
            "pages_failed": self.pages_failed,
            "rows_parsed": self.rows_parsed,
            "entities_upserted": self.entities_upserted,
            "entities_failed": self.entities_failed,
            "assets_uploaded": self.assets_uploaded,
            "assets_reused": self.assets_reused,
            "assets_failed": self.assets_failed,
            "errors": dict(self.errors),
            "timings": dict(self.timings),
            "finalized_at": self.finalized_at,
        }


@dataclass
class MetricsCollector:
    """Accumulates counters and timings during one ingestion stage."""

    stage: str
    _counters: Counter = field(default_factory=Counter)
    _timings: DefaultDict[str, List[float]] = field(default_factory=lambda: defaultdict(list))
    _logger = get_logger(component="metrics")

    def increment(self, metric: str, amount: int = 1) -> None:
        self._counters[metric] += amount
        self._logger.debug("Increment metric", stage=self.stage, metric=metric, amount=amount)

    def count(self, metric: str) -> int:
        return self._counters[metric]

    def record_timing(self, metric: str, seconds: float) -> None:
        self._timings[metric].append(seconds)

    def record_error(self, error_type: str) -> None:
        self.increment(f"error::{error_type}")

    def record_page(self, *, rows: int) -> None:
        self.increment("pages_fetched")
        self.increment("rows_parsed", rows)

    def record_page_skipped(self) -> None:
        self.increment("pages_skipped")

    def record_page_failed(self, error_type: str) -> None:
        self.increment("pages_failed")
        self.record_error(error_type)

    def record_upsert(self, *, ok: bool) -> None:
        self.increment("entities_upserted" if ok else "entities_failed")
        if not ok:
            self.record_error("persistence")

    def record_asset(self, *, uploaded: bool = False, reused: bool = False, failed: bool = False) -> None:
        if uploaded:
            self.increment("assets_uploaded")
        if reused:
            self.increment("assets_reused")
        if failed:
            self.increment("assets_failed")
            self.record_error("asset")

    def finalize(self) -> IngestionSummary:
        errors = {
            key.split("::", 1)[1]: value for key, value in self._counters.items() if key.startswith("error::")
        }
        timings: Dict[str, float] = {}
        for name, values in self._timings.items():
            timings[f"{name}_avg"] = mean(values)
            timings[f"{name}_max"] = max(values)
        summary = IngestionSummary(
            stage=self.stage,
            pages_fetched=self._counters["pages_fetched"],
            pages_skipped=self._counters["pages_skipped"],
            pages_failed=self._counters["pages_failed"],
            rows_parsed=self._counters["rows_parsed"],
            entities_upserted=self._counters["entities_upserted"],
            entities_failed=self._counters["entities_failed"],
            assets_uploaded=self._counters["assets_uploaded"],
            assets_reused=self._counters["assets_reused"],
            assets_failed=self._counters["assets_failed"],
            errors=errors,
            timings=timings,
            finalized_at=datetime.now(timezone.utc).isoformat(),
        )
        self._logger.info("Stage metrics finalized", stage=self.stage, metrics=summary.as_dict())
        return summary


__all__ = ["IngestionSummary", "MetricsCollector"]
