"""Orchestration layer for ranking ingestion runs."""

from .main import (
    STAGE_ORDER,
    STAGES,
    IngestionOrchestrator,
    PageCollector,
    RunResult,
    export_snapshot,
)
from .truncate import TruncationRefused, TruncationReport, truncate_all, truncate_from_settings

__all__ = [
    "IngestionOrchestrator",
    "PageCollector",
    "RunResult",
    "STAGES",
    "STAGE_ORDER",
    "TruncationRefused",
    "TruncationReport",
    "export_snapshot",
    "truncate_all",
    "truncate_from_settings",
]
