"""Season merging, asset handling and reconciliation against the store."""

from .assets import AssetError, AssetPipeline, UploadResult, build_asset_path, infer_content_type
from .metrics import IngestionSummary, MetricsCollector
from .reconciler import Reconciler
from .seasons import (
    CIRCUIT_TEAM_MERGE,
    HIGH_SCHOOL_MERGE,
    PLAYER_MERGE,
    MergedRecord,
    MergeSpec,
    SeasonMerger,
    merge_season_maps,
    union_sources,
)

__all__ = [
    "AssetError",
    "AssetPipeline",
    "CIRCUIT_TEAM_MERGE",
    "HIGH_SCHOOL_MERGE",
    "IngestionSummary",
    "MergeSpec",
    "MergedRecord",
    "MetricsCollector",
    "PLAYER_MERGE",
    "Reconciler",
    "SeasonMerger",
    "UploadResult",
    "build_asset_path",
    "infer_content_type",
    "merge_season_maps",
    "union_sources",
]
