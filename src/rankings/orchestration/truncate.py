"""Destructive teardown of every entity table and stored asset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from rankings.config.settings import Settings
from rankings.storage.base import ObjectStorage, RecordStore, StoreError
from rankings.storage.supabase import build_supabase_client
from rankings.utils.helpers import chunked
from rankings.utils.logging import get_logger

# Tables holding foreign keys are cleared before the tables they reference.
TRUNCATE_TABLE_ORDER: Sequence[str] = ("players", "colleges", "circuit_teams", "high_schools")

_LOGGER = get_logger(module=__name__)


class TruncationRefused(RuntimeError):
    """Truncation was requested without explicit confirmation."""


@dataclass
class TruncationReport:
    tables_cleared: List[str] = field(default_factory=list)
    objects_removed: Dict[str, int] = field(default_factory=dict)
    failed_prefixes: List[str] = field(default_factory=list)


def _list_prefix(storage: ObjectStorage, bucket: str, prefix: str, page_size: int) -> List[str]:
    paths: List[str] = []
    offset = 0
    while True:
        entries = storage.list(bucket, prefix, limit=page_size, offset=offset)
        paths.extend(f"{prefix}/{entry.name}" for entry in entries if entry.name)
        if len(entries) < page_size:
            return paths
        offset += page_size


def truncate_all(
    store: RecordStore,
    storage: ObjectStorage,
    *,
    bucket: str,
    prefixes: Sequence[str],
    force: bool,
    batch_size: int = 1000,
    page_size: int = 1000,
) -> TruncationReport:
    """Delete all entity rows and every object under ``prefixes``.

    Refuses with :class:`TruncationRefused` unless ``force`` is set. A table
    delete failure propagates; a storage prefix that cannot be listed or
    removed is logged and the remaining prefixes are still processed.
    """

    if not force:
        raise TruncationRefused("Refusing to truncate without --force or TRUNCATE_FORCE=1")

    report = TruncationReport()
    for table in TRUNCATE_TABLE_ORDER:
        store.delete(table)
        report.tables_cleared.append(table)
        _LOGGER.info("Table cleared", table=table)

    for prefix in prefixes:
        removed = 0
        try:
            paths = _list_prefix(storage, bucket, prefix, page_size)
            for batch in chunked(paths, batch_size):
                storage.remove(bucket, batch)
                removed += len(batch)
        except StoreError as exc:
            _LOGGER.warning(
                "Storage prefix cleanup failed",
                bucket=bucket,
                prefix=prefix,
                removed=removed,
                error=str(exc),
            )
            report.failed_prefixes.append(prefix)
        report.objects_removed[prefix] = removed
        _LOGGER.info("Storage prefix cleared", bucket=bucket, prefix=prefix, removed=removed)
    return report


def truncate_from_settings(
    settings: Settings,
    *,
    force: bool = False,
    store: RecordStore | None = None,
    storage: ObjectStorage | None = None,
) -> TruncationReport:
    """Resolve confirmation from ``force`` or ``TRUNCATE_FORCE`` and run :func:`truncate_all`."""

    confirmed = force or settings.truncate_force
    if not confirmed:
        raise TruncationRefused("Refusing to truncate without --force or TRUNCATE_FORCE=1")
    if store is None or storage is None:
        client = build_supabase_client(settings)
        store = store or client
        storage = storage or client
    policy = settings.policies.storage
    return truncate_all(
        store,
        storage,
        bucket=settings.bucket,
        prefixes=policy.asset_prefixes,
        force=confirmed,
        batch_size=policy.remove_batch_size,
        page_size=policy.list_page_size,
    )


__all__ = ["TRUNCATE_TABLE_ORDER", "TruncationRefused", "TruncationReport", "truncate_all", "truncate_from_settings"]
