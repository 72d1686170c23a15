"""Contracts for the relational record store and the object storage service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, Sequence, runtime_checkable

Row = Dict[str, Any]


class StoreError(RuntimeError):
    """The store rejected a request or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class StorageEntry:
    """One object returned by a storage listing."""

    name: str
    id: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RecordStore(Protocol):
    """Tables addressed by name, rows addressed by equality filters."""

    def select_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        columns: Sequence[str] = ("*",),
    ) -> Row | None:
        ...

    def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> Row | None:
        ...

    def delete(self, table: str, filters: Mapping[str, Any] | None = None) -> None:
        ...


@runtime_checkable
class ObjectStorage(Protocol):
    """Bucketed blob storage with POSIX-style logical paths."""

    def list(
        self,
        bucket: str,
        prefix: str,
        *,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StorageEntry]:
        ...

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        ...

    def remove(self, bucket: str, paths: Sequence[str]) -> None:
        ...


__all__ = ["ObjectStorage", "RecordStore", "Row", "StorageEntry", "StoreError"]
