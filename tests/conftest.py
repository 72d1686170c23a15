"""Shared fakes for the rankings test-suite."""

from __future__ import annotations

import copy
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import pytest
from loguru import logger

from rankings.config.settings import Settings
from rankings.storage.base import StorageEntry, StoreError
from rankings.web_mining.client import PageFetcher


class InMemoryRecordStore:
    """Dict-backed stand-in for the relational store with natural-key upserts."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str, Any]] = []
        self.reject: set[Tuple[str, Any]] = set()
        self._next_id = 1

    def _find(self, table: str, filters: Mapping[str, Any]) -> Dict[str, Any] | None:
        for row in self.tables[table]:
            if all(row.get(column) == value for column, value in filters.items()):
                return row
        return None

    def select_one(self, table: str, filters: Mapping[str, Any], columns: Sequence[str] = ("*",)):
        self.calls.append(("select", table, dict(filters)))
        row = self._find(table, filters)
        if row is None:
            return None
        if tuple(columns) == ("*",):
            return copy.deepcopy(row)
        return {column: copy.deepcopy(row.get(column)) for column in columns}

    def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: str, ignore_duplicates: bool = False):
        key = row.get(on_conflict)
        self.calls.append(("upsert", table, key))
        if (table, key) in self.reject:
            raise StoreError(f"rejected {table} {key}", status_code=400)
        existing = self._find(table, {on_conflict: key})
        if existing is not None:
            if ignore_duplicates:
                return None
            existing.update(copy.deepcopy(dict(row)))
            return copy.deepcopy(existing)
        created = {"id": self._next_id, **copy.deepcopy(dict(row))}
        self._next_id += 1
        self.tables[table].append(created)
        return copy.deepcopy(created)

    def delete(self, table: str, filters: Mapping[str, Any] | None = None) -> None:
        self.calls.append(("delete", table, filters))
        self.tables[table] = []

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table]

    def get(self, table: str, column: str, value: Any) -> Dict[str, Any] | None:
        return self._find(table, {column: value})


class InMemoryObjectStorage:
    """Bucketed blob store; uploads to an existing path fail like the real service."""

    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self.uploads: List[str] = []
        self.removed: List[List[str]] = []
        self.list_calls: List[Tuple[str, int]] = []
        self.failing_prefixes: set[str] = set()

    def list(self, bucket: str, prefix: str, *, search: str | None = None, limit: int = 100, offset: int = 0):
        self.list_calls.append((prefix, offset))
        if prefix in self.failing_prefixes:
            raise StoreError(f"cannot list {prefix}", status_code=500)
        names = sorted(
            path[len(prefix) + 1 :]
            for stored_bucket, path in self.objects
            if stored_bucket == bucket and path.startswith(f"{prefix}/")
        )
        if search:
            names = [name for name in names if search in name]
        return [StorageEntry(name=name) for name in names[offset : offset + limit]]

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = False) -> str:
        if (bucket, path) in self.objects and not upsert:
            raise StoreError(f"{path} already exists", status_code=409)
        self.objects[(bucket, path)] = (data, content_type)
        self.uploads.append(path)
        return path

    def remove(self, bucket: str, paths: Sequence[str]) -> None:
        self.removed.append(list(paths))
        for path in paths:
            self.objects.pop((bucket, path), None)

    def paths(self, prefix: str = "") -> List[str]:
        return sorted(path for _, path in self.objects if path.startswith(prefix))


class FakeResponse:
    def __init__(self, url: str, status_code: int = 200, body: bytes = b"", content_type: str = "text/html") -> None:
        self.url = url
        self.status_code = status_code
        self.content = body
        self.headers = {"content-type": content_type}
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Routes ``get`` calls to canned responses or exceptions keyed by URL."""

    def __init__(self, routes: Mapping[str, Any] | None = None) -> None:
        self.headers: Dict[str, str] = {}
        self.routes: Dict[str, Any] = dict(routes or {})
        self.requested: List[str] = []

    def add_page(self, url: str, html: str, status_code: int = 200) -> None:
        self.routes[url] = FakeResponse(url, status_code, html.encode("utf-8"), "text/html; charset=utf-8")

    def add_asset(self, url: str, data: bytes, content_type: str) -> None:
        self.routes[url] = FakeResponse(url, 200, data, content_type)

    def get(self, url: str, timeout: float | None = None, allow_redirects: bool = True):
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(url, 404, b"not found")
        if isinstance(route, BaseException):
            raise route
        return route


def structured_table(rows: Sequence[str]) -> str:
    return (
        "<html><body><div class='player__rank-table'><div class='divTable'>"
        + "".join(rows)
        + "</div></div></body></html>"
    )


def school_row(rank: str, name: str, record: str = "", key_wins: str = "", logo: str | None = None) -> str:
    figure = f"<figure><img src='{logo}'></figure>" if logo else ""
    return (
        "<div class='divRow'>"
        f"<div class='divCell'><span class='rank-count'>{rank}</span></div>"
        f"<div class='divCell player__name'>{figure}<a href='#'><span class='name'>{name}</span></a></div>"
        f"<div class='divCell'>{record}</div>"
        f"<div class='divCell'>{key_wins}</div>"
        "</div>"
    )


def team_row(rank: str, label: str, record: str = "", key_wins: str = "") -> str:
    return (
        "<div class='divRow'>"
        f"<div class='divCell'><span class='rank-count'>{rank}</span></div>"
        f"<div class='divCell'>{label}</div>"
        f"<div class='divCell'>{record}</div>"
        f"<div class='divCell'>{key_wins}</div>"
        "</div>"
    )


def player_row(
    rank: str,
    name: str,
    *,
    height: str = "",
    position: str = "",
    high_school: str = "",
    circuit: str = "",
    college: str | None = None,
    college_logo: str | None = None,
    image: str | None = None,
    detail_id: str | None = None,
    detail: str | None = None,
) -> str:
    figure = f"<figure><img src='{image}'></figure>" if image else ""
    data_id = f" data_id='{detail_id}'" if detail_id else ""
    college_cell = (
        f"<div class='divCell college__cell'><img src='{college_logo or ''}' alt='{college}'></div>"
        if college
        else "<div class='divCell college__cell'></div>"
    )
    markup = (
        "<div class='divRow'>"
        f"<div class='divCell'><span class='rank-count'>{rank}</span></div>"
        f"<div class='divCell player__name'>{figure}<a href='#'{data_id}><span class='name'>{name}</span></a></div>"
        f"<div class='divCell'>{height}</div>"
        f"<div class='divCell'>{position}</div>"
        f"{college_cell}"
        f"<div class='divCell'>{high_school}</div>"
        f"<div class='divCell'>{circuit}</div>"
        "</div>"
    )
    if detail_id and detail is not None:
        markup += f"<div class='divRow player-detail'><div class='divCell' id='document_{detail_id}'><p>{detail}</p></div></div>"
    return markup


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def object_storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def fetcher(fake_session: FakeSession) -> PageFetcher:
    return PageFetcher(
        user_agent="rankings-tests",
        timeout_seconds=5,
        retry_attempts=0,
        login_wall_markers=["Please Log In", "Not a Member", "You need to be logged in"],
        session=fake_session,  # type: ignore[arg-type]
    )


@pytest.fixture()
def settings_factory(tmp_path: Path):
    def build(**overrides: Any) -> Settings:
        payload: Dict[str, Any] = {
            "environment": "testing",
            "paths": {"data_dir": str(tmp_path / "data"), "logs_dir": str(tmp_path / "logs")},
            "supabase_url": "https://store.test",
            "supabase_service_role_key": "service-key",
        }
        payload.update(overrides)
        return Settings(**payload)

    return build


@pytest.fixture(autouse=True)
def _restore_log_sinks():
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_BUCKET_NAME",
        "TRUNCATE_FORCE",
        "RANKINGS_ENV",
    ):
        monkeypatch.delenv(name, raising=False)


__all__ = [
    "FakeResponse",
    "FakeSession",
    "InMemoryObjectStorage",
    "InMemoryRecordStore",
    "player_row",
    "school_row",
    "structured_table",
    "team_row",
]
