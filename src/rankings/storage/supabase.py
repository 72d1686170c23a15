"""Supabase REST implementation of the record store and object storage."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence
from urllib.parse import quote

import requests
from requests.exceptions import RequestException

from rankings.config.settings import Settings
from rankings.utils.logging import get_logger

from .base import Row, StorageEntry, StoreError

DEFAULT_TIMEOUT_SECONDS = 30.0


class SupabaseClient:
    """Talks to PostgREST (``/rest/v1``) and Storage (``/storage/v1``) with a service key.

    A single instance satisfies both :class:`~rankings.storage.base.RecordStore`
    and :class:`~rankings.storage.base.ObjectStorage`. Every HTTP status of 400 or
    above, and every transport failure, surfaces as :class:`StoreError`.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            }
        )
        self._logger = get_logger(component="supabase")

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout_seconds)
        try:
            response = self._session.request(method, url, **kwargs)
        except RequestException as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            detail = response.text[:500]
            raise StoreError(
                f"{method} {path} returned HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(
                f"Expected JSON but got: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _eq_filters(filters: Mapping[str, Any]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    # ------------------------------------------------------------------
    # record store
    # ------------------------------------------------------------------
    def select_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        columns: Sequence[str] = ("*",),
    ) -> Row | None:
        params = {"select": ",".join(columns), "limit": "1", **self._eq_filters(filters)}
        rows = self._json(self._request("GET", f"/rest/v1/{table}", params=params)) or []
        return rows[0] if rows else None

    def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> Row | None:
        resolution = "ignore-duplicates" if ignore_duplicates else "merge-duplicates"
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            params={"on_conflict": on_conflict},
            json=dict(row),
            headers={"Prefer": f"resolution={resolution},return=representation"},
        )
        rows = self._json(response) or []
        # An ignored duplicate comes back as an empty representation.
        return rows[0] if rows else None

    def delete(self, table: str, filters: Mapping[str, Any] | None = None) -> None:
        params = self._eq_filters(filters) if filters else {"id": "neq.0"}
        self._request("DELETE", f"/rest/v1/{table}", params=params)
        self._logger.debug("Deleted rows", table=table, filters=params)

    # ------------------------------------------------------------------
    # object storage
    # ------------------------------------------------------------------
    def list(
        self,
        bucket: str,
        prefix: str,
        *,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StorageEntry]:
        body: Dict[str, Any] = {
            "prefix": prefix,
            "limit": limit,
            "offset": offset,
            "sortBy": {"column": "name", "order": "asc"},
        }
        if search:
            body["search"] = search
        payload = self._json(self._request("POST", f"/storage/v1/object/list/{bucket}", json=body)) or []
        return [
            StorageEntry(name=item.get("name", ""), id=item.get("id"), metadata=item.get("metadata") or {})
            for item in payload
        ]

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )
        self._logger.debug("Uploaded object", bucket=bucket, path=path, bytes=len(data))
        return path

    def remove(self, bucket: str, paths: Sequence[str]) -> None:
        if not paths:
            return
        self._request("DELETE", f"/storage/v1/object/{bucket}", json={"prefixes": list(paths)})


def build_supabase_client(settings: Settings, *, session: requests.Session | None = None) -> SupabaseClient:
    """Create a client from settings; raises ``ConfigurationError`` without credentials."""

    url, key = settings.require_store_credentials()
    return SupabaseClient(
        url,
        key,
        timeout_seconds=settings.policies.fetch.timeout_seconds,
        session=session,
    )


__all__ = ["SupabaseClient", "build_supabase_client"]
