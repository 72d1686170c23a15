"""Download remote images and store them once in object storage.

Uploaded object names embed a slug of the owning entity plus a random
suffix, e.g. ``players/jane-doe-3f2a....jpg``. Two uploads for the same
entity therefore never collide, and an existing object is never replaced.
``AssetPipeline.ensure_uploaded`` is idempotent for a fixed target path: it
lists the target directory first and skips the upload when the file name is
already present.
"""

from __future__ import annotations

import posixpath
import uuid
from dataclasses import dataclass
from typing import Tuple
from urllib.parse import urlparse

from rankings.storage.base import ObjectStorage, StoreError
from rankings.utils.helpers import slugify
from rankings.utils.logging import get_logger
from rankings.web_mining.client import FetchError, PageFetcher

from .metrics import MetricsCollector

_MIME_EXTENSIONS = (
    ("png", ".png"),
    ("jpeg", ".jpg"),
    ("jpg", ".jpg"),
    ("webp", ".webp"),
)
_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


class AssetError(RuntimeError):
    """Download or upload of a single asset failed."""

    def __init__(self, message: str, *, url: str | None = None, path: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.path = path


@dataclass(frozen=True)
class UploadResult:
    path: str
    already_existed: bool


@dataclass(frozen=True)
class DownloadedAsset:
    data: bytes
    content_type: str
    extension: str


def infer_content_type(declared: str | None, url: str, default_ext: str = ".jpg") -> Tuple[str, str]:
    """Return ``(content_type, extension)`` from the declared MIME type, then the URL."""

    mime = (declared or "").split(";")[0].strip().lower()
    for token, extension in _MIME_EXTENSIONS:
        if token in mime:
            return _EXTENSION_MIME[extension], extension

    url_ext = posixpath.splitext(urlparse(url).path)[1].lower()
    if url_ext in _EXTENSION_MIME:
        extension = ".jpg" if url_ext == ".jpeg" else url_ext
        return _EXTENSION_MIME[url_ext], extension

    extension = default_ext if default_ext.startswith(".") else f".{default_ext}"
    if mime.startswith("image/"):
        return mime, extension
    return _EXTENSION_MIME.get(extension, "application/octet-stream"), extension


def build_asset_path(prefix: str, name: str, extension: str) -> str:
    """``<prefix>/<slug>-<random hex><ext>``"""

    return f"{prefix.strip('/')}/{slugify(name)}-{uuid.uuid4().hex}{extension}"


class AssetPipeline:
    """Fetches images and performs upload-if-absent against object storage."""

    def __init__(
        self,
        storage: ObjectStorage,
        fetcher: PageFetcher,
        *,
        bucket: str,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.storage = storage
        self.fetcher = fetcher
        self.bucket = bucket
        self.metrics = metrics
        self._logger = get_logger(component="asset_pipeline", bucket=bucket)

    def download(self, url: str, *, default_ext: str = ".jpg") -> DownloadedAsset:
        try:
            response = self.fetcher.fetch(url)
        except FetchError as exc:
            raise AssetError(f"Download failed for {url}: {exc}", url=url) from exc
        if not response.body:
            raise AssetError(f"Empty payload for {url}", url=url)
        content_type, extension = infer_content_type(response.content_type, url, default_ext)
        return DownloadedAsset(data=response.body, content_type=content_type, extension=extension)

    def ensure_uploaded(self, bucket: str, target_path: str, data: bytes, content_type: str) -> UploadResult:
        """Upload ``data`` to ``target_path`` unless an object with that name already exists."""

        directory, filename = posixpath.split(target_path)
        try:
            entries = self.storage.list(bucket, directory, search=filename)
            if any(entry.name == filename for entry in entries):
                self._logger.debug("Asset already stored", path=target_path)
                return UploadResult(path=target_path, already_existed=True)
            stored_path = self.storage.upload(bucket, target_path, data, content_type=content_type, upsert=False)
        except StoreError as exc:
            raise AssetError(f"Upload failed for {target_path}: {exc}", path=target_path) from exc
        return UploadResult(path=stored_path or target_path, already_existed=False)

    def store_remote_asset(
        self,
        url: str | None,
        *,
        prefix: str,
        name: str,
        default_ext: str = ".jpg",
    ) -> str | None:
        """Download ``url`` and store it under ``prefix``; ``None`` when anything fails."""

        if not url:
            return None
        try:
            asset = self.download(url, default_ext=default_ext)
            target = build_asset_path(prefix, name, asset.extension)
            result = self.ensure_uploaded(self.bucket, target, asset.data, asset.content_type)
        except AssetError as exc:
            self._logger.warning("Asset skipped", name=name, url=url, prefix=prefix, error=str(exc))
            if self.metrics is not None:
                self.metrics.record_asset(failed=True)
            return None
        if self.metrics is not None:
            self.metrics.record_asset(uploaded=not result.already_existed, reused=result.already_existed)
        self._logger.info("Asset stored", name=name, path=result.path, reused=result.already_existed)
        return result.path


__all__ = [
    "AssetError",
    "AssetPipeline",
    "DownloadedAsset",
    "UploadResult",
    "build_asset_path",
    "infer_content_type",
]
