"""HTTP retrieval of ranking pages and binary assets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Sequence

import requests
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from rankings.config.policies import FetchPolicy
from rankings.utils.logging import get_logger

from .utils import decode_payload, retryable


class FetchError(Exception):
    """Transport failure: HTTP status >= 400 or a network error."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
        error_type: str = "fetch",
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.error_type = error_type


class FetchTimeoutError(FetchError, TimeoutError):
    """Raised when a request deadline elapses."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message, url=url, error_type="timeout")


class GatedContentError(Exception):
    """A page rendered successfully but only contains a login wall."""

    def __init__(self, url: str, marker: str) -> None:
        super().__init__(f"Login required for {url} (matched {marker!r})")
        self.url = url
        self.marker = marker


@dataclass
class FetchResponse:
    url: str
    status_code: int
    content_type: str
    body: bytes
    fetched_at: datetime

    @property
    def text(self) -> str:
        return decode_payload(self.body, self.content_type)


class PageFetcher:
    """Retrieves source pages and assets with a fixed timeout and browser-like headers."""

    def __init__(
        self,
        *,
        user_agent: str,
        timeout_seconds: float = 30.0,
        retry_attempts: int = 1,
        login_wall_markers: Iterable[str] = (),
        session: requests.Session | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.login_wall_markers: Sequence[str] = tuple(login_wall_markers)
        self._login_wall = (
            re.compile("|".join(re.escape(marker) for marker in self.login_wall_markers), re.IGNORECASE)
            if self.login_wall_markers
            else None
        )
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})
        self._logger = get_logger(component="page_fetcher")

    @classmethod
    def from_policy(cls, policy: FetchPolicy, *, session: requests.Session | None = None) -> "PageFetcher":
        return cls(
            user_agent=policy.user_agent,
            timeout_seconds=policy.timeout_seconds,
            retry_attempts=policy.retry_attempts,
            login_wall_markers=policy.login_wall_markers,
            session=session,
        )

    def fetch(self, url: str, *, timeout: float | None = None) -> FetchResponse:
        """GET ``url``; raise :class:`FetchError` on status >= 400 or transport failure."""

        deadline = timeout if timeout is not None else self.timeout_seconds

        def issue_request() -> requests.Response:
            return self._session.get(url, timeout=deadline, allow_redirects=True)

        try:
            response = retryable(
                issue_request,
                retries=self.retry_attempts,
                retry_on=(RequestsConnectionError, Timeout),
            )
        except Timeout as exc:
            raise FetchTimeoutError(f"Timed out after {deadline}s fetching {url}", url=url) from exc
        except RequestException as exc:
            raise FetchError(f"Request failed for {url}: {exc}", url=url) from exc

        try:
            if response.status_code >= 400:
                raise FetchError(
                    f"HTTP {response.status_code} for {url}",
                    url=url,
                    status_code=response.status_code,
                    error_type="http",
                )
            return FetchResponse(
                url=response.url or url,
                status_code=response.status_code,
                content_type=response.headers.get("content-type", "application/octet-stream"),
                body=response.content,
                fetched_at=datetime.now(timezone.utc),
            )
        finally:
            response.close()

    def detect_login_wall(self, html: str) -> str | None:
        """Return the matched login-wall phrase, if any."""

        if self._login_wall is None:
            return None
        match = self._login_wall.search(html)
        return match.group(0) if match else None

    def fetch_page(self, url: str) -> str:
        """Fetch page markup, raising :class:`GatedContentError` for login walls."""

        response = self.fetch(url)
        html = response.text
        marker = self.detect_login_wall(html)
        if marker is not None:
            raise GatedContentError(url, marker)
        self._logger.debug("Fetched page", url=url, bytes=len(response.body))
        return html


__all__ = [
    "FetchError",
    "FetchResponse",
    "FetchTimeoutError",
    "GatedContentError",
    "PageFetcher",
]
