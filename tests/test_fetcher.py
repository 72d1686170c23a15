"""Tests for page retrieval and failure classification."""

from __future__ import annotations

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import Timeout

from conftest import FakeResponse, FakeSession
from rankings.config.policies import FetchPolicy
from rankings.web_mining.client import FetchError, FetchTimeoutError, GatedContentError, PageFetcher
from rankings.web_mining.utils import absolutize_url, decode_payload, retryable

URL = "https://example.com/rankings/"


def test_fetch_page_returns_markup_and_sets_user_agent(fetcher: PageFetcher, fake_session: FakeSession) -> None:
    fake_session.add_page(URL, "<html><body>ok</body></html>")

    assert fetcher.fetch_page(URL) == "<html><body>ok</body></html>"
    assert fake_session.headers["User-Agent"] == "rankings-tests"


def test_http_error_carries_status(fetcher: PageFetcher, fake_session: FakeSession) -> None:
    fake_session.add_page(URL, "gone", status_code=503)

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch_page(URL)

    assert excinfo.value.status_code == 503
    assert excinfo.value.error_type == "http"
    assert fake_session.routes[URL].closed


def test_timeout_is_reported_as_timeout_error(fetcher: PageFetcher, fake_session: FakeSession) -> None:
    fake_session.routes[URL] = Timeout("slow")

    with pytest.raises(TimeoutError) as excinfo:
        fetcher.fetch(URL)

    assert isinstance(excinfo.value, FetchTimeoutError)
    assert isinstance(excinfo.value, FetchError)
    assert excinfo.value.error_type == "timeout"


def test_connection_errors_are_retried_then_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr("rankings.web_mining.utils.time.sleep", sleeps.append)
    session = FakeSession({URL: RequestsConnectionError("refused")})
    fetcher = PageFetcher(user_agent="ua", retry_attempts=2, session=session)  # type: ignore[arg-type]

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch(URL)

    assert not isinstance(excinfo.value, FetchTimeoutError)
    assert session.requested == [URL, URL, URL]
    assert len(sleeps) == 2


def test_http_errors_are_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("rankings.web_mining.utils.time.sleep", lambda _: None)
    session = FakeSession({URL: FakeResponse(URL, 500, b"boom")})
    fetcher = PageFetcher(user_agent="ua", retry_attempts=3, session=session)  # type: ignore[arg-type]

    with pytest.raises(FetchError):
        fetcher.fetch(URL)

    assert session.requested == [URL]


def test_login_wall_is_a_soft_skip(fetcher: PageFetcher, fake_session: FakeSession) -> None:
    fake_session.add_page(URL, "<html><body><h2>Please log in</h2> to see the rankings</body></html>")

    with pytest.raises(GatedContentError) as excinfo:
        fetcher.fetch_page(URL)

    assert excinfo.value.url == URL
    assert excinfo.value.marker.lower() == "please log in"


def test_from_policy_uses_policy_values() -> None:
    policy = FetchPolicy(
        user_agent="policy-agent",
        timeout_seconds=12,
        retry_attempts=0,
        login_wall_markers=["Members only"],
    )
    fetcher = PageFetcher.from_policy(policy, session=FakeSession())  # type: ignore[arg-type]

    assert fetcher.timeout_seconds == 12
    assert fetcher.detect_login_wall("<p>MEMBERS ONLY</p>") == "MEMBERS ONLY"
    assert fetcher.detect_login_wall("<p>Top 100</p>") is None


def test_decode_payload_prefers_declared_charset() -> None:
    body = "José".encode("latin-1")

    assert decode_payload(body, "text/html; charset=ISO-8859-1") == "José"
    assert decode_payload("Zoë".encode("utf-8"), "text/html") == "Zoë"


def test_decode_payload_detects_undeclared_legacy_charset() -> None:
    page = (
        "<html><head><title>Class of 2026 rankings</title></head><body><table>"
        "<tr><td>1</td><td>José Martínez</td><td>Guard</td><td>Lincoln High School, TX</td></tr>"
        "<tr><td>2</td><td>Zoë Peña</td><td>Forward</td><td>Roosevelt High School, CA</td></tr>"
        "</table></body></html>"
    )

    decoded = decode_payload(page.encode("latin-1"), "text/html")

    assert "José Martínez" in decoded
    assert "</table>" in decoded


@pytest.mark.parametrize(
    ("url", "base", "expected"),
    [
        ("/img/a.png", "https://example.com/x/", "https://example.com/img/a.png"),
        ("https://cdn.test/b.jpg", None, "https://cdn.test/b.jpg"),
        ("data:image/png;base64,AAAA", "https://example.com/", None),
        ("  ", "https://example.com/", None),
        ("mailto:someone@example.com", None, None),
    ],
)
def test_absolutize_url(url: str, base, expected) -> None:
    assert absolutize_url(url, base) == expected


def test_retryable_only_retries_listed_exceptions(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("rankings.web_mining.utils.time.sleep", lambda _: None)
    attempts: list[int] = []

    def flaky() -> str:
        attempts.append(1)
        if len(attempts) < 2:
            raise KeyError("transient")
        return "done"

    assert retryable(flaky, retries=2, retry_on=(KeyError,)) == "done"
    assert len(attempts) == 2

    def broken() -> str:
        raise ValueError("permanent")

    with pytest.raises(ValueError):
        retryable(broken, retries=5, retry_on=(KeyError,))
