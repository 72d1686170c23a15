"""Web retrieval package exports."""

from __future__ import annotations

from rankings.config.policies import Policies

from .client import FetchError, FetchResponse, FetchTimeoutError, GatedContentError, PageFetcher
from .utils import absolutize_url, decode_payload


def build_page_fetcher(policies: Policies) -> PageFetcher:
    """Construct a :class:`PageFetcher` wired according to policy settings."""

    return PageFetcher.from_policy(policies.fetch)


__all__ = [
    "FetchError",
    "FetchResponse",
    "FetchTimeoutError",
    "GatedContentError",
    "PageFetcher",
    "absolutize_url",
    "build_page_fetcher",
    "decode_payload",
]
