"""General-purpose helpers shared across ingestion modules."""

from __future__ import annotations

import itertools
import json
import re
import unicodedata
from pathlib import Path
from typing import Iterable, Iterator, List, TypeVar

from .logging import get_logger

T = TypeVar("T")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_NON_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

_LOGGER = get_logger(module=__name__)


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""

    return _WHITESPACE_PATTERN.sub(" ", text.strip())


def fold_diacritics(text: str) -> str:
    """Remove diacritics by decomposing unicode characters."""

    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def slugify(value: str, *, fallback: str = "item") -> str:
    """Lower-case, ASCII-only, hyphen separated slug suitable for storage keys."""

    lowered = fold_diacritics(value).lower()
    slug = _NON_SLUG_PATTERN.sub("-", lowered).strip("-")
    return slug or fallback


def serialize_json(data: object, destination: Path | str, *, indent: int = 2) -> Path:
    """Serialize data to JSON with deterministic ordering."""

    dest_path = Path(destination)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    dest_path.write_text(
        json.dumps(data, indent=indent, sort_keys=True, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    _LOGGER.debug("Serialized JSON", path=str(dest_path), size=dest_path.stat().st_size)
    return dest_path


def chunked(iterable: Iterable[T], size: int) -> Iterable[List[T]]:
    """Yield chunks of a given size from the input iterable."""

    if size <= 0:
        raise ValueError("size must be positive")

    iterator: Iterator[T] = iter(iterable)
    while True:
        batch = list(itertools.islice(iterator, size))
        if not batch:
            break
        yield batch


__all__ = [
    "chunked",
    "fold_diacritics",
    "normalize_whitespace",
    "serialize_json",
    "slugify",
]
