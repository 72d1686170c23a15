"""Top-level package for the rankings ingestion system."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rankings")
except PackageNotFoundError:
    __version__ = "0.1.0"

from .config.settings import Settings, get_settings
from .entities import CircuitTeam, College, HighSchool, Player, ScrapedRow

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "CircuitTeam",
    "College",
    "HighSchool",
    "Player",
    "ScrapedRow",
]
