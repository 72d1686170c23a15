"""Configuration utilities for the rankings system."""

from .policies import (
    FetchPolicy,
    Policies,
    SourcePage,
    SourcePolicy,
    StoragePolicy,
    class_year_from_url,
    load_policies,
    season_key_from_url,
)
from .settings import ConfigurationError, Settings, get_settings

__all__ = [
    "ConfigurationError",
    "Settings",
    "get_settings",
    "Policies",
    "load_policies",
    "FetchPolicy",
    "SourcePage",
    "SourcePolicy",
    "StoragePolicy",
    "class_year_from_url",
    "season_key_from_url",
]
