"""Configuration management built on top of the policy primitives."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Tuple

import yaml
from pydantic import AliasChoices, BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .policies import Policies, load_policies

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"


class ConfigurationError(RuntimeError):
    """Raised when required runtime configuration is missing or invalid."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries."""

    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _apply_env_overrides(base: Dict[str, Any]) -> Dict[str, Any]:
    """Apply overrides from RANKINGS_SETTINGS__* environment variables."""

    prefix = "RANKINGS_SETTINGS__"
    result = dict(base)
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        cursor = result
        for part in path[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[path[-1]] = value
    return result


class PathsConfig(BaseModel):
    """Filesystem layout for logs and offline snapshots."""

    data_dir: Path = Field(default=PROJECT_ROOT / "data")
    logs_dir: Path = Field(default=PROJECT_ROOT / "logs")


class Settings(BaseSettings):
    """Primary configuration object for the rankings application.

    Precedence (highest first): explicit kwargs or CLI overrides, environment
    variables prefixed with ``RANKINGS_`` (plus the conventional ``SUPABASE_*``
    and ``TRUNCATE_FORCE`` names), nested overrides via ``RANKINGS_SETTINGS__``
    variables, environment-specific YAML (e.g. ``production.yaml``), the default
    YAML file, and finally the class defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="RANKINGS_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )

    environment: Literal["development", "testing", "production"] = Field(
        default="development",
        description="Active runtime environment",
    )
    config_dir: Path = Field(default=DEFAULT_CONFIG_DIR)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_url", "SUPABASE_URL", "RANKINGS_SUPABASE_URL"),
    )
    supabase_service_role_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "supabase_service_role_key",
            "SUPABASE_SERVICE_ROLE_KEY",
            "RANKINGS_SUPABASE_SERVICE_ROLE_KEY",
        ),
    )
    bucket_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("bucket_name", "SUPABASE_BUCKET_NAME", "RANKINGS_BUCKET_NAME"),
        description="Object storage bucket; falls back to the storage policy default.",
    )
    truncate_force: bool = Field(
        default=False,
        validation_alias=AliasChoices("truncate_force", "TRUNCATE_FORCE", "RANKINGS_TRUNCATE_FORCE"),
    )
    policies: Policies

    @model_validator(mode="before")
    @classmethod
    def _bootstrap_from_files(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        """Load YAML files and merge with provided overrides."""

        config_dir = Path(values.get("config_dir") or DEFAULT_CONFIG_DIR)
        environment = values.get("environment") or os.getenv("RANKINGS_ENV", "development")
        base_config = _load_yaml_file(config_dir / "default.yaml")
        env_config = _load_yaml_file(config_dir / f"{environment}.yaml")
        merged = _deep_merge(base_config, env_config)
        hydrated = _apply_env_overrides(merged)

        combined = _deep_merge(hydrated, {k: v for k, v in values.items() if v is not None})

        policies_data = combined.pop("policies", None)
        if isinstance(policies_data, Policies):
            combined["policies"] = policies_data
            return combined
        combined["policies"] = load_policies(policies_data)
        return combined

    @property
    def bucket(self) -> str:
        return self.bucket_name or self.policies.storage.bucket

    @property
    def log_file(self) -> Path:
        return self.paths.logs_dir / "rankings.log"

    def require_store_credentials(self) -> Tuple[str, str]:
        """Return ``(url, service_key)`` or raise :class:`ConfigurationError`."""

        key = self.supabase_service_role_key.get_secret_value() if self.supabase_service_role_key else ""
        if not self.supabase_url or not key:
            raise ConfigurationError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY env vars.")
        return self.supabase_url, key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a singleton settings instance."""

    return Settings()


__all__ = ["ConfigurationError", "Settings", "get_settings", "PathsConfig"]
