"""Configuration settings and loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apiaction.errors import ConfigurationError, ErrorContext

INVALIDATION_POLICIES = ("log", "raise")


class ActionSettings(BaseSettings):
    """Configuration injected into an ActionFactory."""

    model_config = SettingsConfigDict(
        env_prefix="APIACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("APIACTION_BASE_URL", "API_URL"),
    )
    timeout: float | None = 30.0
    default_headers: dict[str, str] = Field(default_factory=dict)
    invalidation_errors: str = "log"
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_base_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return str(v).strip() or None

    @field_validator("timeout", mode="before")
    @classmethod
    def validate_timeout(cls, v: float | str | None) -> float | None:
        return _parse_timeout(v)

    @field_validator("invalidation_errors", mode="before")
    @classmethod
    def validate_invalidation_errors(cls, v: str) -> str:
        policy = str(v).lower()
        if policy not in INVALIDATION_POLICIES:
            raise ConfigurationError(
                message=f"Invalid invalidation_errors policy: {v!r}. Valid: {INVALIDATION_POLICIES}",
                field="invalidation_errors",
                value=v,
                context=ErrorContext(extra={"valid_policies": list(INVALIDATION_POLICIES)}),
            )
        return policy

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(
                message=f"Unknown log level: {v!r}",
                field="log_level",
                value=v,
            )
        return level


def load_config(config_path: str | Path | None = None) -> ActionSettings:
    """Load configuration from file and environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(
                    message=f"Config file {config_path} must contain a mapping",
                    field="config_path",
                    value=str(config_path),
                )
            config_data = loaded

    env_overrides = _get_env_overrides()
    config_data.update(env_overrides)

    return ActionSettings(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_mappings = {
        "API_URL": "base_url",
        "APIACTION_BASE_URL": "base_url",
        "APIACTION_TIMEOUT": ("timeout", _parse_timeout),
        "APIACTION_INVALIDATION_ERRORS": "invalidation_errors",
        "APIACTION_LOG_LEVEL": "log_level",
        "APIACTION_JSON_LOGS": ("json_logs", lambda x: x.lower() in ("true", "1", "yes")),
    }

    for env_key, config_key in env_mappings.items():
        value = os.environ.get(env_key)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                overrides[key] = converter(value)
            else:
                overrides[config_key] = value

    return overrides


def _parse_timeout(value: float | str | None) -> float | None:
    """Parse a timeout in seconds; ``None``, ``""`` and ``"none"`` disable it."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none"):
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            message=f"timeout must be a number of seconds, got {value!r}",
            field="timeout",
            value=value,
        ) from None
    if timeout <= 0:
        raise ConfigurationError(
            message="timeout must be positive",
            field="timeout",
            value=value,
        )
    return timeout
