"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field

DEFAULT_SESSION_URL = "https://api.fastmail.com/jmap/session"


class JmapSettings(BaseModel):
    """Settings controlling JMAP connectivity."""

    session_url: str = Field(
        default=DEFAULT_SESSION_URL, description="Well-known JMAP session endpoint"
    )
    email: str | None = Field(default=None, description="Account email address")
    api_token: str | None = Field(default=None, description="Bearer API token")
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Request timeout for JMAP calls"
    )
    max_retries: int = Field(
        default=3, ge=1, description="Attempts for idempotent read requests"
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Multiplier applied to the exponential retry delay",
    )


class AnalyticsSettings(BaseModel):
    """Settings for windowed mailbox analytics."""

    default_days: int = Field(default=30, ge=1, description="Default window size")
    max_messages: int = Field(
        default=1000, ge=1, description="Upper bound on messages analysed"
    )
    page_size: int = Field(
        default=250, ge=1, description="Messages fetched per query page"
    )
    timezone: str = Field(
        default="UTC", description="IANA zone used for hour/day/month buckets"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class ServerSettings(BaseModel):
    """Settings for the tool-serving front ends."""

    name: str = Field(default="jmap-ai", description="Advertised server name")
    host: str = Field(default="127.0.0.1", description="HTTP gateway bind host")
    port: int = Field(default=8765, description="HTTP gateway bind port")


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    jmap: JmapSettings = Field(default_factory=JmapSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


ENV_PREFIX = "JMAP_AI_"
_BOOLEAN_WORDS = {"true": True, "false": False}


def _settings_path(raw_key: str) -> list[str]:
    """Map ``JMAP_AI_JMAP__API_TOKEN`` to ``["jmap", "api_token"]``."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _coerce(value: str | None) -> Any:
    """Empty strings unset a field; ``true``/``false`` become booleans."""
    if value is None or value == "":
        return None
    return _BOOLEAN_WORDS.get(value.lower(), value)


def _prefixed(items: Mapping[str, str | None]) -> dict[str, str | None]:
    return {key: value for key, value in items.items() if key.startswith(ENV_PREFIX)}


def _read_env_file(env_file: Path | str | None) -> dict[str, str | None]:
    if not env_file or not Path(env_file).is_file():
        return {}
    return _prefixed(dotenv_values(env_file))


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Build a nested settings tree; process environment beats the env file."""
    raw = _read_env_file(env_file)
    if include_environment:
        raw.update(_prefixed(os.environ))

    tree: dict[str, Any] = {}
    for key, value in raw.items():
        path = _settings_path(key)
        if not path:
            continue
        node = tree
        for segment in path[:-1]:
            node = cast(dict[str, Any], node.setdefault(segment, {}))
        node[path[-1]] = _coerce(value)
    return tree


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "AnalyticsSettings",
    "DEFAULT_SESSION_URL",
    "JmapSettings",
    "LoggingSettings",
    "ServerSettings",
    "load_app_settings",
]
