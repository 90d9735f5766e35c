"""Unified configuration schema for pin_mirror.

Defines Pydantic models for the YAML config structure with dedicated
sections for the Pinata connection, sync behaviour, the HTTP trigger and
logging. Includes an adapter that flattens the schema into the fallback
dict consumed by ``config.load_config()``.

Usage:
    from pin_mirror.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .config import parse_group_list

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class PinataConfig(BaseModel):
    """Pinata API connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    jwt: str | None = Field(default=None, description="Pinata API JWT")
    api_url: str | None = Field(
        default=None, description="Pinata API base URL"
    )
    page_limit: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Rows requested per pin listing page (1-1000)",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempts per request when rate limited (1-20)",
    )
    retry_delay: float = Field(
        default=10.0,
        ge=0,
        le=600,
        description="Seconds to wait between rate-limit retries",
    )
    max_parallel_requests: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Concurrent uploads/deletes within one pass (1-32)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Mirroring behaviour.

    Attributes:
        watch_directory: Local root to mirror.
        managed_groups: Allow-list of remote group names; empty means
            every pin carrying our metadata is in scope.
        interval: Periodic sync interval in seconds, ``None`` disables it.
        cache_groups: Keep resolved group ids across passes.
        skip_unreadable: Log and skip unreadable files instead of
            aborting the pass.
    """

    watch_directory: str | None = Field(
        default=None, description="Directory to mirror"
    )
    managed_groups: list[str] = Field(default_factory=list)
    interval: float | None = Field(default=None, gt=0)
    cache_groups: bool = False
    skip_unreadable: bool = False
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}

    @field_validator("managed_groups", mode="before")
    @classmethod
    def _split_groups(cls, value: Any) -> list[str]:
        if value is None or isinstance(value, (str, list)):
            return parse_group_list(value)
        return value


class ServerConfig(BaseModel):
    """HTTP trigger endpoint settings."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int | None = Field(default=None, ge=1, le=65535)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", pattern="^(text|json)$")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    pinata: PinataConfig = Field(default_factory=PinataConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into the ``yaml_fallbacks`` dict that
    ``load_config()`` understands.

    ``None`` values are dropped so they never shadow built-in defaults.

    Args:
        unified: The unified config produced by ``build_config()``.

    Returns:
        Flat dict keyed by ``load_config()`` fallback names.
    """
    flat: dict[str, Any] = {
        "jwt": unified.pinata.jwt,
        "api_url": unified.pinata.api_url,
        "page_limit": unified.pinata.page_limit,
        "max_retries": unified.pinata.max_retries,
        "retry_delay": unified.pinata.retry_delay,
        "max_parallel_requests": unified.pinata.max_parallel_requests,
        "watch_directory": unified.sync.watch_directory,
        "managed_groups": unified.sync.managed_groups or None,
        "interval": unified.sync.interval,
        "cache_groups": unified.sync.cache_groups,
        "skip_unreadable": unified.sync.skip_unreadable,
        "debug": unified.sync.debug,
        "host": unified.server.host,
        "port": unified.server.port,
    }
    return {k: v for k, v in flat.items() if v is not None}
