"""Daemon startup and shutdown."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import LoggingConfig, build_config, to_fallbacks
from ..core.client import PinataClient
from ..sync.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (stdout carries reports)."""
    print(msg, file=sys.stderr, flush=True)


def resolve_config(
    config_overrides: dict[str, Any] | None = None,
) -> tuple[Config, LoggingConfig]:
    """
    Merge every configuration source into a validated ``Config``.

    Order of operations:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config files if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults

    Args:
        config_overrides: Values from CLI flags (watch_directory, jwt,
            managed_groups, sync_interval, port, host, debug).

    Returns:
        The runtime config and the ``logging`` section of the YAML config.

    Raises:
        RuntimeError: If configuration is missing or invalid.
    """
    try:
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        logging_config = LoggingConfig()
        sources = []

        config_files = discover_config_files()
        if config_files:
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = to_fallbacks(unified)
            logging_config = unified.logging
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            watch_directory=overrides.get("watch_directory"),
            jwt=overrides.get("jwt"),
            managed_groups=overrides.get("managed_groups"),
            sync_interval=overrides.get("sync_interval"),
            port=overrides.get("port"),
            host=overrides.get("host"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )
    except (ValueError, yaml.YAMLError) as e:
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure PINATA_JWT and WATCH_DIRECTORY are set.")
        raise RuntimeError(f"Configuration error: {e}") from e

    if overrides:
        sources.append("CLI arguments")
    sources.append("environment variables")
    _stderr_print(f"  Configuration loaded from: {', '.join(sources)}")
    return config, logging_config


@contextmanager
def daemon_lifespan(
    config: Config,
    client_factory: type[PinataClient] = PinataClient,
) -> Iterator[dict[str, Any]]:
    """
    Manage daemon startup and shutdown lifecycle.

    On startup:
    - Create the Pinata client and validate the JWT
    - Fail fast if Pinata is unreachable or rejects the token
    - Build the reconciliation engine

    Args:
        config: Validated runtime config.
        client_factory: Client class; overridable for tests.

    Yields:
        Dict with 'config', 'client' and 'engine' keys.

    Raises:
        RuntimeError: If the Pinata connection fails.
    """
    logger.info("pin-mirror starting...")
    _stderr_print("pin-mirror starting...")
    _stderr_print(f"  Watch directory: {config.watch_directory}")
    _stderr_print(f"  Pinata API: {config.api_url}")
    if config.managed_groups:
        _stderr_print(f"  Managed groups: {', '.join(config.managed_groups)}")

    logger.info("Validating Pinata authentication...")
    try:
        client = client_factory(config)
        message = client.test_authentication()
    except Exception as e:
        logger.error("Failed to authenticate with Pinata: %s", e)
        _stderr_print("ERROR: Pinata authentication failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check PINATA_JWT and PINATA_API_URL.")
        raise RuntimeError(f"Pinata authentication failed: {e}") from e

    logger.info("Pinata authentication OK: %s", message)
    _stderr_print(f"  Connected to Pinata: {message}")

    engine = ReconciliationEngine.from_config(client, config)
    _stderr_print(
        f"  Parallel requests: {config.max_parallel_requests}"
    )

    yield {"config": config, "client": client, "engine": engine}

    logger.info("pin-mirror shutting down")
    _stderr_print("pin-mirror shutting down.")
