"""Runtime configuration for the pin-mirror daemon.

Reads settings from CLI args, environment variables, .env files, and YAML
config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    PINATA_JWT: Pinata API bearer token (required)
    WATCH_DIRECTORY: Local directory to mirror (required)
    MANAGED_GROUPS: Comma-separated allow-list of group names (optional)
    USECRON: Enable a 30 second periodic sync (optional, default: false)
    SYNC_INTERVAL: Periodic sync interval in seconds (optional, overrides USECRON)
    FILEPORT: Port for the HTTP trigger endpoint (optional)
    PINATA_API_URL: Pinata API base URL (optional)
    PINATA_PAGE_LIMIT: Pin listing page size (optional, default: 1000)
    PINATA_MAX_RETRIES: Attempts per request on HTTP 429 (optional, default: 3)
    PINATA_RETRY_DELAY: Seconds between 429 retries (optional, default: 10)
    PINATA_MAX_PARALLEL_REQUESTS: Concurrent uploads/deletes (optional, default: 1)
    PIN_MIRROR_CACHE_GROUPS: Keep resolved groups across passes (optional)
    PIN_MIRROR_SKIP_UNREADABLE: Skip unreadable files instead of aborting (optional)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.pinata.cloud"
CRON_INTERVAL_SECONDS = 30.0


@dataclass
class Config:
    pinata_jwt: str
    watch_directory: str
    api_url: str = DEFAULT_API_URL
    managed_groups: list[str] = field(default_factory=list)
    sync_interval: float | None = None
    host: str = "127.0.0.1"
    port: int | None = None
    page_limit: int = 1000
    max_retries: int = 3
    retry_delay: float = 10.0
    max_parallel_requests: int = 1
    cache_groups: bool = False
    skip_unreadable: bool = False
    debug: bool = False


def parse_group_list(raw: str | list[str] | None) -> list[str]:
    """Split a comma-separated group list, dropping blanks and duplicates."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    groups: list[str] = []
    for item in items:
        name = str(item).strip()
        if name and name not in groups:
            groups.append(name)
    return groups


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL is malformed, the token is empty, or the
            watch directory does not exist.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid Pinata API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid Pinata API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not config.pinata_jwt.strip():
        raise ValueError(
            "Pinata JWT cannot be empty. Set PINATA_JWT environment variable."
        )

    if not config.watch_directory.strip():
        raise ValueError(
            "Watch directory cannot be empty. Set WATCH_DIRECTORY environment variable."
        )

    watch_dir = Path(config.watch_directory).expanduser()
    if not watch_dir.is_dir():
        raise ValueError(
            f"Watch directory '{config.watch_directory}' does not exist or is not a directory"
        )
    config.watch_directory = str(watch_dir.resolve())

    if config.sync_interval is not None and config.sync_interval <= 0:
        raise ValueError(
            f"Invalid sync interval '{config.sync_interval}': must be a positive number of seconds"
        )

    if config.port is not None and not (1 <= config.port <= 65535):
        raise ValueError(
            f"Invalid port '{config.port}': must be a number between 1 and 65535"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(
    key: str,
    cast: type,
    fallback: int | float | None,
    low: float,
    high: float,
) -> int | float | None:
    """Read a bounded number from env var, falling back when unset."""
    raw = os.getenv(key)
    if raw is None:
        return fallback
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low:g} and {high:g}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low:g} and {high:g}"
        )
    return value


def load_config(
    watch_directory: str | None = None,
    jwt: str | None = None,
    managed_groups: str | list[str] | None = None,
    sync_interval: float | None = None,
    port: int | None = None,
    host: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        watch_directory: Override the mirrored directory.
        jwt: Override the Pinata JWT.
        managed_groups: Override the group allow-list (comma string or list).
        sync_interval: Override the periodic sync interval in seconds.
        port: Override the HTTP trigger port.
        host: Override the HTTP trigger bind address.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file.
            Used as fallback when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If required config (JWT, watch directory) is missing
            after checking all sources, or a value is out of range.
    """
    fb = yaml_fallbacks or {}

    # --- Required string fields: CLI > env > YAML > error ---

    final_jwt = jwt or os.getenv("PINATA_JWT") or fb.get("jwt")
    if not final_jwt:
        raise ValueError(
            "Pinata JWT not found. Set PINATA_JWT environment variable, "
            "pass --jwt CLI argument, or add 'pinata.jwt' to config.yml."
        )

    final_watch = (
        watch_directory
        or os.getenv("WATCH_DIRECTORY")
        or fb.get("watch_directory")
    )
    if not final_watch:
        raise ValueError(
            "Watch directory not found. Set WATCH_DIRECTORY environment variable, "
            "pass --watch-dir CLI argument, or add 'sync.watch_directory' to config.yml."
        )

    api_url = (
        os.getenv("PINATA_API_URL") or fb.get("api_url") or DEFAULT_API_URL
    )

    # --- Group allow-list: CLI > env > YAML > none ---

    if managed_groups:
        final_groups = parse_group_list(managed_groups)
    elif os.getenv("MANAGED_GROUPS"):
        final_groups = parse_group_list(os.getenv("MANAGED_GROUPS"))
    else:
        final_groups = parse_group_list(fb.get("managed_groups"))

    # --- Periodic sync: CLI > SYNC_INTERVAL > USECRON > YAML > disabled ---

    if sync_interval is not None:
        final_interval: float | None = float(sync_interval)
    else:
        final_interval = _get_number_env(
            "SYNC_INTERVAL", float, None, 1, 86400
        )
        if final_interval is None:
            if _get_bool_env("USECRON"):
                final_interval = CRON_INTERVAL_SECONDS
            elif fb.get("interval") is not None:
                final_interval = float(fb["interval"])

    # --- HTTP trigger: CLI > FILEPORT > YAML > disabled ---

    if port is not None:
        final_port: int | None = port
    else:
        final_port = _get_number_env(
            "FILEPORT", int, fb.get("port"), 1, 65535
        )

    final_host = host or fb.get("host") or "127.0.0.1"

    # --- Transport tuning: env > YAML > default ---

    page_limit = _get_number_env(
        "PINATA_PAGE_LIMIT", int, fb.get("page_limit", 1000), 1, 1000
    )
    max_retries = _get_number_env(
        "PINATA_MAX_RETRIES", int, fb.get("max_retries", 3), 1, 20
    )
    retry_delay = _get_number_env(
        "PINATA_RETRY_DELAY", float, fb.get("retry_delay", 10.0), 0, 600
    )
    max_parallel = _get_number_env(
        "PINATA_MAX_PARALLEL_REQUESTS",
        int,
        fb.get("max_parallel_requests", 1),
        1,
        32,
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    env_cache = _get_bool_env("PIN_MIRROR_CACHE_GROUPS")
    cache_groups = (
        env_cache
        if env_cache is not None
        else bool(fb.get("cache_groups", False))
    )

    env_skip = _get_bool_env("PIN_MIRROR_SKIP_UNREADABLE")
    skip_unreadable = (
        env_skip
        if env_skip is not None
        else bool(fb.get("skip_unreadable", False))
    )

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("PIN_MIRROR_DEBUG")
        final_debug = (
            env_debug if env_debug is not None else bool(fb.get("debug", False))
        )

    config = Config(
        pinata_jwt=final_jwt.strip(),
        watch_directory=final_watch.strip(),
        api_url=api_url,
        managed_groups=final_groups,
        sync_interval=final_interval,
        host=final_host,
        port=int(final_port) if final_port is not None else None,
        page_limit=int(page_limit),
        max_retries=int(max_retries),
        retry_delay=float(retry_delay),
        max_parallel_requests=int(max_parallel),
        cache_groups=cache_groups,
        skip_unreadable=skip_unreadable,
        debug=final_debug,
    )

    validate_config(config)

    return config
