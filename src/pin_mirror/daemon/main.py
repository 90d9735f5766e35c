"""pin-mirror daemon entry point.

Mirrors a local directory onto Pinata: runs a startup pass, then re-syncs
on filesystem changes, on an optional fixed interval and, when a port is
configured, on ``POST /sync``.
"""

import argparse
import json
import logging
import sys
import threading

import uvicorn

from .. import __version__
from ..config_loader import ensure_config
from ..logger import setup_logging
from ..sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .api import create_app
from .lifespan import daemon_lifespan, resolve_config
from .timer import PeriodicTrigger
from .watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))


def run_once(engine, dry_run: bool = False, as_json: bool = False) -> int:
    """Run a single pass, print its report, and return an exit code."""
    report = engine.sync(dry_run=dry_run)
    if report is None:
        print("Sync already in progress.", file=sys.stderr)
        return 1
    _print_report(report, as_json)
    return 0 if report.ok else 1


def serve(engine, config, stop_event: threading.Event | None = None) -> None:
    """Run the startup pass, then watch until interrupted.

    With ``config.port`` set the HTTP trigger is served by uvicorn in the
    foreground; otherwise the calling thread waits on *stop_event*.
    """
    report = engine.sync()
    if report is not None:
        logger.info("Startup sync: %s", report.summary().splitlines()[0])

    watcher = DirectoryWatcher(engine)
    timer = (
        PeriodicTrigger(engine.trigger, config.sync_interval)
        if config.sync_interval
        else None
    )
    stop_event = stop_event or threading.Event()

    watcher.start()
    if timer is not None:
        timer.start()
    try:
        if config.port is not None:
            logger.info(
                "HTTP trigger on http://%s:%d/sync", config.host, config.port
            )
            uvicorn.run(
                create_app(engine),
                host=config.host,
                port=config.port,
                log_config=None,
            )
        else:
            logger.info("Watching for changes... (Ctrl+C to stop)")
            while not stop_event.wait(0.5):
                pass
    finally:
        if timer is not None:
            timer.stop()
        watcher.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pin-mirror",
        description="pin-mirror - mirror a local directory onto Pinata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .pin_mirror/config.yml)
  pin-mirror

  # Mirror a directory and re-sync every 30 seconds
  pin-mirror --watch-dir /srv/mirror --interval 30

  # Only mirror two top-level folders, expose POST /sync on port 3000
  pin-mirror --managed-groups photos,docs --port 3000

  # Preview what one pass would do
  pin-mirror --dry-run

  # One pass, JSON report on stdout
  pin-mirror --once --json

Note: Status messages and logs go to stderr; reports go to stdout.
        """,
    )

    parser.add_argument(
        "--watch-dir",
        help="Directory to mirror (takes precedence over WATCH_DIRECTORY env var and config files)",
    )
    parser.add_argument(
        "--jwt",
        help="Pinata JWT (visible in process list -- prefer PINATA_JWT env var)",
    )
    parser.add_argument(
        "--managed-groups",
        help="Comma-separated allow-list of group names (overrides MANAGED_GROUPS)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        help="Periodic sync interval in seconds (overrides SYNC_INTERVAL/USECRON)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Serve the HTTP trigger on this port (overrides FILEPORT)",
    )
    parser.add_argument(
        "--host",
        help="Bind address for the HTTP trigger (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sync pass, print the report and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what one pass would change without changing anything (implies --once)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the --once report as JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log output format (default: text)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a starter .pin_mirror/config.yml and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pin-mirror version {__version__}",
    )
    return parser


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args(argv)

    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        sys.exit(0)

    # Build config overrides dict from CLI args
    config_overrides = {}
    if args.watch_dir:
        config_overrides["watch_directory"] = args.watch_dir
    if args.jwt:
        config_overrides["jwt"] = args.jwt
    if args.managed_groups:
        config_overrides["managed_groups"] = args.managed_groups
    if args.interval is not None:
        config_overrides["sync_interval"] = args.interval
    if args.port is not None:
        config_overrides["port"] = args.port
    if args.host:
        config_overrides["host"] = args.host
    if args.debug:
        config_overrides["debug"] = True

    if config_overrides:
        override_keys = [k for k in config_overrides if k != "jwt"]
        if override_keys:
            print(
                f"Config overrides from CLI: {', '.join(override_keys)}",
                file=sys.stderr,
            )

    try:
        config, log_settings = resolve_config(config_overrides or None)
        setup_logging(
            debug=config.debug,
            log_file=args.log_file or log_settings.file,
            log_format=args.log_format or log_settings.format,
            level=log_settings.level,
        )
        with daemon_lifespan(config) as ctx:
            engine = ctx["engine"]
            if args.once or args.dry_run:
                sys.exit(
                    run_once(engine, dry_run=args.dry_run, as_json=args.json)
                )
            serve(engine, config)
    except RuntimeError:
        # Error already printed to stderr by the lifespan helpers
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
