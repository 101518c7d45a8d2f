#!/usr/bin/env python3
"""Service entrypoint — wires the pipeline, serves the API, runs the scheduler.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file and demo containers
    python scripts/run.py --config config/settings.yaml --seed config/seed.example.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from portsense.core.config import load_settings
from portsense.core.logging import setup_logging
from portsense.factory import create_pipeline
from portsense.store.seed import load_seed
from portsense.web.app import create_web_app, start_web_server

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start all components and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level or settings.logging.level, fmt=settings.logging.format)

    store = None
    if args.seed:
        try:
            store = load_seed(args.seed)
        except FileNotFoundError:
            logger.error("seed_file_not_found", path=args.seed)
            print(f"Seed file not found: {args.seed}", file=sys.stderr)
            return 1

    pipeline = create_pipeline(settings, store=store)

    logger.info(
        "service_starting",
        tracking_provider=settings.tracking.provider,
        enrichment=settings.enrichment.enabled,
        channels=sorted(c.value for c in pipeline.dispatcher.channels),
        interval_secs=settings.monitoring.interval_secs,
    )

    # ── Start everything ─────────────────────────────────────────
    await pipeline.start(schedule=not args.no_schedule)

    secret = settings.server.monitoring_secret.get_secret_value() or None
    if secret is None:
        logger.warning("monitoring_secret_not_set")
    app = create_web_app(
        pipeline.service,
        pipeline.alert_service,
        pipeline.hub,
        monitoring_secret=secret,
        heartbeat_secs=settings.realtime.heartbeat_secs,
    )
    runner = await start_web_server(app, settings.server.host, settings.server.port)

    logger.info(
        "service_running",
        host=settings.server.host,
        port=settings.server.port,
        scheduler="disabled" if args.no_schedule else "active",
    )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("service_shutting_down")

    try:
        await runner.cleanup()
    except Exception:
        logger.exception("web_server_stop_error")
    await pipeline.close()

    last = pipeline.cycle.last_report
    logger.info(
        "service_stopped",
        scheduled_runs=pipeline.scheduler.runs,
        last_cycle_updated=last.updated if last else None,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the PortSense container monitoring service.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--seed",
        default=None,
        help="YAML file of containers and recipients for the in-memory store",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--no-schedule",
        action="store_true",
        help="Serve the API only; cycles run via POST /api/monitoring/run",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
