#!/usr/bin/env python3
"""Run one monitoring cycle plus the unsent-alert sweep, then exit.

For an external scheduler (cron, systemd timer)::

    python scripts/run_cycle.py --seed config/seed.example.yaml
    python scripts/run_cycle.py --purge-history
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog

from portsense.core.config import load_settings
from portsense.core.logging import setup_logging
from portsense.factory import create_pipeline
from portsense.monitoring.exceptions import CycleAlreadyRunningError
from portsense.store.seed import load_seed

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level or settings.logging.level, fmt=settings.logging.format)

    store = load_seed(args.seed) if args.seed else None
    pipeline = create_pipeline(settings, store=store)
    await pipeline.start(schedule=False)

    code = 0
    try:
        report = await pipeline.service.run_monitoring_cycle()
        if args.purge_history:
            await pipeline.service.purge_history()
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    except CycleAlreadyRunningError:
        logger.warning("monitoring_cycle_rejected")
        code = 2
    except Exception:
        logger.exception("monitoring_cycle_failed")
        code = 1
    finally:
        await pipeline.close()
    return code


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a single PortSense monitoring cycle.")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--seed", default=None, help="YAML file of containers and recipients")
    parser.add_argument("--log-level", default=None, help="Log level override")
    parser.add_argument(
        "--purge-history",
        action="store_true",
        help="Also delete history older than the retention window",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
