"""
Maturation sweep entry point for an external scheduler (cron, k8s CronJob).

Usage:
    python -m backoffice.sweep
    python -m backoffice.sweep --as-of 2025-08-01T00:00:00Z

Exits with status 1 when the sweep could not run or when any investor
failed to transition, so the scheduler can retry.  Re-running is safe.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import List, Optional

from sqlmodel import SQLModel

import backoffice.db.base  # noqa: F401
from backoffice.core.exceptions import AppException
from backoffice.core.logging import setup_logging
from backoffice.db.session import engine
from backoffice.services.maturation_sweep import MaturationSweep

logger = logging.getLogger("backoffice.sweep")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m backoffice.sweep",
        description="Move investors whose waiting period has elapsed to inactive.",
    )
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Evaluate the waiting period at this ISO-8601 instant (default: now, UTC)",
    )
    return parser.parse_args(argv)


async def sweep(as_of: Optional[datetime] = None) -> int:
    """Run one sweep and return the process exit code."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    try:
        result = await MaturationSweep().run(as_of)
    except AppException as exc:
        logger.error("Maturation sweep aborted: %s", exc.message)
        return 1
    finally:
        await engine.dispose()

    logger.info(
        "Transitioned %d investor(s): %s",
        result.count,
        ", ".join(str(i) for i in result.investor_ids) or "none",
    )
    if result.failed_ids:
        logger.error(
            "%d investor(s) failed and will be retried on the next run: %s",
            len(result.failed_ids),
            ", ".join(str(i) for i in result.failed_ids),
        )
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = _parse_args(argv)
    return asyncio.run(sweep(args.as_of))


if __name__ == "__main__":
    sys.exit(main())
