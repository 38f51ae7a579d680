"""
Refresh Public Map Snapshot

Rebuilds today's public map snapshot once. Suitable for cron or for an
operator running a manual refresh outside the API.

Usage:
    python scripts/refresh_public_map.py
    python scripts/refresh_public_map.py --strict   # exit 1 on failure
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from src.publicmap.db.session import SessionLocal
from src.publicmap.services.refresh_task import FAILED, RefreshTask
from src.publicmap.services.snapshot_builder import SnapshotBuilder
from src.publicmap.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild today's public map snapshot")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when the refresh fails",
    )
    args = parser.parse_args()

    setup_logging()
    task = RefreshTask(SnapshotBuilder(SessionLocal))
    observation = task.run(trigger="cli")

    if observation.status == FAILED:
        logger.error("cli_refresh_failed", error=observation.error)
        return 1 if args.strict else 0

    logger.info(
        "cli_refresh_completed",
        snapshot_date=str(observation.snapshot_date),
        rows_written=observation.rows_written,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
