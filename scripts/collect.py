"""CLI script to poll routers and update the traffic and lease databases.

Usage:
    python scripts/collect.py [--routers routers.json] [--loop] [--interval 1800]
        [--stats-database-url sqlite:///./network_stats.db]
        [--leases-database-url sqlite:///./dhcp_leases.db]
        [--reset-policy global|per_entity]

Without --loop a single polling cycle is run and the exit code reports
whether it could run at all. With --loop a cycle runs every --interval
seconds; a cycle that fails to start is logged and retried at the next
interval.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure project root is in the Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from routerstats.config import ConfigError, load_routers, settings
from routerstats.database import _build_engine, init_db
from routerstats.services.accumulator import RESET_POLICIES
from routerstats.services.collector import CycleAbortedError, PollingOrchestrator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def run_once(orchestrator: PollingOrchestrator, routers_path: str) -> bool:
    """Load the router list and run one cycle.

    Returns:
        True if the cycle ran, False on a fatal setup failure.
    """
    try:
        routers = load_routers(routers_path)
    except ConfigError as e:
        logger.error("Failed to load configuration: %s", e)
        return False

    if not routers:
        logger.warning("No routers configured in %s, skipping this cycle", routers_path)
        return True

    try:
        report = orchestrator.run_cycle(routers)
    except CycleAbortedError as e:
        logger.error("Polling cycle aborted: %s", e)
        return False

    for error in report.errors:
        logger.warning("Cycle error: %s", error)
    return True


def main(args=None):
    """Main entry point for the collector CLI script.

    Args:
        args: Command-line arguments (defaults to sys.argv if None).

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parser = argparse.ArgumentParser(
        description="Poll routers for traffic counters and DHCP leases"
    )
    parser.add_argument(
        "--routers",
        type=str,
        default=None,
        help=f"Path to the routers JSON file (default: {settings.ROUTERS_CONFIG_FILE})",
    )
    parser.add_argument(
        "--stats-database-url",
        type=str,
        default=None,
        help="Traffic database URL (default: STATS_DATABASE_URL env var)",
    )
    parser.add_argument(
        "--leases-database-url",
        type=str,
        default=None,
        help="Lease database URL (default: LEASES_DATABASE_URL env var)",
    )
    parser.add_argument(
        "--reset-policy",
        choices=RESET_POLICIES,
        default=None,
        help=f"Monthly reset policy (default: {settings.MONTHLY_RESET_POLICY})",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep polling forever instead of running a single cycle",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.POLL_INTERVAL_SECONDS,
        help=f"Seconds between cycles with --loop (default: {settings.POLL_INTERVAL_SECONDS})",
    )

    parsed_args = parser.parse_args(args)

    routers_path = parsed_args.routers or settings.ROUTERS_CONFIG_FILE
    stats_url = parsed_args.stats_database_url or settings.STATS_DATABASE_URL
    leases_url = parsed_args.leases_database_url or settings.LEASES_DATABASE_URL

    stats_engine = _build_engine(stats_url)
    leases_engine = _build_engine(leases_url)

    try:
        init_db(stats_bind=stats_engine, leases_bind=leases_engine)
    except SQLAlchemyError as e:
        logger.error("Failed to set up databases: %s", e)
        return 1

    orchestrator = PollingOrchestrator(
        stats_sessions=sessionmaker(bind=stats_engine),
        lease_sessions=sessionmaker(bind=leases_engine),
        reset_policy=parsed_args.reset_policy,
    )

    try:
        while True:
            logger.info("Starting data collection cycle")
            start_time = time.time()
            ok = run_once(orchestrator, routers_path)
            logger.info("Cycle finished in %.2f seconds", time.time() - start_time)

            if not parsed_args.loop:
                return 0 if ok else 1

            logger.info("Sleeping for %d seconds", parsed_args.interval)
            time.sleep(parsed_args.interval)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping collector")
        return 0
    finally:
        stats_engine.dispose()
        leases_engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
