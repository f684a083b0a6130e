"""Polling cycle orchestration.

One cycle polls every configured router in parallel threads. Each router has
three independent signals (client traffic, WAN traffic, DHCP leases); a
failure in one signal is logged and never affects the other signals or other
routers.

Updates to the shared traffic tables are serialized with a lock that is held
only for the duration of one storage transaction, never across network I/O,
so a slow router cannot stall the others.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from routerstats.config import settings
from routerstats.database import LeaseSessionLocal, StatsSessionLocal, session_scope
from routerstats.models import WAN_ENTITY_ID
from routerstats.schemas import CycleReport, RouterConfig, RouterReport, TrafficCounters
from routerstats.services.accumulator import record_observation, reset_monthly_totals
from routerstats.services.fetcher import FetchError, fetch_text
from routerstats.services.leases import upsert_leases
from routerstats.services.parsers import (
    parse_client_traffic,
    parse_dhcp_leases,
    parse_wan_traffic,
)

logger = logging.getLogger(__name__)


class CycleAbortedError(RuntimeError):
    """Raised when a cycle cannot safely apply any updates."""


class PollingOrchestrator:
    """Runs polling cycles over a set of routers.

    Args:
        stats_sessions: Session factory for the traffic database.
        lease_sessions: Session factory for the lease database.
        fetch: Callable ``fetch(url) -> str | None`` raising FetchError on
               failure. Defaults to ``fetch_text`` with the configured timeout.
        max_workers: Thread pool size (default: one thread per router).
        reset_policy: Monthly reset policy, ``global`` or ``per_entity``.
    """

    def __init__(
        self,
        stats_sessions=None,
        lease_sessions=None,
        fetch: Optional[Callable[[str], Optional[str]]] = None,
        max_workers: Optional[int] = None,
        reset_policy: Optional[str] = None,
    ):
        self.stats_sessions = stats_sessions or StatsSessionLocal
        self.lease_sessions = lease_sessions or LeaseSessionLocal
        self.fetch = fetch or partial(fetch_text, timeout=settings.FETCH_TIMEOUT_SECONDS)
        self.max_workers = max_workers or settings.MAX_WORKERS
        self.reset_policy = reset_policy or settings.MONTHLY_RESET_POLICY
        self._stats_lock = threading.Lock()
        self._lease_lock = threading.Lock()

    def run_cycle(
        self, routers: Dict[str, RouterConfig], now: Optional[datetime] = None
    ) -> CycleReport:
        """Poll every router once and wait for all of them to finish.

        Args:
            routers: Router name to endpoint configuration.
            now: Cycle timestamp (default: current local time). Used for the
                 month rollover check and stamped on every row written.

        Returns:
            A CycleReport summarizing the cycle.

        Raises:
            CycleAbortedError: If the monthly reset pass fails.
        """
        now = now or datetime.now()
        report = CycleReport(started_at=now)

        try:
            with self._stats_lock, session_scope(self.stats_sessions) as session:
                report.monthly_rows_reset = reset_monthly_totals(
                    session, now, self.reset_policy
                )
        except (SQLAlchemyError, ValueError) as e:
            raise CycleAbortedError(f"Monthly reset pass failed: {e}") from e

        if not routers:
            logger.warning("No routers configured, nothing to poll")
            return report

        workers = self.max_workers or len(routers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="poll") as pool:
            futures = {
                name: pool.submit(self.collect_router, name, urls, now)
                for name, urls in routers.items()
            }
            for name, future in futures.items():
                try:
                    report.add(future.result())
                except Exception as e:
                    logger.exception("Unexpected error while polling %s", name)
                    report.routers += 1
                    report.errors.append(f"{name}: unexpected error: {e}")

        logger.info(
            "Cycle complete: %d routers, %d entities updated, %d leases, %d errors",
            report.routers,
            report.entities_updated,
            report.leases_upserted,
            len(report.errors),
        )
        return report

    def collect_router(self, name: str, urls: RouterConfig, now: datetime) -> RouterReport:
        """Poll the three signals of a single router."""
        logger.info("Processing router: %s", name)
        report = RouterReport(router=name)
        self._collect_clients(name, urls.ap_stats, now, report)
        self._collect_wan(name, urls.wan_stats, now, report)
        self._collect_leases(name, urls.dhcp_leases, now, report)
        return report

    def _fetch(self, name: str, signal: str, url: str, report: RouterReport) -> Optional[str]:
        if not url:
            return None
        try:
            return self.fetch(url)
        except FetchError as e:
            logger.warning("Error fetching %s for %s: %s", signal, name, e)
            report.errors.append(f"{name}: {signal}: {e}")
            return None

    def _record(
        self,
        name: str,
        entity_id: str,
        counters: TrafficCounters,
        now: datetime,
        report: RouterReport,
    ) -> bool:
        try:
            with self._stats_lock, session_scope(self.stats_sessions) as session:
                record_observation(session, entity_id, counters, now)
        except SQLAlchemyError as e:
            logger.error(
                "Error updating traffic stats for %s (%s): %s", entity_id, name, e
            )
            report.errors.append(f"{name}: {entity_id}: {e}")
            return False
        except Exception as e:
            logger.exception(
                "Unexpected error updating traffic stats for %s (%s)", entity_id, name
            )
            report.errors.append(f"{name}: {entity_id}: {e}")
            return False
        return True

    def _collect_clients(self, name: str, url: str, now: datetime, report: RouterReport) -> None:
        data = self._fetch(name, "ap_stats", url, report)
        if data is None:
            return
        clients = parse_client_traffic(data)
        if not clients:
            logger.info("No client traffic data found for %s", name)
            return
        for client in clients:
            if self._record(name, client.mac_address, client, now, report):
                report.clients_updated += 1

    def _collect_wan(self, name: str, url: str, now: datetime, report: RouterReport) -> None:
        data = self._fetch(name, "wan_stats", url, report)
        if data is None:
            return
        try:
            wan = parse_wan_traffic(data)
        except ValueError as e:
            logger.warning("Error parsing WAN stats for %s: %s", name, e)
            report.errors.append(f"{name}: wan_stats: {e}")
            return
        if wan is None:
            logger.info("No WAN data found for %s", name)
            return
        report.wan_updated = self._record(name, WAN_ENTITY_ID, wan, now, report)

    def _collect_leases(self, name: str, url: str, now: datetime, report: RouterReport) -> None:
        data = self._fetch(name, "dhcp_leases", url, report)
        if data is None:
            return
        leases = parse_dhcp_leases(data)
        if not leases:
            logger.info("No DHCP lease data found for %s", name)
            return
        try:
            with self._lease_lock, session_scope(self.lease_sessions) as session:
                report.leases_upserted = upsert_leases(session, leases, now)
        except SQLAlchemyError as e:
            logger.error("Error upserting DHCP leases for %s: %s", name, e)
            report.errors.append(f"{name}: dhcp_leases: {e}")
            report.leases_upserted = 0


def run_cycle(
    routers: Dict[str, RouterConfig], now: Optional[datetime] = None, **kwargs
) -> CycleReport:
    """Run a single polling cycle with a fresh orchestrator."""
    return PollingOrchestrator(**kwargs).run_cycle(routers, now=now)
