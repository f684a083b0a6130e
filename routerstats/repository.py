"""Storage operations on the traffic and lease tables.

Every function takes an open SQLAlchemy session and never commits: callers
wrap a logical update in ``session_scope`` so it either applies completely
or not at all.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from routerstats.models import (
    TIMESTAMP_FORMAT,
    CumulativeStat,
    DhcpLease,
    MonthlyStat,
)
from routerstats.schemas import LeaseRecord, MonthlyTotal, TrafficCounters


def format_timestamp(moment: datetime) -> str:
    """Render a datetime in the stored ``YYYY-MM-DD HH:MM:SS`` form."""
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into a naive datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT)


def _to_monthly_total(row: MonthlyStat) -> MonthlyTotal:
    return MonthlyTotal(
        rx_bytes=row.rx_bytes,
        tx_bytes=row.tx_bytes,
        updated_at=parse_timestamp(row.updated_at),
    )


def get_cumulative(session: Session, entity_id: str) -> Optional[TrafficCounters]:
    """Return the last stored cumulative counters for an entity, if any."""
    row = session.get(CumulativeStat, entity_id)
    if row is None:
        return None
    return TrafficCounters(rx_bytes=row.rx_bytes, tx_bytes=row.tx_bytes)


def put_cumulative(session: Session, entity_id: str, counters: TrafficCounters) -> None:
    """Overwrite the stored cumulative counters for an entity."""
    session.merge(
        CumulativeStat(
            id=entity_id,
            rx_bytes=counters.rx_bytes,
            tx_bytes=counters.tx_bytes,
        )
    )


def get_monthly(session: Session, entity_id: str) -> Optional[MonthlyTotal]:
    """Return the monthly total for an entity, if a row exists."""
    row = session.get(MonthlyStat, entity_id)
    if row is None:
        return None
    return _to_monthly_total(row)


def put_monthly(session: Session, entity_id: str, total: MonthlyTotal) -> None:
    """Insert or overwrite the monthly total for an entity."""
    session.merge(
        MonthlyStat(
            id=entity_id,
            rx_bytes=total.rx_bytes,
            tx_bytes=total.tx_bytes,
            updated_at=format_timestamp(total.updated_at),
        )
    )


def list_monthly(session: Session) -> List[Tuple[str, MonthlyTotal]]:
    """Return every monthly total as ``(entity_id, total)`` ordered by id."""
    rows = session.query(MonthlyStat).order_by(MonthlyStat.id).all()
    return [(row.id, _to_monthly_total(row)) for row in rows]


def latest_monthly_update(session: Session) -> Optional[datetime]:
    """Return the most recent ``updated_at`` across all monthly rows.

    The stored text format sorts chronologically, so MAX on the column is
    the latest timestamp.
    """
    latest = session.query(func.max(MonthlyStat.updated_at)).scalar()
    if latest is None:
        return None
    return parse_timestamp(latest)


def reset_all_monthly(session: Session, now: datetime) -> int:
    """Zero every monthly total and stamp it with ``now`` in one statement.

    Returns:
        The number of rows reset.
    """
    result = session.execute(
        update(MonthlyStat).values(
            {
                MonthlyStat.rx_bytes: 0,
                MonthlyStat.tx_bytes: 0,
                MonthlyStat.updated_at: format_timestamp(now),
            }
        )
    )
    return result.rowcount


def upsert_lease(session: Session, lease: LeaseRecord, observed_at: datetime) -> None:
    """Insert or fully replace the lease row for ``lease.mac_address``."""
    session.merge(
        DhcpLease(
            mac_address=lease.mac_address,
            lease_end_time=lease.lease_end_time,
            ip_address=lease.ip_address,
            hostname=lease.hostname,
            client_id=lease.client_id,
            observed_at=format_timestamp(observed_at),
        )
    )
