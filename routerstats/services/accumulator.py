"""Monthly traffic accumulation and start-of-month rollover.

The per-entity state machine is expressed as pure functions over
``(stored total, now)`` so the rollover rules can be checked without a
database. ``reset_monthly_totals`` and ``record_observation`` apply them to
storage inside the caller's transaction.

The reset pass must run before any delta of a cycle is applied; otherwise
traffic recorded in the new month would be wiped.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from routerstats import repository
from routerstats.schemas import MonthlyTotal, TrafficCounters
from routerstats.services.reconciler import counter_reset_detected, reconcile

logger = logging.getLogger(__name__)

RESET_POLICY_GLOBAL = "global"
RESET_POLICY_PER_ENTITY = "per_entity"
RESET_POLICIES = (RESET_POLICY_GLOBAL, RESET_POLICY_PER_ENTITY)


def is_reset_due(updated_at: datetime, now: datetime) -> bool:
    """Return True if ``updated_at`` falls in a different calendar month."""
    return (updated_at.year, updated_at.month) != (now.year, now.month)


def rollover(
    total: Optional[MonthlyTotal], now: datetime
) -> Tuple[Optional[MonthlyTotal], bool]:
    """Apply the start-of-month reset to a single total.

    Returns:
        ``(new_total, applied)``. A missing total or one already in the
        current month is returned unchanged with ``applied=False``.
    """
    if total is None or not is_reset_due(total.updated_at, now):
        return total, False
    return MonthlyTotal(rx_bytes=0, tx_bytes=0, updated_at=now), True


def accumulate(
    total: Optional[MonthlyTotal], delta: TrafficCounters, now: datetime
) -> MonthlyTotal:
    """Add a delta to a monthly total, creating a zero total if needed."""
    if total is None:
        total = MonthlyTotal(rx_bytes=0, tx_bytes=0, updated_at=now)
    return MonthlyTotal(
        rx_bytes=total.rx_bytes + delta.rx_bytes,
        tx_bytes=total.tx_bytes + delta.tx_bytes,
        updated_at=now,
    )


def reset_monthly_totals(
    session: Session, now: datetime, policy: str = RESET_POLICY_GLOBAL
) -> int:
    """Run the start-of-month reset pass.

    With the ``global`` policy the most recently updated row decides for all
    rows: if it was last touched in another month, every total is zeroed
    in one statement. With ``per_entity`` each row is judged by its own
    timestamp.

    Args:
        session: Open session on the stats database.
        now: Current cycle time.
        policy: ``global`` or ``per_entity``.

    Returns:
        The number of rows reset (0 when no reset was due).

    Raises:
        ValueError: If the policy is unknown.
    """
    if policy == RESET_POLICY_GLOBAL:
        latest = repository.latest_monthly_update(session)
        if latest is None or not is_reset_due(latest, now):
            return 0
        count = repository.reset_all_monthly(session, now)
        logger.info(
            "Monthly statistics reset for %d entities (last update %s)", count, latest
        )
        return count

    if policy == RESET_POLICY_PER_ENTITY:
        count = 0
        for entity_id, total in repository.list_monthly(session):
            new_total, applied = rollover(total, now)
            if applied:
                repository.put_monthly(session, entity_id, new_total)
                count += 1
        if count:
            logger.info("Monthly statistics reset for %d entities", count)
        return count

    raise ValueError(
        f"Unknown monthly reset policy '{policy}': expected one of {RESET_POLICIES}"
    )


def record_observation(
    session: Session, entity_id: str, observed: TrafficCounters, now: datetime
) -> TrafficCounters:
    """Reconcile one observation and fold it into the entity's monthly total.

    Reads the stored cumulative counters, computes the delta, adds it to the
    monthly total and stores ``observed`` as the new cumulative value. The
    caller must hold the stats lock and commit the session.

    Returns:
        The delta that was applied.
    """
    last = repository.get_cumulative(session, entity_id)
    delta = reconcile(last, observed)
    if counter_reset_detected(last, observed):
        logger.info(
            "Counter reset detected for %s: last=(%d, %d) observed=(%d, %d)",
            entity_id,
            last.rx_bytes,
            last.tx_bytes,
            observed.rx_bytes,
            observed.tx_bytes,
        )

    total = accumulate(repository.get_monthly(session, entity_id), delta, now)
    repository.put_monthly(session, entity_id, total)
    repository.put_cumulative(
        session,
        entity_id,
        TrafficCounters(rx_bytes=observed.rx_bytes, tx_bytes=observed.tx_bytes),
    )
    return delta
