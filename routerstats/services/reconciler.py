"""Conversion of absolute router counters into incremental traffic.

Routers report ever-increasing byte counters that restart near zero when the
router reboots. A counter that went down is therefore read as a restart, and
everything it reports is traffic accrued since that restart. Traffic between
the last poll and the restart itself is never seen; that loss is accepted.
"""

from typing import Optional

from routerstats.schemas import TrafficCounters


def _counter_delta(last: int, observed: int) -> int:
    if observed >= last:
        return observed - last
    return observed


def reconcile(
    last: Optional[TrafficCounters], observed: TrafficCounters
) -> TrafficCounters:
    """Compute the traffic delta between two observations of one entity.

    Args:
        last: Previously stored cumulative counters, or None if the entity
              has never been seen.
        observed: Counters reported in the current cycle.

    Returns:
        The delta to add to the monthly total. The first observation
        contributes its full value. rx and tx restarts are detected
        independently.
    """
    if last is None:
        return TrafficCounters(rx_bytes=observed.rx_bytes, tx_bytes=observed.tx_bytes)
    return TrafficCounters(
        rx_bytes=_counter_delta(last.rx_bytes, observed.rx_bytes),
        tx_bytes=_counter_delta(last.tx_bytes, observed.tx_bytes),
    )


def counter_reset_detected(
    last: Optional[TrafficCounters], observed: TrafficCounters
) -> bool:
    """Return True if either counter went backwards since ``last``."""
    if last is None:
        return False
    return observed.rx_bytes < last.rx_bytes or observed.tx_bytes < last.tx_bytes
