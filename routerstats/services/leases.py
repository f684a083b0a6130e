"""DHCP lease store updates."""

import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy.orm import Session

from routerstats import repository
from routerstats.schemas import LeaseRecord

logger = logging.getLogger(__name__)


def upsert_leases(
    session: Session, leases: Sequence[LeaseRecord], observed_at: datetime
) -> int:
    """Replace or insert a batch of leases keyed by MAC address.

    All leases in the batch share ``observed_at``. The batch is applied
    inside the caller's transaction, so it commits as a whole or not at all.
    An empty batch does not touch the session.

    Returns:
        The number of leases written.
    """
    if not leases:
        return 0

    for lease in leases:
        repository.upsert_lease(session, lease, observed_at)
    logger.debug("Upserted %d DHCP leases", len(leases))
    return len(leases)
