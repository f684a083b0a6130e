"""Pydantic schemas for parsed gateway records, accounting state and reports."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

# Largest value a signed 64-bit INTEGER column can hold.
MAX_BYTE_COUNT = 2**63 - 1


class TrafficCounters(BaseModel):
    """A pair of byte counters for one entity.

    Used both for absolute counters as reported by a router and for the
    incremental deltas computed from them.
    """

    model_config = ConfigDict(frozen=True)

    rx_bytes: int = Field(..., ge=0, le=MAX_BYTE_COUNT, description="Received bytes")
    tx_bytes: int = Field(..., ge=0, le=MAX_BYTE_COUNT, description="Transmitted bytes")


class ClientTraffic(TrafficCounters):
    """Absolute traffic counters reported for one wireless client."""

    mac_address: str = Field(..., description="Lowercased client MAC address")


class MonthlyTotal(BaseModel):
    """Traffic accumulated for one entity since the start of the month."""

    model_config = ConfigDict(frozen=True)

    rx_bytes: int = Field(..., ge=0, description="Received bytes this month")
    tx_bytes: int = Field(..., ge=0, description="Transmitted bytes this month")
    updated_at: datetime = Field(..., description="Time of the last mutation")


class LeaseRecord(BaseModel):
    """A DHCP lease as reported by a router."""

    mac_address: str = Field(..., description="Lowercased MAC address")
    ip_address: str = Field(..., description="Leased IPv4 address")
    hostname: str = Field(..., description="Client hostname or 'Unknown'")
    lease_end_time: int = Field(..., description="Lease expiry (epoch seconds)")
    client_id: str = Field(..., description="DHCP client identifier")


class RouterConfig(BaseModel):
    """Text endpoints of one router. An empty URL disables that signal."""

    ap_stats: str = Field("", description="Per-client wireless traffic dump URL")
    wan_stats: str = Field("", description="WAN interface traffic dump URL")
    dhcp_leases: str = Field("", description="DHCP lease dump URL")


class RouterReport(BaseModel):
    """Outcome of polling a single router during one cycle."""

    router: str
    clients_updated: int = 0
    wan_updated: bool = False
    leases_upserted: int = 0
    errors: List[str] = Field(default_factory=list)


class CycleReport(BaseModel):
    """Summary of one complete polling cycle."""

    started_at: datetime
    routers: int = 0
    monthly_rows_reset: int = 0
    entities_updated: int = 0
    leases_upserted: int = 0
    errors: List[str] = Field(default_factory=list)

    def add(self, report: RouterReport) -> None:
        """Fold a router's outcome into the cycle totals."""
        self.routers += 1
        self.entities_updated += report.clients_updated + int(report.wan_updated)
        self.leases_upserted += report.leases_upserted
        self.errors.extend(report.errors)
