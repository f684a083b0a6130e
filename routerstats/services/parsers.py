"""Parsers for the text dumps served by the routers.

Each router exposes three plain-text endpoints:

* per-client wireless traffic, one ``<mac> <rx> <tx>`` line per client;
* WAN interface traffic, a free-form page containing ``wan: <rx> <tx>``;
* DHCP leases in dnsmasq lease-file format.

All parsers are pure functions. A malformed line is logged and skipped so
that one bad line never costs the rest of the dump.
"""

import logging
import re
from typing import List, Optional

from routerstats.models import WAN_ENTITY_ID
from routerstats.schemas import MAX_BYTE_COUNT, ClientTraffic, LeaseRecord, TrafficCounters

logger = logging.getLogger(__name__)

UNKNOWN_HOSTNAME = "Unknown"

_BYTE_COUNT_PATTERN = re.compile(r"\d+", re.ASCII)
_WAN_PATTERN = re.compile(r"wan:\s+(\d+)\s+(\d+)", re.ASCII)
_LEASE_PATTERN = re.compile(
    r"^(\d+)\s+"                      # lease end time
    r"([0-9a-fA-F:]{17})\s+"          # MAC address
    r"(\d{1,3}(?:\.\d{1,3}){3})\s+"   # IPv4 address
    r"(.+?)\s+"                       # hostname, may contain spaces
    r"([0-9a-fA-F:]+|\*)$",           # client id
    re.ASCII,
)


class WanPatternNotFoundError(ValueError):
    """Raised when a non-empty WAN dump has no ``wan: <rx> <tx>`` line."""


def _parse_byte_count(value: str) -> int:
    """Convert a counter field to an int, rejecting signs, non-digits and
    values that do not fit a signed 64-bit integer."""
    if not _BYTE_COUNT_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid byte count '{value}'")
    count = int(value)
    if count > MAX_BYTE_COUNT:
        raise ValueError(f"Byte count '{value}' out of range")
    return count


def parse_client_traffic(data: Optional[str]) -> List[ClientTraffic]:
    """Parse the per-client wireless traffic dump.

    Args:
        data: Raw text, one ``<mac> <rx> <tx>`` line per client.

    Returns:
        Parsed records in input order, MAC addresses lowercased. Empty input
        yields an empty list.
    """
    if not data:
        return []

    clients = []
    for line in data.strip().splitlines():
        parts = line.split()
        if not parts:
            continue
        if len(parts) != 3:
            logger.warning("Skipping malformed client traffic line: %r", line)
            continue

        mac_address = parts[0].lower()
        if mac_address == WAN_ENTITY_ID:
            logger.warning("Skipping client traffic line with reserved id: %r", line)
            continue

        try:
            rx_bytes = _parse_byte_count(parts[1])
            tx_bytes = _parse_byte_count(parts[2])
        except ValueError as e:
            logger.warning("Skipping client traffic line %r: %s", line, e)
            continue

        clients.append(
            ClientTraffic(mac_address=mac_address, rx_bytes=rx_bytes, tx_bytes=tx_bytes)
        )
    return clients


def parse_wan_traffic(data: Optional[str]) -> Optional[TrafficCounters]:
    """Parse the WAN interface traffic dump.

    Args:
        data: Raw text containing a ``wan: <rx> <tx>`` line somewhere.

    Returns:
        The WAN counters, or None when the dump is empty.

    Raises:
        WanPatternNotFoundError: If the dump is non-empty but has no WAN line.
        ValueError: If a WAN counter does not fit a signed 64-bit integer.
    """
    if not data or not data.strip():
        return None

    match = _WAN_PATTERN.search(data)
    if match is None:
        raise WanPatternNotFoundError(
            f"WAN stats pattern not found in data: {data[:200]!r}"
        )
    return TrafficCounters(
        rx_bytes=_parse_byte_count(match.group(1)),
        tx_bytes=_parse_byte_count(match.group(2)),
    )


def _normalize_hostname(hostname: str) -> str:
    hostname = hostname.strip()
    if hostname == "*":
        return UNKNOWN_HOSTNAME
    # Routers append annotations after the name; only the name is kept.
    return hostname.split()[0]


def parse_dhcp_leases(data: Optional[str]) -> List[LeaseRecord]:
    """Parse a DHCP lease dump.

    Each line is ``<lease_end> <mac> <ip> <hostname...> <client_id>``.
    The hostname ``*`` becomes ``Unknown``; any other hostname is cut to its
    first whitespace-delimited token.

    Args:
        data: Raw lease text.

    Returns:
        Parsed leases in input order, MAC addresses lowercased.
    """
    if not data:
        return []

    leases = []
    for line in data.strip().splitlines():
        if not line.strip():
            continue
        match = _LEASE_PATTERN.match(line.strip())
        if match is None:
            logger.warning("Skipping malformed DHCP lease line: %r", line)
            continue

        lease_end_time, mac_address, ip_address, hostname, client_id = match.groups()
        leases.append(
            LeaseRecord(
                mac_address=mac_address.lower(),
                ip_address=ip_address,
                hostname=_normalize_hostname(hostname),
                lease_end_time=int(lease_end_time),
                client_id=client_id,
            )
        )
    return leases
