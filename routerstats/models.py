"""SQLAlchemy ORM models for the traffic and lease databases.

Table and column names are read directly by the external query layer and
must not change.
"""

from sqlalchemy import BigInteger, Column, String

from routerstats.database import LeaseBase, StatsBase

# Reserved entity id for the WAN uplink; never a valid MAC address.
WAN_ENTITY_ID = "main_wan"

# Timestamps are stored as local wall-clock text.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class CumulativeStat(StatsBase):
    """Last absolute counter values observed for an entity.

    Attributes:
        id: Entity identifier (lowercase MAC address or ``main_wan``).
        rx_bytes: Last reported cumulative received bytes.
        tx_bytes: Last reported cumulative transmitted bytes.
    """

    __tablename__ = "cumulative_stats"

    id = Column(String, primary_key=True)
    rx_bytes = Column(BigInteger, nullable=False, default=0)
    tx_bytes = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return (
            f"<CumulativeStat(id={self.id!r}, "
            f"rx_bytes={self.rx_bytes}, tx_bytes={self.tx_bytes})>"
        )


class MonthlyStat(StatsBase):
    """Traffic accumulated for an entity since the start of the month.

    Attributes:
        id: Entity identifier (lowercase MAC address or ``main_wan``).
        rx_bytes: Received bytes accumulated this month.
        tx_bytes: Transmitted bytes accumulated this month.
        updated_at: Time of the last mutation, stored in the ``timestamp``
                    column as ``YYYY-MM-DD HH:MM:SS``.
    """

    __tablename__ = "monthly_stats"

    id = Column(String, primary_key=True)
    rx_bytes = Column(BigInteger, nullable=False, default=0)
    tx_bytes = Column(BigInteger, nullable=False, default=0)
    updated_at = Column("timestamp", String(19), nullable=False)

    def __repr__(self):
        return (
            f"<MonthlyStat(id={self.id!r}, rx_bytes={self.rx_bytes}, "
            f"tx_bytes={self.tx_bytes}, updated_at={self.updated_at!r})>"
        )


class DhcpLease(LeaseBase):
    """Most recently observed DHCP lease for a MAC address.

    Attributes:
        mac_address: Lowercase MAC address (primary key).
        lease_end_time: Lease expiry in epoch seconds.
        ip_address: Leased IPv4 address.
        hostname: Client hostname, ``Unknown`` when the router reported none.
        client_id: DHCP client identifier.
        observed_at: Time of the cycle that last saw this lease, stored in the
                     ``timestamp`` column.
    """

    __tablename__ = "dhcp_leases"

    mac_address = Column(String(17), primary_key=True)
    lease_end_time = Column(BigInteger, nullable=False)
    ip_address = Column(String, nullable=False)
    hostname = Column(String, nullable=False)
    client_id = Column(String, nullable=False)
    observed_at = Column("timestamp", String(19), nullable=False)

    def __repr__(self):
        return (
            f"<DhcpLease(mac_address={self.mac_address!r}, "
            f"ip_address={self.ip_address!r}, hostname={self.hostname!r})>"
        )
