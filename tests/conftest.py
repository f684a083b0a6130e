"""Shared test fixtures for the router traffic accounting tests.

Provides in-memory SQLite databases for the traffic and lease tables, session
factories and sessions bound to them, and sample rows.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from routerstats.database import LeaseBase, StatsBase
from routerstats.models import CumulativeStat, DhcpLease, MonthlyStat

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed cycle time used across the tests
NOW = datetime(2024, 3, 15, 12, 0, 0)


def _memory_engine():
    """Create an in-memory engine.

    Uses StaticPool so a single connection is shared across threads, which
    is required because polling cycles write from worker threads.
    """
    return create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def stats_engine():
    """Create the traffic database with all tables."""
    engine = _memory_engine()
    StatsBase.metadata.create_all(bind=engine)
    yield engine
    StatsBase.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def leases_engine():
    """Create the lease database with all tables."""
    engine = _memory_engine()
    LeaseBase.metadata.create_all(bind=engine)
    yield engine
    LeaseBase.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def stats_sessions(stats_engine):
    """Session factory bound to the traffic database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=stats_engine)


@pytest.fixture()
def lease_sessions(leases_engine):
    """Session factory bound to the lease database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=leases_engine)


@pytest.fixture()
def stats_session(stats_sessions):
    """Create a traffic database session."""
    session = stats_sessions()
    yield session
    session.close()


@pytest.fixture()
def lease_session(lease_sessions):
    """Create a lease database session."""
    session = lease_sessions()
    yield session
    session.close()


@pytest.fixture()
def sample_stats(stats_session):
    """Insert cumulative and monthly rows for two clients and the WAN.

    All monthly rows were last updated in February 2024, one month before
    NOW, so a reset pass at NOW is due.
    """
    rows = [
        CumulativeStat(id="aa:bb:cc:dd:ee:01", rx_bytes=1000, tx_bytes=500),
        CumulativeStat(id="aa:bb:cc:dd:ee:02", rx_bytes=2000, tx_bytes=800),
        CumulativeStat(id="main_wan", rx_bytes=90000, tx_bytes=30000),
        MonthlyStat(
            id="aa:bb:cc:dd:ee:01",
            rx_bytes=700,
            tx_bytes=300,
            updated_at="2024-02-28 23:30:00",
        ),
        MonthlyStat(
            id="aa:bb:cc:dd:ee:02",
            rx_bytes=1500,
            tx_bytes=600,
            updated_at="2024-02-20 08:00:00",
        ),
        MonthlyStat(
            id="main_wan",
            rx_bytes=80000,
            tx_bytes=25000,
            updated_at="2024-02-29 23:30:00",
        ),
    ]
    stats_session.add_all(rows)
    stats_session.commit()
    return rows


@pytest.fixture()
def sample_leases(lease_session):
    """Insert one existing lease row."""
    lease = DhcpLease(
        mac_address="aa:bb:cc:dd:ee:01",
        lease_end_time=1700000000,
        ip_address="192.168.1.10",
        hostname="laptop",
        client_id="01:aa:bb:cc:dd:ee:01",
        observed_at="2024-03-01 00:00:00",
    )
    lease_session.add(lease)
    lease_session.commit()
    return lease
