"""Database connection and session management.

Traffic accounting and DHCP leases live in two separate databases, so there
are two engines, two session factories and two declarative bases.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from routerstats.config import settings


def _build_engine(database_url: str):
    """Create a SQLAlchemy engine with appropriate configuration."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


stats_engine = _build_engine(settings.STATS_DATABASE_URL)
leases_engine = _build_engine(settings.LEASES_DATABASE_URL)
StatsSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=stats_engine)
LeaseSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=leases_engine)


class StatsBase(DeclarativeBase):
    """Declarative base for the cumulative and monthly traffic tables."""

    pass


class LeaseBase(DeclarativeBase):
    """Declarative base for the DHCP lease table."""

    pass


def init_db(stats_bind=None, leases_bind=None) -> None:
    """Create all tables that don't exist yet.

    Any connection error propagates: without storage there is nothing a
    polling cycle can do.
    """
    # Register the mapped classes on the bases before creating tables.
    import routerstats.models  # noqa: F401

    StatsBase.metadata.create_all(bind=stats_bind or stats_engine)
    LeaseBase.metadata.create_all(bind=leases_bind or leases_engine)


@contextmanager
def session_scope(factory):
    """Provide a transactional scope around a series of operations.

    ``factory`` is the session factory of the database to work on, usually
    ``StatsSessionLocal`` or ``LeaseSessionLocal``. Commits on success, rolls
    back on any exception and always closes the session.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
