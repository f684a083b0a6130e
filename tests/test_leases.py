"""Tests for the DHCP lease store updater."""

from datetime import datetime

from sqlalchemy import select

from routerstats.models import DhcpLease
from routerstats.schemas import LeaseRecord
from routerstats.services.leases import upsert_leases

from conftest import NOW


def lease(mac, ip="192.168.1.20", hostname="host", lease_end_time=1700003600):
    return LeaseRecord(
        mac_address=mac,
        ip_address=ip,
        hostname=hostname,
        lease_end_time=lease_end_time,
        client_id="01:" + mac,
    )


def _dump(session):
    """All lease rows as plain tuples for exact comparison."""
    rows = session.execute(select(DhcpLease).order_by(DhcpLease.mac_address)).scalars()
    return [
        (r.mac_address, r.lease_end_time, r.ip_address, r.hostname, r.client_id, r.observed_at)
        for r in rows
    ]


class TestUpsertLeases:
    """Tests for upsert_leases."""

    def test_inserts_new_leases(self, lease_session):
        count = upsert_leases(
            lease_session, [lease("aa:bb:cc:dd:ee:02"), lease("aa:bb:cc:dd:ee:03")], NOW
        )
        lease_session.commit()
        assert count == 2
        assert len(_dump(lease_session)) == 2

    def test_replaces_existing_lease(self, lease_session, sample_leases):
        """A newer observation fully replaces the stored lease."""
        upsert_leases(
            lease_session,
            [lease("aa:bb:cc:dd:ee:01", ip="192.168.1.99", hostname="desktop")],
            NOW,
        )
        lease_session.commit()
        rows = _dump(lease_session)
        assert rows == [
            (
                "aa:bb:cc:dd:ee:01",
                1700003600,
                "192.168.1.99",
                "desktop",
                "01:aa:bb:cc:dd:ee:01",
                "2024-03-15 12:00:00",
            )
        ]

    def test_batch_shares_one_timestamp(self, lease_session):
        upsert_leases(
            lease_session,
            [lease("aa:bb:cc:dd:ee:0%d" % i) for i in range(1, 6)],
            NOW,
        )
        lease_session.commit()
        assert {row[5] for row in _dump(lease_session)} == {"2024-03-15 12:00:00"}

    def test_empty_batch_leaves_table_unchanged(self, lease_session, sample_leases):
        """An empty batch must not touch any row or timestamp."""
        before = _dump(lease_session)
        count = upsert_leases(lease_session, [], datetime(2024, 4, 1))
        lease_session.commit()
        assert count == 0
        assert _dump(lease_session) == before
        assert not lease_session.new and not lease_session.dirty

    def test_disappeared_leases_are_kept(self, lease_session, sample_leases):
        """Leases missing from a later dump are not deleted."""
        upsert_leases(lease_session, [lease("aa:bb:cc:dd:ee:09")], NOW)
        lease_session.commit()
        assert [row[0] for row in _dump(lease_session)] == [
            "aa:bb:cc:dd:ee:01",
            "aa:bb:cc:dd:ee:09",
        ]

    def test_duplicate_mac_in_batch_last_wins(self, lease_session):
        upsert_leases(
            lease_session,
            [
                lease("aa:bb:cc:dd:ee:07", ip="192.168.1.1"),
                lease("aa:bb:cc:dd:ee:07", ip="192.168.1.2"),
            ],
            NOW,
        )
        lease_session.commit()
        rows = _dump(lease_session)
        assert len(rows) == 1
        assert rows[0][2] == "192.168.1.2"
