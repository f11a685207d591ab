"""
Storage contract tests.

Every test runs against both the in-memory store and the relational store
(SQLite), so the two behave the same way.
"""

from datetime import timedelta

import pytest

from smart_taxis.domain.entities import AccessToken, BookingDraft, User, utcnow
from smart_taxis.domain.enums import (
    BookingStatus,
    DriverStatus,
    MissionStatus,
    UserRole,
)
from smart_taxis.infrastructure.fixtures import DEMO_DRIVERS, seed_drivers


def _draft(name: str = "Alice Cooper") -> BookingDraft:
    return BookingDraft(
        customer_name=name,
        customer_phone="5551234567",
        pickup="Central Station",
        destination="Hospital",
        fare=30.0,
        distance_km=10.0,
    )


class TestDriverRegistry:
    @pytest.mark.asyncio
    async def test_seeded_registry(self, store):
        drivers = await store.list_drivers()
        assert [d.name for d in drivers] == [d["name"] for d in DEMO_DRIVERS]
        assert [d.id for d in drivers] == sorted(d.id for d in drivers)
        assert sum(d.is_available for d in drivers) == 4

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, store):
        assert await seed_drivers(store) == 0
        assert len(await store.list_drivers()) == 5

    @pytest.mark.asyncio
    async def test_first_available_in_registry_order(self, store):
        driver = await store.find_available_driver()
        assert driver.name == "John Smith"

    @pytest.mark.asyncio
    async def test_set_status(self, store):
        first = (await store.list_drivers())[0]
        assert await store.set_driver_status(first.id, DriverStatus.OFFLINE)
        assert (await store.get_driver(first.id)).status == DriverStatus.OFFLINE
        assert (await store.find_available_driver()).name == "Maria Garcia"

    @pytest.mark.asyncio
    async def test_set_status_unknown_driver(self, store):
        assert await store.set_driver_status(999, DriverStatus.OFFLINE) is False
        assert await store.get_driver(999) is None


class TestAssignments:
    @pytest.mark.asyncio
    async def test_create_assignment(self, store):
        assignment = await store.create_assignment(_draft())

        assert assignment.driver.name == "John Smith"
        assert assignment.driver.status == DriverStatus.BUSY
        assert assignment.booking.status == BookingStatus.ASSIGNED
        assert assignment.booking.driver_id == assignment.driver.id
        assert assignment.booking.driver_name == "John Smith"
        assert assignment.mission.booking_id == assignment.booking.id
        assert assignment.mission.status == MissionStatus.ASSIGNED

        stored = await store.get_booking(assignment.booking.id)
        assert stored.fare == 30.0
        assert stored.distance_km == 10.0
        assert stored.driver_name == "John Smith"
        driver = await store.get_driver(assignment.driver.id)
        assert driver.status == DriverStatus.BUSY

    @pytest.mark.asyncio
    async def test_assignments_take_drivers_in_order(self, store):
        names = []
        for i in range(4):
            names.append((await store.create_assignment(_draft(f"C{i}"))).driver.name)
        assert names == ["John Smith", "Maria Garcia", "Lisa Chen", "David Wilson"]

    @pytest.mark.asyncio
    async def test_no_driver_leaves_no_trace(self, store):
        for i in range(4):
            await store.create_assignment(_draft(f"C{i}"))
        assert await store.create_assignment(_draft("late")) is None
        assert len(await store.list_bookings()) == 4
        assert len(await store.list_missions()) == 4

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        assignment = await store.create_assignment(_draft())
        mission = await store.get_mission(assignment.mission.id)
        mission.advance()
        again = await store.get_mission(assignment.mission.id)
        assert again.status == MissionStatus.ASSIGNED

    @pytest.mark.asyncio
    async def test_list_bookings_since(self, store):
        assignment = await store.create_assignment(_draft())
        created = assignment.booking.created_at
        assert len(await store.list_bookings(since=created - timedelta(minutes=1))) == 1
        assert await store.list_bookings(since=created + timedelta(minutes=1)) == []


class TestMissionProgress:
    @pytest.mark.asyncio
    async def test_progress_syncs_booking(self, store):
        assignment = await store.create_assignment(_draft())
        mission = assignment.mission
        for _ in range(3):
            mission.advance()
        assert await store.record_mission_progress(mission)

        booking = await store.get_booking(assignment.booking.id)
        assert booking.status == BookingStatus.IN_PROGRESS
        stored = await store.get_mission(mission.id)
        assert stored.status == MissionStatus.PASSENGER_ONBOARD
        assert stored.started_at is not None
        assert (await store.get_driver(assignment.driver.id)).status == DriverStatus.BUSY

    @pytest.mark.asyncio
    async def test_completion_releases_driver(self, store):
        assignment = await store.create_assignment(_draft())
        mission = assignment.mission
        for _ in range(5):
            mission.advance()
        await store.record_mission_progress(mission)

        assert (await store.get_driver(assignment.driver.id)).status == DriverStatus.AVAILABLE
        booking = await store.get_booking(assignment.booking.id)
        assert booking.status == BookingStatus.COMPLETED
        stored = await store.get_mission(mission.id)
        assert stored.ended_at is not None

    @pytest.mark.asyncio
    async def test_unknown_mission(self, store):
        assignment = await store.create_assignment(_draft())
        mission = assignment.mission
        mission.id = "does-not-exist"
        assert await store.record_mission_progress(mission) is False


class TestStatusSummary:
    @pytest.mark.asyncio
    async def test_counts(self, store):
        first = await store.create_assignment(_draft("one"))
        await store.create_assignment(_draft("two"))
        mission = first.mission
        for _ in range(5):
            mission.advance()
        await store.record_mission_progress(mission)

        summary = await store.status_summary()
        assert summary.available_drivers == 3
        assert summary.active_missions == 1
        assert summary.total_bookings == 2
        assert summary.completed_missions == 1


class TestUsersAndTokens:
    @pytest.mark.asyncio
    async def test_add_and_find_user(self, store):
        user = await store.add_user(
            User(username="maria", email="maria@example.com", password_hash="x")
        )
        assert user.id is not None
        assert (await store.find_user("maria")).id == user.id
        assert (await store.find_user("maria@example.com")).id == user.id
        assert (await store.get_user(user.id)).role == UserRole.DRIVER
        assert await store.find_user("nobody") is None

    @pytest.mark.asyncio
    async def test_tokens(self, store):
        user = await store.add_user(
            User(username="maria", email="maria@example.com", password_hash="x")
        )
        now = utcnow()
        await store.save_token(
            AccessToken(token="ab" * 32, user_id=user.id, expires_at=now + timedelta(hours=1))
        )
        token = await store.get_token("ab" * 32)
        assert token.user_id == user.id
        assert not token.is_expired()
        assert await store.get_token("cd" * 32) is None
