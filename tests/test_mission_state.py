"""Unit tests for the mission state machine."""

from datetime import datetime, timedelta, timezone

import pytest

from smart_taxis.domain.entities import (
    InvalidStateTransition,
    Mission,
    next_mission_status,
)
from smart_taxis.domain.enums import (
    MISSION_SEQUENCE,
    BookingStatus,
    MissionStatus,
)


class TestSequence:
    def test_full_lifecycle(self):
        mission = Mission()
        seen = [mission.status]
        while not mission.is_terminal:
            seen.append(mission.advance())
        assert seen == [
            MissionStatus.ASSIGNED,
            MissionStatus.EN_ROUTE_PICKUP,
            MissionStatus.ARRIVED_PICKUP,
            MissionStatus.PASSENGER_ONBOARD,
            MissionStatus.EN_ROUTE_DESTINATION,
            MissionStatus.COMPLETED,
        ]

    def test_five_steps_to_completion(self):
        mission = Mission()
        for _ in range(5):
            mission.advance()
        assert mission.status == MissionStatus.COMPLETED

    def test_cancelled_is_reserved_not_in_sequence(self):
        assert MissionStatus.CANCELLED not in MISSION_SEQUENCE

    @pytest.mark.parametrize(
        "status", [MissionStatus.COMPLETED, MissionStatus.CANCELLED]
    )
    def test_terminal_cannot_advance(self, status):
        with pytest.raises(InvalidStateTransition):
            next_mission_status(status)
        mission = Mission(status=status)
        assert mission.is_terminal
        with pytest.raises(InvalidStateTransition):
            mission.advance()


class TestTimestamps:
    def test_started_at_set_on_boarding(self):
        t0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        mission = Mission(status=MissionStatus.ARRIVED_PICKUP)
        mission.advance(now=t0)
        assert mission.status == MissionStatus.PASSENGER_ONBOARD
        assert mission.started_at == t0
        assert mission.updated_at == t0
        assert mission.ended_at is None

    def test_ended_at_set_on_completion(self):
        t0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        t1 = t0 + timedelta(minutes=7)
        mission = Mission(status=MissionStatus.ARRIVED_PICKUP)
        mission.advance(now=t0)
        mission.advance(now=t0 + timedelta(minutes=1))
        mission.advance(now=t1)
        assert mission.started_at == t0
        assert mission.ended_at == t1

    def test_early_steps_leave_trip_times_empty(self):
        mission = Mission()
        mission.advance()
        mission.advance()
        assert mission.started_at is None
        assert mission.ended_at is None


class TestDerivedBookingStatus:
    @pytest.mark.parametrize(
        "mission_status, booking_status",
        [
            (MissionStatus.ASSIGNED, BookingStatus.ASSIGNED),
            (MissionStatus.EN_ROUTE_PICKUP, BookingStatus.ASSIGNED),
            (MissionStatus.ARRIVED_PICKUP, BookingStatus.ASSIGNED),
            (MissionStatus.PASSENGER_ONBOARD, BookingStatus.IN_PROGRESS),
            (MissionStatus.EN_ROUTE_DESTINATION, BookingStatus.IN_PROGRESS),
            (MissionStatus.COMPLETED, BookingStatus.COMPLETED),
            (MissionStatus.CANCELLED, BookingStatus.CANCELLED),
        ],
    )
    def test_mapping(self, mission_status, booking_status):
        assert Mission(status=mission_status).booking_status == booking_status
