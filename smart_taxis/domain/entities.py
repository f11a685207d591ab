"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Mission``: a strictly linear lifecycle
  (ASSIGNED -> EN_ROUTE_PICKUP -> ARRIVED_PICKUP -> PASSENGER_ONBOARD
  -> EN_ROUTE_DESTINATION -> COMPLETED), advanced one step at a time.
- ``Booking`` keeps fare, distance and route fixed; only its status moves,
  and it is always derived from the mission.

Both storage modes hold exactly these records; the relational store maps
them to and from ORM rows in ``infrastructure.mappers``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .enums import (
    BOOKING_STATUS_FOR_MISSION,
    MISSION_SEQUENCE,
    TERMINAL_MISSION_STATUSES,
    BookingStatus,
    DriverStatus,
    MissionStatus,
    UserRole,
)


class InvalidStateTransition(Exception):
    """Raised when a mission status change violates the state machine."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def next_mission_status(status: MissionStatus) -> MissionStatus:
    """Return the status following *status*, or raise if it is terminal."""
    if status in TERMINAL_MISSION_STATUSES:
        raise InvalidStateTransition(f"Mission already {status.value}")
    return MISSION_SEQUENCE[MISSION_SEQUENCE.index(status) + 1]


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Driver:
    id: Optional[int] = None
    name: str = ""
    phone: Optional[str] = None
    status: DriverStatus = DriverStatus.AVAILABLE
    location: str = "Unknown"
    rating: float = 5.0
    created_at: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        return self.status == DriverStatus.AVAILABLE


@dataclass
class BookingDraft:
    """Validated booking request plus its fare, before a driver is chosen."""

    customer_name: str
    customer_phone: str
    pickup: str
    destination: str
    fare: float
    distance_km: float


@dataclass
class Booking:
    id: str = field(default_factory=new_id)
    customer_name: str = ""
    customer_phone: str = ""
    pickup: str = ""
    destination: str = ""
    fare: float = 0.0
    distance_km: float = 0.0
    status: BookingStatus = BookingStatus.ASSIGNED
    driver_id: Optional[int] = None
    driver_name: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Mission:
    id: str = field(default_factory=new_id)
    booking_id: str = ""
    driver_id: Optional[int] = None
    status: MissionStatus = MissionStatus.ASSIGNED
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_MISSION_STATUSES

    @property
    def booking_status(self) -> BookingStatus:
        return BOOKING_STATUS_FOR_MISSION[self.status]

    def advance(self, now: Optional[datetime] = None) -> MissionStatus:
        """Move one step along the lifecycle and stamp the timestamps."""
        self.status = next_mission_status(self.status)
        self.updated_at = now or utcnow()
        if self.status == MissionStatus.PASSENGER_ONBOARD:
            self.started_at = self.updated_at
        elif self.status == MissionStatus.COMPLETED:
            self.ended_at = self.updated_at
        return self.status


@dataclass
class Assignment:
    """Result of pairing a booking with a driver."""

    booking: Booking
    mission: Mission
    driver: Driver


@dataclass
class StatusSummary:
    available_drivers: int = 0
    active_missions: int = 0
    total_bookings: int = 0
    completed_missions: int = 0


@dataclass
class User:
    id: Optional[int] = None
    username: str = ""
    email: str = ""
    password_hash: str = ""
    role: UserRole = UserRole.DRIVER
    driver_id: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class AccessToken:
    token: str
    user_id: int
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at
