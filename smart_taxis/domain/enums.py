"""Domain enumerations and state-transition rules."""

import enum


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MissionStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    EN_ROUTE_PICKUP = "en_route_pickup"
    ARRIVED_PICKUP = "arrived_pickup"
    PASSENGER_ONBOARD = "passenger_onboard"
    EN_ROUTE_DESTINATION = "en_route_destination"
    COMPLETED = "completed"
    CANCELLED = "cancelled"  # reserved, never produced by the simulation


# Linear mission lifecycle: each status advances to the next entry.
MISSION_SEQUENCE: tuple[MissionStatus, ...] = (
    MissionStatus.ASSIGNED,
    MissionStatus.EN_ROUTE_PICKUP,
    MissionStatus.ARRIVED_PICKUP,
    MissionStatus.PASSENGER_ONBOARD,
    MissionStatus.EN_ROUTE_DESTINATION,
    MissionStatus.COMPLETED,
)

TERMINAL_MISSION_STATUSES = frozenset(
    {MissionStatus.COMPLETED, MissionStatus.CANCELLED}
)

# Booking status derived from the status of its mission
BOOKING_STATUS_FOR_MISSION: dict[MissionStatus, BookingStatus] = {
    MissionStatus.ASSIGNED: BookingStatus.ASSIGNED,
    MissionStatus.EN_ROUTE_PICKUP: BookingStatus.ASSIGNED,
    MissionStatus.ARRIVED_PICKUP: BookingStatus.ASSIGNED,
    MissionStatus.PASSENGER_ONBOARD: BookingStatus.IN_PROGRESS,
    MissionStatus.EN_ROUTE_DESTINATION: BookingStatus.IN_PROGRESS,
    MissionStatus.COMPLETED: BookingStatus.COMPLETED,
    MissionStatus.CANCELLED: BookingStatus.CANCELLED,
}


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    DRIVER = "driver"


class Capability(str, enum.Enum):
    VIEW_DRIVERS = "view_drivers"
    VIEW_MISSIONS = "view_missions"
    VIEW_DASHBOARD = "view_dashboard"
    MANAGE_DRIVERS = "manage_drivers"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.ADMIN: frozenset(Capability),
    UserRole.DRIVER: frozenset({Capability.VIEW_DRIVERS, Capability.VIEW_MISSIONS}),
}
