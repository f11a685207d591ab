"""Translate between ORM rows and domain entities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .models import (
    AccessTokenModel,
    BookingModel,
    DriverModel,
    MissionModel,
    UserModel,
)
from smart_taxis.domain.entities import AccessToken, Booking, Driver, Mission, User


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def driver_to_domain(row: DriverModel) -> Driver:
    return Driver(
        id=row.id,
        name=row.name,
        phone=row.phone,
        status=row.status,
        location=row.current_location or "Unknown",
        rating=row.rating if row.rating is not None else 5.0,
        created_at=_aware(row.created_at),
    )


def driver_to_row(driver: Driver) -> DriverModel:
    return DriverModel(
        name=driver.name,
        phone=driver.phone,
        status=driver.status,
        current_location=driver.location,
        rating=driver.rating,
    )


def booking_to_domain(row: BookingModel) -> Booking:
    return Booking(
        id=row.id,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        pickup=row.pickup_location,
        destination=row.dropoff_location,
        fare=float(row.fare),
        distance_km=float(row.distance_km),
        status=row.status,
        driver_id=row.driver_id,
        driver_name=row.driver.name if row.driver is not None else None,
        created_at=_aware(row.created_at),
    )


def booking_to_row(booking: Booking) -> BookingModel:
    return BookingModel(
        id=booking.id,
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        pickup_location=booking.pickup,
        dropoff_location=booking.destination,
        fare=booking.fare,
        distance_km=booking.distance_km,
        status=booking.status,
        driver_id=booking.driver_id,
        created_at=booking.created_at,
    )


def mission_to_domain(row: MissionModel) -> Mission:
    return Mission(
        id=row.id,
        booking_id=row.booking_id,
        driver_id=row.driver_id,
        status=row.status,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        started_at=_aware(row.start_time),
        ended_at=_aware(row.end_time),
    )


def mission_to_row(mission: Mission) -> MissionModel:
    return MissionModel(
        id=mission.id,
        booking_id=mission.booking_id,
        driver_id=mission.driver_id,
        status=mission.status,
        start_time=mission.started_at,
        end_time=mission.ended_at,
        created_at=mission.created_at,
        updated_at=mission.updated_at,
    )


def apply_mission_progress(row: MissionModel, mission: Mission) -> None:
    """Copy the mutable mission fields onto an existing row."""
    row.status = mission.status
    row.updated_at = mission.updated_at
    row.start_time = mission.started_at
    row.end_time = mission.ended_at


def user_to_domain(row: UserModel) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        driver_id=row.driver_id,
        created_at=_aware(row.created_at),
    )


def user_to_row(user: User) -> UserModel:
    return UserModel(
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
        driver_id=user.driver_id,
        created_at=user.created_at,
    )


def token_to_domain(row: AccessTokenModel) -> AccessToken:
    return AccessToken(
        token=row.token,
        user_id=row.user_id,
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
    )


def token_to_row(token: AccessToken) -> AccessTokenModel:
    return AccessTokenModel(
        token=token.token,
        user_id=token.user_id,
        expires_at=token.expires_at,
        created_at=token.created_at,
    )
