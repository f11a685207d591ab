"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from smart_taxis.domain.enums import (
    BookingStatus,
    DriverStatus,
    MissionStatus,
    UserRole,
)


# ── Requests ──────────────────────────────────────────────────────────


class BookingCreateRequest(BaseModel):
    # Presence is checked by the dispatch service so a missing field comes
    # back as a booking rejection with the request echoed.
    pickup: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)


class DriverStatusUpdate(BaseModel):
    status: DriverStatus


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    username: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None
    role: UserRole = UserRole.DRIVER
    driver_id: Optional[int] = None


# ── Responses ─────────────────────────────────────────────────────────


class DriverResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    status: DriverStatus
    is_available: bool
    location: str
    rating: float

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: str
    customer_name: str
    customer_phone: str
    pickup: str
    destination: str
    fare: float
    distance_km: float
    status: BookingStatus
    driver_id: Optional[int] = None
    driver_name: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MissionResponse(BaseModel):
    id: str
    booking_id: str
    driver_id: Optional[int] = None
    status: MissionStatus
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingConfirmationResponse(BaseModel):
    booking: BookingResponse
    driver: DriverResponse
    mission_id: str


class BookingRejectionResponse(BaseModel):
    detail: str
    reason: str
    request: BookingCreateRequest


class StatusResponse(BaseModel):
    available_drivers: int = Field(alias="availableDrivers")
    active_missions: int = Field(alias="activeMissions")
    total_bookings: int = Field(alias="totalBookings")
    completed_missions: int = Field(alias="completedMissions")

    model_config = {"from_attributes": True, "populate_by_name": True}


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: UserRole
    driver_id: Optional[int] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class BookingStats(BaseModel):
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    total_revenue: float
    completion_rate: int


class DailyTrend(BaseModel):
    date: str
    count: int
    revenue: float


class DriverPerformance(BaseModel):
    id: int
    name: str
    status: str
    total_bookings: int
    completed_bookings: int
    revenue: float
    completion_rate: int


class StatusCount(BaseModel):
    status: str
    count: int


class HourCount(BaseModel):
    hour: int
    count: int


class DashboardResponse(BaseModel):
    window_days: int
    booking_stats: BookingStats
    daily_trends: list[DailyTrend]
    driver_performance: list[DriverPerformance]
    status_distribution: list[StatusCount]
    peak_hours: list[HourCount]


class HealthResponse(BaseModel):
    status: str = "ok"
    storage: str


class ErrorResponse(BaseModel):
    detail: str
