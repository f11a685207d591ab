"""
Booking / Mission Lifecycle
===========================

Booking creation
----------------
1. Validate the four required fields.
2. Estimate fare and distance.
3. Under ``_booking_lock``: pick the first available driver, mark it busy,
   insert the booking and its mission (one store operation).
4. Hand the mission to the scheduler.

Expected failures (missing fields, no free driver, storage down) come back
as ``BookingRejected`` values carrying the original request so the caller
can re-present it.  Nothing is mutated on any of those paths.

Progression
-----------
``advance_mission`` moves a mission one step along ``MISSION_SEQUENCE``.
The store writes the mission, the derived booking status and, when the
mission completes, the driver's release in a single operation.

Concurrency safety
------------------
* ``asyncio.Lock`` serialises assignment within one process.
* ``SELECT ... FOR UPDATE SKIP LOCKED`` in the relational store covers
  several processes sharing one database.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Protocol, Union

from smart_taxis.domain.entities import (
    Booking,
    BookingDraft,
    Driver,
    Mission,
    StatusSummary,
)
from smart_taxis.domain.enums import DriverStatus
from smart_taxis.domain.fare import FareEstimator
from smart_taxis.infrastructure.store import DispatchStore, StorageError

logger = logging.getLogger(__name__)

NO_DRIVERS_MESSAGE = "No drivers available at the moment. Please try again later."
STORAGE_FAILURE_MESSAGE = "We could not complete your booking. Please try again."


class DriverBusy(Exception):
    """The driver is on a mission and cannot change duty by hand."""


class MissionScheduler(Protocol):
    def schedule(self, mission_id: str) -> None: ...


@dataclass
class BookingRequest:
    pickup: Optional[str] = None
    destination: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    LABELS = {
        "pickup": "pickup location",
        "destination": "destination",
        "customer_name": "customer name",
        "customer_phone": "customer phone",
    }

    def missing_fields(self) -> list[str]:
        return [
            name
            for name, value in asdict(self).items()
            if value is None or not str(value).strip()
        ]

    def as_dict(self) -> dict:
        return asdict(self)


class RejectionReason(str, enum.Enum):
    VALIDATION = "validation"
    NO_DRIVERS_AVAILABLE = "no_drivers_available"
    STORAGE_FAILURE = "storage_failure"


@dataclass
class BookingConfirmed:
    booking: Booking
    mission: Mission
    driver: Driver
    ok: bool = True


@dataclass
class BookingRejected:
    reason: RejectionReason
    message: str
    request: BookingRequest
    ok: bool = False


BookingOutcome = Union[BookingConfirmed, BookingRejected]


class DispatchService:
    def __init__(
        self,
        store: DispatchStore,
        estimator: FareEstimator,
        scheduler: Optional[MissionScheduler] = None,
    ):
        self.store = store
        self.estimator = estimator
        self.scheduler = scheduler
        self._booking_lock = asyncio.Lock()

    # ── Commands ──────────────────────────────────────────────────────

    async def request_booking(self, request: BookingRequest) -> BookingOutcome:
        missing = request.missing_fields()
        if missing:
            labels = ", ".join(BookingRequest.LABELS[name] for name in missing)
            return BookingRejected(
                RejectionReason.VALIDATION,
                f"All fields are required (missing: {labels})",
                request,
            )

        estimate = self.estimator.estimate(request.pickup, request.destination)
        draft = BookingDraft(
            customer_name=request.customer_name.strip(),
            customer_phone=request.customer_phone.strip(),
            pickup=request.pickup.strip(),
            destination=request.destination.strip(),
            fare=estimate.fare,
            distance_km=estimate.distance_km,
        )

        try:
            async with self._booking_lock:
                assignment = await self.store.create_assignment(draft)
        except StorageError:
            logger.exception("Booking creation failed in the store")
            return BookingRejected(
                RejectionReason.STORAGE_FAILURE, STORAGE_FAILURE_MESSAGE, request
            )

        if assignment is None:
            logger.info("Booking rejected: no drivers available")
            return BookingRejected(
                RejectionReason.NO_DRIVERS_AVAILABLE, NO_DRIVERS_MESSAGE, request
            )

        logger.info(
            "Booking %s created (fare=%.2f, distance=%.1f km)",
            assignment.booking.id,
            assignment.booking.fare,
            assignment.booking.distance_km,
        )
        logger.info(
            "Driver %s assigned to mission %s",
            assignment.driver.name,
            assignment.mission.id,
        )
        if self.scheduler is not None:
            self.scheduler.schedule(assignment.mission.id)
        return BookingConfirmed(
            booking=assignment.booking,
            mission=assignment.mission,
            driver=assignment.driver,
        )

    async def advance_mission(self, mission_id: str) -> Optional[Mission]:
        """Advance one step.  ``None`` if the mission does not exist."""
        mission = await self.store.get_mission(mission_id)
        if mission is None:
            return None

        mission.advance()
        if not await self.store.record_mission_progress(mission):
            logger.warning("Mission %s disappeared before its update was saved", mission.id)
            return None
        logger.info("Mission %s: status updated to '%s'", mission.id, mission.status.value)
        if mission.is_terminal:
            logger.info("Driver %s is now available", mission.driver_id)
        return mission

    async def resume_unfinished(self) -> int:
        """Hand every non-terminal mission to the scheduler again."""
        if self.scheduler is None:
            return 0
        unfinished = [m for m in await self.store.list_missions() if not m.is_terminal]
        for mission in unfinished:
            self.scheduler.schedule(mission.id)
        return len(unfinished)

    async def set_driver_duty(
        self, driver_id: int, status: DriverStatus
    ) -> Optional[Driver]:
        """Put a driver on (``available``) or off (``offline``) duty.

        Returns ``None`` for an unknown driver.  Busy drivers are left
        alone; their mission releases them.
        """
        if status == DriverStatus.BUSY:
            raise ValueError("Drivers become busy only through a booking")
        async with self._booking_lock:
            driver = await self.store.get_driver(driver_id)
            if driver is None:
                return None
            if driver.status == DriverStatus.BUSY:
                raise DriverBusy(f"Driver {driver_id} is on a mission")
            await self.store.set_driver_status(driver_id, status)
        driver.status = status
        logger.info("Driver %s is now %s", driver.name, status.value)
        return driver

    # ── Queries ───────────────────────────────────────────────────────

    async def status_summary(self) -> StatusSummary:
        return await self.store.status_summary()

    async def get_mission(self, mission_id: str) -> Optional[Mission]:
        return await self.store.get_mission(mission_id)

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        return await self.store.get_booking(booking_id)

    async def list_missions(self) -> list[Mission]:
        return await self.store.list_missions()

    async def list_drivers(self) -> list[Driver]:
        return await self.store.list_drivers()

    async def available_drivers(self) -> list[Driver]:
        return [d for d in await self.store.list_drivers() if d.is_available]

    async def recent_bookings(self, limit: int = 5) -> list[Booking]:
        bookings = await self.store.list_bookings()
        return list(reversed(bookings[-limit:]))
