"""
Storage abstraction shared by the dispatch, auth and analytics services.

Two implementations satisfy the same ``DispatchStore`` contract:

* ``SqlAlchemyStore`` -- durable, one transaction per operation.
* ``InMemoryStore``   -- process-lifetime fallback; records are lost on
  restart.

Both return detached copies of the domain entities, so a caller mutating
a returned ``Mission`` changes nothing until it calls
``record_mission_progress``.

``create_assignment`` is the one compound write: it picks the first
available driver, marks it busy and inserts the booking and its mission
as a single unit.  Either all of it happens or none of it does.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from . import mappers
from .database import Base, create_engine, create_session_factory
from .repositories import (
    AccessTokenRepository,
    BookingRepository,
    DriverRepository,
    MissionRepository,
    UserRepository,
)
from smart_taxis.config import Settings
from smart_taxis.domain.entities import (
    AccessToken,
    Assignment,
    Booking,
    BookingDraft,
    Driver,
    Mission,
    StatusSummary,
    User,
    utcnow,
)
from smart_taxis.domain.enums import BookingStatus, DriverStatus, MissionStatus

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The underlying store could not complete an operation."""


class DispatchStore(ABC):
    kind: str = "abstract"

    async def open(self) -> None:
        """Prepare the store for use (connect, create tables)."""

    async def close(self) -> None:
        """Release any held resources."""

    # ── Driver registry ───────────────────────────────────────────────

    @abstractmethod
    async def add_driver(self, driver: Driver) -> Driver: ...

    @abstractmethod
    async def get_driver(self, driver_id: int) -> Optional[Driver]: ...

    @abstractmethod
    async def list_drivers(self) -> list[Driver]: ...

    async def find_available_driver(self) -> Optional[Driver]:
        """First available driver in registry order."""
        for driver in await self.list_drivers():
            if driver.is_available:
                return driver
        return None

    @abstractmethod
    async def set_driver_status(self, driver_id: int, status: DriverStatus) -> bool:
        """Returns ``False`` if *driver_id* is unknown."""

    # ── Bookings & missions ───────────────────────────────────────────

    @abstractmethod
    async def create_assignment(self, draft: BookingDraft) -> Optional[Assignment]:
        """Pair *draft* with the first available driver, or return ``None``."""

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[Booking]: ...

    @abstractmethod
    async def list_bookings(self, since: Optional[datetime] = None) -> list[Booking]:
        """Bookings ordered by creation time, optionally from *since* on."""

    @abstractmethod
    async def get_mission(self, mission_id: str) -> Optional[Mission]: ...

    @abstractmethod
    async def list_missions(self) -> list[Mission]: ...

    @abstractmethod
    async def record_mission_progress(self, mission: Mission) -> bool:
        """Persist *mission*'s status, sync its booking and release the
        driver once the mission is terminal.  ``False`` if unknown."""

    @abstractmethod
    async def status_summary(self) -> StatusSummary: ...

    # ── Users & tokens ────────────────────────────────────────────────

    @abstractmethod
    async def add_user(self, user: User) -> User: ...

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def find_user(self, login: str) -> Optional[User]:
        """Look a user up by username or email."""

    @abstractmethod
    async def save_token(self, token: AccessToken) -> None: ...

    @abstractmethod
    async def get_token(self, token: str) -> Optional[AccessToken]: ...


def _new_assignment(draft: BookingDraft, driver: Driver) -> Assignment:
    booking = Booking(
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        pickup=draft.pickup,
        destination=draft.destination,
        fare=draft.fare,
        distance_km=draft.distance_km,
        status=BookingStatus.ASSIGNED,
        driver_id=driver.id,
        driver_name=driver.name,
    )
    mission = Mission(
        booking_id=booking.id,
        driver_id=driver.id,
        status=MissionStatus.ASSIGNED,
        created_at=booking.created_at,
        updated_at=booking.created_at,
    )
    return Assignment(booking=booking, mission=mission, driver=driver)


# ── In-memory fallback ────────────────────────────────────────────────


class InMemoryStore(DispatchStore):
    """Keeps every record in process memory.

    No coroutine here awaits between reading and writing shared state, so
    each operation is atomic with respect to the event loop.
    """

    kind = "memory"

    def __init__(self) -> None:
        self._drivers: list[Driver] = []
        self._bookings: dict[str, Booking] = {}
        self._missions: dict[str, Mission] = {}
        self._users: list[User] = []
        self._tokens: dict[str, AccessToken] = {}

    def _driver(self, driver_id: Optional[int]) -> Optional[Driver]:
        return next((d for d in self._drivers if d.id == driver_id), None)

    async def add_driver(self, driver: Driver) -> Driver:
        stored = copy.copy(driver)
        stored.id = max((d.id for d in self._drivers), default=0) + 1
        stored.created_at = stored.created_at or utcnow()
        self._drivers.append(stored)
        return copy.copy(stored)

    async def get_driver(self, driver_id: int) -> Optional[Driver]:
        driver = self._driver(driver_id)
        return copy.copy(driver) if driver else None

    async def list_drivers(self) -> list[Driver]:
        return [copy.copy(d) for d in self._drivers]

    async def set_driver_status(self, driver_id: int, status: DriverStatus) -> bool:
        driver = self._driver(driver_id)
        if driver is None:
            return False
        driver.status = status
        return True

    async def create_assignment(self, draft: BookingDraft) -> Optional[Assignment]:
        driver = next((d for d in self._drivers if d.is_available), None)
        if driver is None:
            return None

        assignment = _new_assignment(draft, copy.copy(driver))
        self._bookings[assignment.booking.id] = copy.copy(assignment.booking)
        self._missions[assignment.mission.id] = copy.copy(assignment.mission)
        driver.status = DriverStatus.BUSY
        assignment.driver.status = DriverStatus.BUSY
        return assignment

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return copy.copy(booking) if booking else None

    async def list_bookings(self, since: Optional[datetime] = None) -> list[Booking]:
        bookings = sorted(self._bookings.values(), key=lambda b: b.created_at)
        return [
            copy.copy(b) for b in bookings if since is None or b.created_at >= since
        ]

    async def get_mission(self, mission_id: str) -> Optional[Mission]:
        mission = self._missions.get(mission_id)
        return copy.copy(mission) if mission else None

    async def list_missions(self) -> list[Mission]:
        missions = sorted(self._missions.values(), key=lambda m: m.created_at)
        return [copy.copy(m) for m in missions]

    async def record_mission_progress(self, mission: Mission) -> bool:
        if mission.id not in self._missions:
            return False
        self._missions[mission.id] = copy.copy(mission)
        booking = self._bookings.get(mission.booking_id)
        if booking is not None:
            booking.status = mission.booking_status
        if mission.is_terminal:
            driver = self._driver(mission.driver_id)
            if driver is not None:
                driver.status = DriverStatus.AVAILABLE
        return True

    async def status_summary(self) -> StatusSummary:
        missions = self._missions.values()
        return StatusSummary(
            available_drivers=sum(1 for d in self._drivers if d.is_available),
            active_missions=sum(1 for m in missions if not m.is_terminal),
            total_bookings=len(self._bookings),
            completed_missions=sum(
                1 for m in missions if m.status == MissionStatus.COMPLETED
            ),
        )

    async def add_user(self, user: User) -> User:
        stored = copy.copy(user)
        stored.id = max((u.id for u in self._users), default=0) + 1
        self._users.append(stored)
        return copy.copy(stored)

    async def get_user(self, user_id: int) -> Optional[User]:
        user = next((u for u in self._users if u.id == user_id), None)
        return copy.copy(user) if user else None

    async def find_user(self, login: str) -> Optional[User]:
        user = next(
            (u for u in self._users if login in (u.username, u.email)), None
        )
        return copy.copy(user) if user else None

    async def save_token(self, token: AccessToken) -> None:
        self._tokens[token.token] = copy.copy(token)

    async def get_token(self, token: str) -> Optional[AccessToken]:
        stored = self._tokens.get(token)
        return copy.copy(stored) if stored else None


# ── Relational store ──────────────────────────────────────────────────


class SqlAlchemyStore(DispatchStore):
    kind = "database"

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAlchemyStore":
        return cls(create_engine(database_url))

    async def open(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Cannot open database: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Session in a transaction; commit on success, rollback on error."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(str(exc)) from exc

    async def add_driver(self, driver: Driver) -> Driver:
        async with self._transaction() as session:
            row = await DriverRepository(session).create(mappers.driver_to_row(driver))
            await session.refresh(row)
            return mappers.driver_to_domain(row)

    async def get_driver(self, driver_id: int) -> Optional[Driver]:
        async with self._transaction() as session:
            row = await DriverRepository(session).get_by_id(driver_id)
            return mappers.driver_to_domain(row) if row else None

    async def list_drivers(self) -> list[Driver]:
        async with self._transaction() as session:
            rows = await DriverRepository(session).list_all()
            return [mappers.driver_to_domain(r) for r in rows]

    async def set_driver_status(self, driver_id: int, status: DriverStatus) -> bool:
        async with self._transaction() as session:
            row = await DriverRepository(session).get_by_id(driver_id)
            if row is None:
                return False
            row.status = status
            return True

    async def create_assignment(self, draft: BookingDraft) -> Optional[Assignment]:
        async with self._transaction() as session:
            row = await DriverRepository(session).first_available_for_update()
            if row is None:
                return None

            row.status = DriverStatus.BUSY
            assignment = _new_assignment(draft, mappers.driver_to_domain(row))
            await BookingRepository(session).create(
                mappers.booking_to_row(assignment.booking)
            )
            await MissionRepository(session).create(
                mappers.mission_to_row(assignment.mission)
            )
            return assignment

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        async with self._transaction() as session:
            row = await BookingRepository(session).get_by_id(booking_id)
            return mappers.booking_to_domain(row) if row else None

    async def list_bookings(self, since: Optional[datetime] = None) -> list[Booking]:
        async with self._transaction() as session:
            rows = await BookingRepository(session).list_since(since)
            return [mappers.booking_to_domain(r) for r in rows]

    async def get_mission(self, mission_id: str) -> Optional[Mission]:
        async with self._transaction() as session:
            row = await MissionRepository(session).get_by_id(mission_id)
            return mappers.mission_to_domain(row) if row else None

    async def list_missions(self) -> list[Mission]:
        async with self._transaction() as session:
            rows = await MissionRepository(session).list_all()
            return [mappers.mission_to_domain(r) for r in rows]

    async def record_mission_progress(self, mission: Mission) -> bool:
        async with self._transaction() as session:
            row = await MissionRepository(session).get_by_id(mission.id)
            if row is None:
                return False
            mappers.apply_mission_progress(row, mission)

            booking = await BookingRepository(session).get_by_id(mission.booking_id)
            if booking is not None:
                booking.status = mission.booking_status

            if mission.is_terminal and mission.driver_id is not None:
                driver = await DriverRepository(session).get_by_id(mission.driver_id)
                if driver is not None:
                    driver.status = DriverStatus.AVAILABLE
            return True

    async def status_summary(self) -> StatusSummary:
        async with self._transaction() as session:
            missions = MissionRepository(session)
            return StatusSummary(
                available_drivers=await DriverRepository(session).count_available(),
                active_missions=await missions.count_active(),
                total_bookings=await BookingRepository(session).count(),
                completed_missions=await missions.count_completed(),
            )

    async def add_user(self, user: User) -> User:
        async with self._transaction() as session:
            row = await UserRepository(session).create(mappers.user_to_row(user))
            return mappers.user_to_domain(row)

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._transaction() as session:
            row = await UserRepository(session).get_by_id(user_id)
            return mappers.user_to_domain(row) if row else None

    async def find_user(self, login: str) -> Optional[User]:
        async with self._transaction() as session:
            row = await UserRepository(session).get_by_login(login)
            return mappers.user_to_domain(row) if row else None

    async def save_token(self, token: AccessToken) -> None:
        async with self._transaction() as session:
            await AccessTokenRepository(session).create(mappers.token_to_row(token))

    async def get_token(self, token: str) -> Optional[AccessToken]:
        async with self._transaction() as session:
            row = await AccessTokenRepository(session).get(token)
            return mappers.token_to_domain(row) if row else None


# ── Selection ─────────────────────────────────────────────────────────


async def open_store(settings: Settings) -> DispatchStore:
    """Open the store named by ``settings.storage_backend``.

    ``auto`` tries the database first and degrades to memory when it is
    unreachable.
    """
    if settings.storage_backend == "memory":
        store: DispatchStore = InMemoryStore()
        await store.open()
        return store

    store = SqlAlchemyStore.from_url(settings.database_url)
    try:
        await store.open()
    except StorageError:
        if settings.storage_backend == "database":
            raise
        logger.warning(
            "Database unreachable, falling back to in-memory storage "
            "(bookings will be lost on restart)",
            exc_info=True,
        )
        await store.close()
        store = InMemoryStore()
        await store.open()
    return store
