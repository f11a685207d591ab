"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Transactions are owned by the caller
(``SqlAlchemyStore``); repositories only ``flush``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AccessTokenModel,
    BookingModel,
    DriverModel,
    MissionModel,
    UserModel,
)
from smart_taxis.domain.enums import (
    TERMINAL_MISSION_STATUSES,
    DriverStatus,
    MissionStatus,
)


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def list_all(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).order_by(DriverModel.id)
        )
        return list(result.scalars().all())

    async def first_available_for_update(self) -> Optional[DriverModel]:
        """SELECT ... FOR UPDATE SKIP LOCKED on the first available driver.

        Concurrent transactions skip a row another booking has locked, so
        two bookings can never claim the same driver.
        """
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.status == DriverStatus.AVAILABLE)
            .order_by(DriverModel.id)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        return result.scalar_one_or_none()

    async def count_available(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(DriverModel)
            .where(DriverModel.status == DriverStatus.AVAILABLE)
        )
        return result.scalar() or 0


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: str) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def list_since(self, since: Optional[datetime] = None) -> list[BookingModel]:
        query = select(BookingModel).order_by(BookingModel.created_at)
        if since is not None:
            query = query.where(BookingModel.created_at >= since)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(BookingModel)
        )
        return result.scalar() or 0


class MissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, mission: MissionModel) -> MissionModel:
        self.session.add(mission)
        await self.session.flush()
        return mission

    async def get_by_id(self, mission_id: str) -> Optional[MissionModel]:
        return await self.session.get(MissionModel, mission_id)

    async def list_all(self) -> list[MissionModel]:
        result = await self.session.execute(
            select(MissionModel).order_by(MissionModel.created_at)
        )
        return list(result.scalars().all())

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(MissionModel)
            .where(MissionModel.status.not_in(list(TERMINAL_MISSION_STATUSES)))
        )
        return result.scalar() or 0

    async def count_completed(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(MissionModel)
            .where(MissionModel.status == MissionStatus.COMPLETED)
        )
        return result.scalar() or 0


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_login(self, login: str) -> Optional[UserModel]:
        """Match on username or email."""
        result = await self.session.execute(
            select(UserModel).where(
                or_(UserModel.username == login, UserModel.email == login)
            )
        )
        return result.scalars().first()


class AccessTokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: AccessTokenModel) -> AccessTokenModel:
        self.session.add(token)
        await self.session.flush()
        return token

    async def get(self, token: str) -> Optional[AccessTokenModel]:
        return await self.session.get(AccessTokenModel, token)
