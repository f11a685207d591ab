"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - the 5 demo drivers (if the driver table is empty)
  - an admin user (admin / $SEED_ADMIN_PASSWORD, default "admin123")
  - a driver login for each demo driver (<firstname> / "driver123")
  - 40 historical bookings spread over the last 30 days, each with a
    finished mission, so the dashboard has something to show
"""

import asyncio
import os
import random
from datetime import timedelta

from smart_taxis.config import settings
from smart_taxis.domain.entities import Booking, Mission, utcnow
from smart_taxis.domain.enums import BookingStatus, MissionStatus, UserRole
from smart_taxis.domain.fare import FareEstimator
from smart_taxis.infrastructure import mappers
from smart_taxis.infrastructure.fixtures import seed_drivers
from smart_taxis.infrastructure.store import SqlAlchemyStore
from smart_taxis.services.auth import AuthService, DuplicateUser

CUSTOMERS = [
    "Alice Cooper", "Bob Wilson", "Charlie Davis", "Diana Prince", "Edward Norton",
    "Fiona Green", "George Miller", "Helen White", "Ivan Petrov", "Julia Roberts",
]

LOCATIONS = [
    "Downtown Plaza", "Airport Terminal", "Central Station", "Shopping Mall",
    "University Campus", "Business District", "Hospital", "City Park",
]

HISTORY_SIZE = 40


async def seed_history(store: SqlAlchemyStore, rng: random.Random) -> int:
    """Insert finished bookings directly; the live lifecycle never back-dates."""
    drivers = await store.list_drivers()
    estimator = FareEstimator(settings.base_fare, settings.rate_per_km, rng=rng)
    now = utcnow()

    async with store.session_factory() as session:
        async with session.begin():
            for _ in range(HISTORY_SIZE):
                driver = rng.choice(drivers)
                pickup, destination = rng.sample(LOCATIONS, 2)
                estimate = estimator.estimate(pickup, destination)
                created = now - timedelta(days=rng.uniform(0, 30))
                cancelled = rng.random() < 0.15
                booking = Booking(
                    customer_name=rng.choice(CUSTOMERS),
                    customer_phone=f"555{rng.randint(1000000, 9999999)}",
                    pickup=pickup,
                    destination=destination,
                    fare=estimate.fare,
                    distance_km=estimate.distance_km,
                    status=BookingStatus.CANCELLED if cancelled else BookingStatus.COMPLETED,
                    driver_id=driver.id,
                    created_at=created,
                )
                ended = created + timedelta(minutes=rng.randint(10, 45))
                mission = Mission(
                    booking_id=booking.id,
                    driver_id=driver.id,
                    status=MissionStatus.CANCELLED if cancelled else MissionStatus.COMPLETED,
                    created_at=created,
                    updated_at=ended,
                    started_at=None if cancelled else created + timedelta(minutes=5),
                    ended_at=ended,
                )
                session.add(mappers.booking_to_row(booking))
                await session.flush()
                session.add(mappers.mission_to_row(mission))
    return HISTORY_SIZE


async def seed():
    store = SqlAlchemyStore.from_url(settings.database_url)
    await store.open()
    try:
        if await store.list_bookings():
            print("Database already seeded. Skipping.")
            return

        added = await seed_drivers(store)
        print(f"  Created {added} drivers")

        auth = AuthService(store, hash_rounds=settings.password_hash_rounds)
        admin_password = os.environ.get("SEED_ADMIN_PASSWORD", "admin123")
        await auth.ensure_admin("admin", "admin@smarttaxis.local", admin_password)
        for driver in await store.list_drivers():
            login = driver.name.split()[0].lower()
            try:
                await auth.register(
                    login, f"{login}@smarttaxis.local", "driver123",
                    role=UserRole.DRIVER, driver_id=driver.id,
                )
            except DuplicateUser:
                print(f"  User {login} already exists")
        print("  Created users")

        count = await seed_history(store, random.Random(42))
        print(f"  Created {count} historical bookings")
        print("\nSeed complete!")
    finally:
        await store.close()


async def main():
    print("Seeding database...")
    await seed()


if __name__ == "__main__":
    asyncio.run(main())
