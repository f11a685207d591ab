"""Demo drivers loaded into an empty registry."""

from __future__ import annotations

import logging

from .store import DispatchStore
from smart_taxis.domain.entities import Driver
from smart_taxis.domain.enums import DriverStatus

logger = logging.getLogger(__name__)

DEMO_DRIVERS = [
    {"name": "John Smith", "phone": "5550100001", "status": DriverStatus.AVAILABLE, "location": "Downtown", "rating": 4.8},
    {"name": "Maria Garcia", "phone": "5550100002", "status": DriverStatus.AVAILABLE, "location": "Airport", "rating": 4.9},
    {"name": "Ahmed Hassan", "phone": "5550100003", "status": DriverStatus.OFFLINE, "location": "Mall", "rating": 4.7},
    {"name": "Lisa Chen", "phone": "5550100004", "status": DriverStatus.AVAILABLE, "location": "University", "rating": 4.6},
    {"name": "David Wilson", "phone": "5550100005", "status": DriverStatus.AVAILABLE, "location": "Hospital", "rating": 4.8},
]


async def seed_drivers(store: DispatchStore) -> int:
    """Insert ``DEMO_DRIVERS`` if the registry is empty.  Returns the count added."""
    if await store.list_drivers():
        return 0
    for d in DEMO_DRIVERS:
        await store.add_driver(Driver(**d))
    logger.info("Seeded %d demo drivers", len(DEMO_DRIVERS))
    return len(DEMO_DRIVERS)
