"""Dashboard data over a trailing time window."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from smart_taxis.domain import analytics
from smart_taxis.domain.entities import utcnow
from smart_taxis.infrastructure.store import DispatchStore


class AnalyticsService:
    def __init__(self, store: DispatchStore, window_days: int = 30):
        self.store = store
        self.window_days = window_days

    async def dashboard(
        self, days: Optional[int] = None, now: Optional[datetime] = None
    ) -> dict:
        days = days or self.window_days
        now = now or utcnow()
        start = analytics.window_start(now, days)

        bookings = [
            b for b in await self.store.list_bookings(since=start) if b.created_at <= now
        ]
        drivers = await self.store.list_drivers()

        return {
            "window_days": days,
            "booking_stats": analytics.booking_stats(bookings),
            "daily_trends": analytics.daily_trends(bookings, start.date(), now.date()),
            "driver_performance": analytics.driver_performance(drivers, bookings),
            "status_distribution": analytics.status_distribution(bookings),
            "peak_hours": analytics.peak_hours(bookings),
        }
