"""
Dashboard aggregations over raw booking / driver records.

Every function is pure: callers fetch the records for a time window and
pass them in.  Doing the grouping here rather than in SQL keeps the
in-memory store and the relational store producing identical numbers
(SQLite and PostgreSQL disagree on date / hour extraction).

Complexity: O(B + D) per aggregate, B = bookings, D = drivers.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable

from .entities import Booking, Driver
from .enums import BookingStatus


def _rate(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def booking_stats(bookings: Iterable[Booking]) -> dict:
    bookings = list(bookings)
    completed = [b for b in bookings if b.status == BookingStatus.COMPLETED]
    cancelled = sum(1 for b in bookings if b.status == BookingStatus.CANCELLED)
    revenue = sum(b.fare for b in completed)
    return {
        "total_bookings": len(bookings),
        "completed_bookings": len(completed),
        "cancelled_bookings": cancelled,
        "total_revenue": round(revenue, 2),
        "completion_rate": _rate(len(completed), len(bookings)),
    }


def daily_trends(
    bookings: Iterable[Booking], start: date, end: date
) -> list[dict]:
    """One entry per calendar day in ``[start, end]``, empty days included."""
    counts: Counter[date] = Counter()
    revenue: defaultdict[date, float] = defaultdict(float)
    for b in bookings:
        day = b.created_at.date()
        counts[day] += 1
        revenue[day] += b.fare

    series = []
    day = start
    while day <= end:
        series.append(
            {
                "date": day.isoformat(),
                "count": counts.get(day, 0),
                "revenue": round(revenue.get(day, 0.0), 2),
            }
        )
        day += timedelta(days=1)
    return series


def driver_performance(
    drivers: Iterable[Driver], bookings: Iterable[Booking]
) -> list[dict]:
    """Per-driver totals, best earners first."""
    by_driver: defaultdict[int, list[Booking]] = defaultdict(list)
    for b in bookings:
        if b.driver_id is not None:
            by_driver[b.driver_id].append(b)

    rows = []
    for d in drivers:
        mine = by_driver.get(d.id, [])
        done = [b for b in mine if b.status == BookingStatus.COMPLETED]
        rows.append(
            {
                "id": d.id,
                "name": d.name,
                "status": d.status.value,
                "total_bookings": len(mine),
                "completed_bookings": len(done),
                "revenue": round(sum(b.fare for b in done), 2),
                "completion_rate": _rate(len(done), len(mine)),
            }
        )
    rows.sort(key=lambda r: r["revenue"], reverse=True)
    return rows


def status_distribution(bookings: Iterable[Booking]) -> list[dict]:
    counts = Counter(b.status for b in bookings)
    return [
        {"status": status.value, "count": counts[status]}
        for status in BookingStatus
        if counts[status]
    ]


def peak_hours(bookings: Iterable[Booking]) -> list[dict]:
    counts = Counter(b.created_at.hour for b in bookings)
    return [{"hour": hour, "count": counts.get(hour, 0)} for hour in range(24)]


def window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)
