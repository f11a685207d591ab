"""
Fare Estimator  (Strategy Pattern)
==================================

Formula
-------
Fare = Base_Fare + Distance x Rate_Per_KM

Assumption
----------
There is no routing engine behind this project, so the trip distance is a
uniform random draw in ``[min_distance_km, max_distance_km]`` and does not
depend on the pickup / destination text.  A routing-service client would
replace ``_draw_distance`` in production.

Distance is rounded to 1 decimal place first and the fare is priced from
the rounded value, so the two displayed numbers always agree.

Complexity: O(1) per estimate.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FareEstimate:
    fare: float
    distance_km: float


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> float: ...


class StandardPricing(PricingStrategy):
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> float:
        return round(base_fare + distance_km * rate_per_km, 2)


# ── Estimator facade ──────────────────────────────────────────────────


class FareEstimator:
    """High-level API used by the dispatch service."""

    def __init__(
        self,
        base_fare: float = 5.0,
        rate_per_km: float = 2.5,
        min_distance_km: float = 2.0,
        max_distance_km: float = 22.0,
        rng: Optional[random.Random] = None,
        strategy: Optional[PricingStrategy] = None,
    ):
        if min_distance_km > max_distance_km:
            raise ValueError("min_distance_km must not exceed max_distance_km")
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km
        self.min_distance_km = min_distance_km
        self.max_distance_km = max_distance_km
        self.rng = rng or random.Random()
        self.strategy = strategy or StandardPricing()

    @property
    def fare_bounds(self) -> tuple[float, float]:
        return (
            self.strategy.calculate(self.min_distance_km, self.base_fare, self.rate_per_km),
            self.strategy.calculate(self.max_distance_km, self.base_fare, self.rate_per_km),
        )

    def _draw_distance(self) -> float:
        return self.rng.uniform(self.min_distance_km, self.max_distance_km)

    def estimate(self, pickup: str, destination: str) -> FareEstimate:
        distance = round(self._draw_distance(), 1)
        fare = self.strategy.calculate(distance, self.base_fare, self.rate_per_km)
        return FareEstimate(fare=fare, distance_km=distance)
