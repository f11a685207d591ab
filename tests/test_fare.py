"""Unit tests for the fare estimator."""

import random

import pytest

from smart_taxis.domain.fare import (
    FareEstimate,
    FareEstimator,
    PricingStrategy,
    StandardPricing,
)


class TestStandardPricing:
    def test_formula(self):
        assert StandardPricing().calculate(10.0, 5.0, 2.5) == 30.0  # 5 + 10*2.5

    def test_rounds_to_cents(self):
        assert StandardPricing().calculate(3.3, 5.0, 2.5) == 13.25

    def test_zero_distance_is_base_fare(self):
        assert StandardPricing().calculate(0.0, 5.0, 2.5) == 5.0


class TestFareEstimator:
    def test_estimates_stay_in_bounds(self):
        estimator = FareEstimator(rng=random.Random(1))
        for _ in range(500):
            est = estimator.estimate("Downtown Plaza", "Airport Terminal")
            assert 2.0 <= est.distance_km <= 22.0
            assert 10.0 <= est.fare <= 60.0

    def test_fare_priced_from_displayed_distance(self):
        estimator = FareEstimator(rng=random.Random(2))
        for _ in range(200):
            est = estimator.estimate("A", "B")
            assert est.distance_km == round(est.distance_km, 1)
            assert est.fare == round(5.0 + est.distance_km * 2.5, 2)

    def test_seeded_rng_is_reproducible(self):
        a = FareEstimator(rng=random.Random(42)).estimate("A", "B")
        b = FareEstimator(rng=random.Random(42)).estimate("A", "B")
        assert a == b

    def test_location_text_does_not_affect_estimate(self):
        a = FareEstimator(rng=random.Random(9)).estimate("Hospital", "City Park")
        b = FareEstimator(rng=random.Random(9)).estimate("", "somewhere else")
        assert a == b

    def test_fixed_distance_range(self):
        estimator = FareEstimator(min_distance_km=10.0, max_distance_km=10.0)
        assert estimator.estimate("A", "B") == FareEstimate(fare=30.0, distance_km=10.0)

    def test_fare_bounds(self):
        assert FareEstimator().fare_bounds == (10.0, 60.0)

    def test_configurable_rates(self):
        estimator = FareEstimator(
            base_fare=3.0, rate_per_km=1.0, min_distance_km=4.0, max_distance_km=4.0
        )
        assert estimator.estimate("A", "B").fare == 7.0

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            FareEstimator(min_distance_km=10.0, max_distance_km=5.0)

    def test_custom_strategy(self):
        class FlatRate(PricingStrategy):
            def calculate(self, distance_km, base_fare, rate_per_km):
                return 25.0

        estimator = FareEstimator(strategy=FlatRate(), rng=random.Random(3))
        est = estimator.estimate("A", "B")
        assert est.fare == 25.0
        assert 2.0 <= est.distance_km <= 22.0
