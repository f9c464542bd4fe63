"""Tests for VolatilityTracker."""

from decimal import Decimal

import pytest

from gridmaker.strategies.grid.volatility_tracker import VolatilityTracker, VolatilityTrackerConfig


def _feed(tracker: VolatilityTracker, *prices: str) -> None:
    for price in prices:
        tracker.record_price(Decimal(price))


class TestVolatilityTrackerConfig:
    def test_defaults_valid(self):
        VolatilityTrackerConfig().validate()

    def test_window_too_small(self):
        with pytest.raises(ValueError, match="window_size"):
            VolatilityTrackerConfig(window_size=1).validate()

    def test_thresholds_ordered(self):
        with pytest.raises(ValueError, match="thresholds"):
            VolatilityTrackerConfig(
                low_threshold=Decimal("0.05"), high_threshold=Decimal("0.02")
            ).validate()


class TestVolatility:
    def test_needs_two_samples(self):
        tracker = VolatilityTracker()
        _feed(tracker, "100")
        assert tracker.volatility() == Decimal("0")
        assert tracker.multiplier() == Decimal("1.0")

    def test_range_over_mean(self):
        tracker = VolatilityTracker()
        _feed(tracker, "99", "101")
        assert tracker.volatility() == Decimal("0.02")

    def test_window_is_bounded(self):
        tracker = VolatilityTracker(VolatilityTrackerConfig(window_size=3))
        _feed(tracker, "50", "100", "100", "100")
        assert tracker.buffer_size == 3
        assert tracker.volatility() == Decimal("0")

    @pytest.mark.parametrize(
        "prices,expected",
        [
            (("100", "100.5"), Decimal("1.0")),
            (("97", "100"), Decimal("1.5")),
            (("95", "105"), Decimal("2.0")),
        ],
    )
    def test_multiplier_regimes(self, prices, expected):
        tracker = VolatilityTracker()
        _feed(tracker, *prices)
        assert tracker.multiplier() == expected


class TestMultiplierChanges:
    def test_change_reported_once(self):
        tracker = VolatilityTracker()
        _feed(tracker, "97", "100")
        assert tracker.has_multiplier_changed() is True
        assert tracker.applied_multiplier == Decimal("1.5")
        assert tracker.has_multiplier_changed() is False

    def test_no_change_in_calm_market(self):
        tracker = VolatilityTracker()
        _feed(tracker, "100", "100.1", "100.2")
        assert tracker.has_multiplier_changed() is False
        assert tracker.applied_multiplier == Decimal("1.0")

    def test_reset(self):
        tracker = VolatilityTracker()
        _feed(tracker, "95", "105")
        tracker.has_multiplier_changed()
        tracker.reset()
        assert tracker.buffer_size == 0
        assert tracker.applied_multiplier == Decimal("1.0")
