"""Tests for niftypulse.analysis.levels — pivot clustering and level lookups."""

import numpy as np
import pytest

from niftypulse.analysis.levels import (
    MAX_LEVELS,
    detect_support_resistance,
    find_nearest_level,
)
from niftypulse.analysis.models import Bar, SRLevel
from niftypulse.feeds.mock_data import generate_index_bars


def _make_bar(i: int, close: float) -> Bar:
    return Bar(time=1_700_000_000 + i * 300, open=close, high=close + 0.5,
               low=close - 0.5, close=close, volume=1000)


def _wave_closes(n: int) -> list[float]:
    """Triangle wave: 100 → 105 → 100 with a 10-bar period."""
    closes = []
    for i in range(n):
        phase = i % 10
        closes.append(100.0 + (phase if phase <= 5 else 10 - phase))
    return closes


def _bars(closes: list[float]) -> list[Bar]:
    return [_make_bar(i, c) for i, c in enumerate(closes)]


class TestDetectSupportResistance:
    def test_too_few_bars_returns_empty(self):
        assert detect_support_resistance(_bars(_wave_closes(9)), lookback_period=5) == []

    def test_wave_yields_one_level_per_side(self):
        levels = detect_support_resistance(_bars(_wave_closes(60)), lookback_period=5)
        assert len(levels) == 2

        resistance = [lvl for lvl in levels if lvl.level_type == "resistance"]
        support = [lvl for lvl in levels if lvl.level_type == "support"]
        assert resistance[0].price == pytest.approx(105.5)
        assert resistance[0].touches == 5
        assert support[0].price == pytest.approx(99.5)
        assert support[0].touches == 5
        assert all(lvl.strength == 1.0 for lvl in levels)

    def test_nearby_pivots_merge_with_running_average(self):
        closes = _wave_closes(40)
        closes[15] = 105.5  # middle peak slightly higher
        levels = detect_support_resistance(_bars(closes), lookback_period=5)

        resistance = [lvl for lvl in levels if lvl.level_type == "resistance"]
        assert len(resistance) == 1
        assert resistance[0].touches == 3
        assert resistance[0].price == pytest.approx((105.75 * 2 + 105.5) / 3)

    def test_sorted_by_descending_strength(self):
        bars = generate_index_bars(np.random.default_rng(7), periods=300, interval_minutes=5)
        levels = detect_support_resistance(bars, lookback_period=3)
        strengths = [lvl.strength for lvl in levels]
        assert strengths == sorted(strengths, reverse=True)

    def test_at_most_max_levels_and_always_a_support(self):
        for seed in range(5):
            bars = generate_index_bars(np.random.default_rng(seed), periods=300, interval_minutes=5)
            levels = detect_support_resistance(bars, lookback_period=2)
            assert 0 < len(levels) <= MAX_LEVELS
            assert any(lvl.level_type == "support" for lvl in levels)

    def test_strength_and_touch_invariants(self):
        bars = generate_index_bars(np.random.default_rng(11), periods=200, interval_minutes=5)
        for lvl in detect_support_resistance(bars, lookback_period=3):
            assert lvl.touches >= 1
            assert 0 < lvl.strength <= 1.0

    def test_monotonic_rise_gets_fallback_support(self):
        bars = _bars([100.0 + i for i in range(30)])
        levels = detect_support_resistance(bars, lookback_period=5)

        assert len(levels) == 1
        fallback = levels[0]
        assert fallback.level_type == "support"
        # lowest low of the trailing 20 bars
        assert fallback.price == pytest.approx(109.5)
        assert fallback.touches == 1
        assert fallback.strength == pytest.approx(0.4)

    def test_idempotent(self):
        bars = generate_index_bars(np.random.default_rng(3), periods=150, interval_minutes=5)
        assert detect_support_resistance(bars, 5) == detect_support_resistance(bars, 5)


class TestLevelLookups:
    _LEVELS = [
        SRLevel(price=100.0, level_type="support", strength=0.6, touches=2),
        SRLevel(price=110.0, level_type="resistance", strength=1.0, touches=3),
        SRLevel(price=104.0, level_type="resistance", strength=0.3, touches=1),
    ]

    def test_nearest_any_type(self):
        assert find_nearest_level(103.0, self._LEVELS).price == 104.0

    def test_nearest_restricted_to_type(self):
        assert find_nearest_level(103.0, self._LEVELS, "support").price == 100.0

    def test_nearest_none_when_no_candidates(self):
        assert find_nearest_level(103.0, []) is None
        only_support = [self._LEVELS[0]]
        assert find_nearest_level(103.0, only_support, "resistance") is None
