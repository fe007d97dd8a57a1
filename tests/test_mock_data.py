"""Tests for niftypulse.feeds.mock_data — synthetic fallback data."""

from datetime import datetime, timezone

import numpy as np
import pytest

from niftypulse.analysis.option_chain import summarize_option_chain
from niftypulse.feeds.mock_data import (
    INDEX_CEILING,
    INDEX_FLOOR,
    fallback_commodities,
    generate_index_bars,
    mock_fii_dii,
    mock_option_chain_entries,
)

NOW = datetime(2026, 1, 5, 4, 7, 31, tzinfo=timezone.utc)  # 09:37 IST


class TestGenerateIndexBars:
    def test_count_and_spacing(self):
        bars = generate_index_bars(np.random.default_rng(1), periods=50, interval_minutes=5, end_time=NOW)
        assert len(bars) == 50
        assert all(b.time - a.time == 300 for a, b in zip(bars, bars[1:]))

    def test_last_bar_aligned_to_interval(self):
        bars = generate_index_bars(np.random.default_rng(1), periods=10, interval_minutes=15, end_time=NOW)
        assert bars[-1].time == int(datetime(2026, 1, 5, 4, 0, tzinfo=timezone.utc).timestamp())

    def test_daily_bars_aligned_to_midnight(self):
        bars = generate_index_bars(np.random.default_rng(1), periods=5, interval_minutes=1440, end_time=NOW)
        assert bars[-1].time == int(datetime(2026, 1, 5, tzinfo=timezone.utc).timestamp())

    def test_ohlc_consistency(self):
        bars = generate_index_bars(np.random.default_rng(2), periods=200, end_time=NOW)
        for b in bars:
            assert b.low <= min(b.open, b.close)
            assert b.high >= max(b.open, b.close)
            assert 10_000_000 <= b.volume < 60_000_000

    def test_open_stays_within_band(self):
        bars = generate_index_bars(
            np.random.default_rng(3), periods=100, end_time=NOW, start_price=25_490.0,
        )
        assert all(INDEX_FLOOR <= b.open <= INDEX_CEILING for b in bars)

    def test_deterministic_for_seed(self):
        a = generate_index_bars(np.random.default_rng(9), periods=30, end_time=NOW)
        b = generate_index_bars(np.random.default_rng(9), periods=30, end_time=NOW)
        assert a == b


class TestMockOptionChain:
    def test_five_calls_above_five_puts_below(self):
        entries = mock_option_chain_entries(np.random.default_rng(4), spot=22_013.0)
        calls = [e for e in entries if e["call"] is not None]
        puts = [e for e in entries if e["put"] is not None]

        assert len(calls) == 5
        assert len(puts) == 5
        assert all(e["strikePrice"] > 22_013.0 for e in calls)
        assert all(e["strikePrice"] < 22_013.0 for e in puts)
        assert all(e["strikePrice"] % 50 == 0 for e in entries)

    def test_entries_summarise(self):
        entries = mock_option_chain_entries(np.random.default_rng(4), spot=22_013.0)
        summary = summarize_option_chain(entries, "2026-01-05T04:07:31+00:00")
        assert summary is not None
        assert len(summary.top_calls) == 5
        assert len(summary.top_puts) == 5
        assert summary.pcr_oi > 0


class TestMockFiiDii:
    def test_same_hour_same_numbers(self):
        later = NOW.replace(minute=20)  # 09:50 IST
        assert mock_fii_dii(NOW) == mock_fii_dii(later)

    def test_net_is_fii_minus_dii_equity(self):
        flows = mock_fii_dii(NOW)
        assert flows.net_fii == pytest.approx(flows.fii.equity - flows.dii.equity, abs=0.01)
        assert flows.date == "2026-01-05"

    def test_date_uses_ist(self):
        late_utc = datetime(2026, 1, 5, 20, 0, tzinfo=timezone.utc)  # 01:30 IST next day
        assert mock_fii_dii(late_utc).date == "2026-01-06"

    def test_to_dict_keys(self):
        data = mock_fii_dii(NOW).to_dict()
        assert set(data) == {"date", "fii", "dii", "netFII"}
        assert set(data["fii"]) == {"equity", "debt", "total"}


def test_fallback_commodities():
    gold, crude = fallback_commodities("2026-01-05T04:07:31+00:00")
    assert gold.price == 2650.50
    assert gold.change_percent == -0.20
    assert crude.price == 78.45
    assert crude.change_percent == 1.10
    assert gold.timestamp == crude.timestamp == "2026-01-05T04:07:31+00:00"
