"""Tests for niftypulse.analysis.option_chain — PCR, sentiment and top strikes."""

import pytest

from niftypulse.analysis.option_chain import (
    bullish_strength,
    classify_pcr,
    summarize_option_chain,
)


def _leg(strike: float, oi: float, volume: float = 0, ltp: float = 10.0) -> dict:
    return {
        "strikePrice": strike,
        "openInterest": oi,
        "changeInOpenInterest": 0,
        "volume": volume,
        "ltp": ltp,
    }


class TestSummarize:
    def test_call_only_chain(self):
        summary = summarize_option_chain(
            [{"call": {"strikePrice": 22000, "openInterest": 1000, "volume": 500}}],
        )
        assert summary.pcr_oi == 0.0
        assert summary.pcr_volume == 0.0
        assert summary.sentiment == "bullish"
        assert summary.bullish_strength == 1.0
        assert summary.top_puts == []
        assert len(summary.top_calls) == 1

    def test_put_only_chain_defaults_pcr_to_one(self):
        summary = summarize_option_chain([{"put": _leg(21900, 800, 100)}])
        assert summary.pcr_oi == 1.0
        assert summary.pcr_volume == 1.0
        assert summary.sentiment == "neutral"

    @pytest.mark.parametrize("entries", [[], None, "chain", {"call": {}}])
    def test_invalid_input_returns_none(self, entries):
        assert summarize_option_chain(entries) is None

    def test_ratios(self):
        entries = [
            {"strikePrice": 22000, "call": _leg(22000, 1000, 400), "put": _leg(22000, 1500, 200)},
            {"strikePrice": 22100, "call": _leg(22100, 1000, 600), "put": _leg(22100, 1500, 300)},
        ]
        summary = summarize_option_chain(entries)
        assert summary.pcr_oi == pytest.approx(1.5)
        assert summary.pcr_volume == pytest.approx(0.5)
        assert summary.sentiment == "bearish"
        assert summary.bullish_strength == pytest.approx(0.75)

    def test_alternate_key_spellings(self):
        entries = [{
            "strikePrice": 22050,
            "CE": {"OI": 900, "vol": 30, "lastPrice": 55.5, "changeInOI": 12},
            "PE": {"strike": 22050, "oi": 300, "vol": 10, "price": 40.0},
        }]
        summary = summarize_option_chain(entries)

        call = summary.top_calls[0]
        assert call.strike_price == 22050
        assert call.open_interest == 900
        assert call.volume == 30
        assert call.ltp == 55.5
        assert call.change_in_open_interest == 12
        assert summary.top_puts[0].open_interest == 300
        assert summary.pcr_oi == pytest.approx(1 / 3)

    def test_first_nonzero_alias_wins(self):
        summary = summarize_option_chain(
            [{"call": {"strikePrice": 22000, "openInterest": 0, "OI": 700}}],
        )
        assert summary.top_calls[0].open_interest == 700

    def test_malformed_fields_become_zero(self):
        entries = [
            "not-an-entry",
            {"call": {"strikePrice": "22000", "openInterest": "abc", "volume": None}},
            {"call": _leg(22100, 500)},
        ]
        summary = summarize_option_chain(entries)

        strikes = {leg.strike_price: leg for leg in summary.top_calls}
        assert strikes[22000.0].open_interest == 0.0
        assert strikes[22000.0].volume == 0.0
        assert summary.pcr_oi == 0.0

    def test_top_five_by_open_interest(self):
        entries = [{"call": _leg(22000 + 50 * i, 100 * (i + 1))} for i in range(8)]
        entries.append({"call": _leg(0, 10_000)})
        summary = summarize_option_chain(entries)

        ois = [leg.open_interest for leg in summary.top_calls]
        assert ois == [800, 700, 600, 500, 400]
        assert all(leg.strike_price > 0 for leg in summary.top_calls)

    def test_timestamp_passthrough(self):
        summary = summarize_option_chain([{"call": _leg(22000, 10)}], "2026-01-05T09:15:00+05:30")
        assert summary.timestamp == "2026-01-05T09:15:00+05:30"

    def test_default_timestamp(self):
        summary = summarize_option_chain([{"call": _leg(22000, 10)}])
        assert summary.timestamp

    def test_to_dict_keys(self):
        data = summarize_option_chain(
            [{"call": {"strikePrice": 22000, "openInterest": 1000, "volume": 500}}],
        ).to_dict()
        assert data["pcrOI"] == 0
        assert data["sentiment"] == "bullish"
        assert data["topPuts"] == []
        assert data["topCalls"][0]["strikePrice"] == 22000


class TestClassification:
    @pytest.mark.parametrize(
        "pcr, sentiment",
        [(0.5, "bullish"), (0.8, "neutral"), (1.0, "neutral"), (1.2, "neutral"), (1.3, "bearish")],
    )
    def test_classify_pcr(self, pcr, sentiment):
        assert classify_pcr(pcr) == sentiment

    @pytest.mark.parametrize(
        "pcr, strength",
        [(0.0, 1.0), (0.5, 0.75), (1.0, 1.0), (2.0, 0.5), (5.0, 0.0)],
    )
    def test_bullish_strength(self, pcr, strength):
        assert bullish_strength(pcr) == pytest.approx(strength)
