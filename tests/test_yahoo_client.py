"""Tests for niftypulse.feeds.yahoo_client — Yahoo chart client with mocked HTTP responses."""

import httpx
import pytest

from niftypulse.analysis.models import Bar, CommodityQuote
from niftypulse.config import Config
from niftypulse.feeds import yahoo_client
from niftypulse.feeds.yahoo_client import YahooFinanceClient


def _make_config(gift_symbols=("NIFTY.SI", "NIFTY.SG")) -> Config:
    return Config(
        index_symbol="^NSEI",
        gift_nifty_symbols=tuple(gift_symbols),
        gold_symbol="GC=F",
        crude_symbol="CL=F",
        yahoo_base_url="https://query1.finance.yahoo.com",
        request_timeout_seconds=4.0,
        session_bars=96,
        level_lookback=5,
        use_live_data=True,
        mock_seed=1,
        log_level="INFO",
        api_port=8080,
    )


# ── Mock Yahoo responses ─────────────────────────────────────────────────

MOCK_CHART_RESPONSE = {
    "chart": {
        "result": [{
            "meta": {"symbol": "^NSEI", "previousClose": 22000.0},
            "timestamp": [1_736_140_500, 1_736_140_560],
            "indicators": {"quote": [{
                "open": [22010.5, 22020.0],
                "high": [22030.0, 22035.25],
                "low": [22005.0, 22015.0],
                "close": [22020.0, 22033.0],
                "volume": [150000, 98000],
            }]},
        }],
        "error": None,
    }
}

MOCK_EMPTY_RESPONSE = {"chart": {"result": None, "error": {"code": "Not Found"}}}


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(yahoo_client, "_RETRY_BASE_DELAY", 0.0)


# ── Tests ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_index_candles(monkeypatch):
    """Bars are normalised from the chart JSON and the request carries the query."""
    client = YahooFinanceClient(_make_config())
    seen = {}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return httpx.Response(200, json=MOCK_CHART_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    bars = await client.fetch_index_candles("1m", "1d")
    assert len(bars) == 2
    b = bars[0]
    assert isinstance(b, Bar)
    assert b.open == pytest.approx(22010.5)
    assert b.high == pytest.approx(22030.0)
    assert b.close == pytest.approx(22020.0)
    assert b.volume == 150000
    assert seen["url"].endswith("/v8/finance/chart/^NSEI")
    assert seen["params"] == {"interval": "1m", "range": "1d"}
    assert seen["timeout"] == 4.0


@pytest.mark.asyncio
async def test_empty_chart_raises_value_error(monkeypatch):
    client = YahooFinanceClient(_make_config())

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(200, json=MOCK_EMPTY_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(ValueError, match="No chart data"):
        await client.fetch_candles("^NSEI")


@pytest.mark.asyncio
async def test_retries_transient_status(monkeypatch):
    """A 503 followed by a 200 succeeds after one retry."""
    client = YahooFinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls["n"] += 1
        request = httpx.Request("GET", url)
        if calls["n"] == 1:
            return httpx.Response(503, request=request)
        return httpx.Response(200, json=MOCK_CHART_RESPONSE, request=request)

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    bars = await client.fetch_candles("^NSEI")
    assert len(bars) == 2
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(monkeypatch):
    client = YahooFinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls["n"] += 1
        return httpx.Response(429, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_candles("^NSEI")
    assert calls["n"] == yahoo_client._MAX_RETRIES


@pytest.mark.asyncio
async def test_transport_errors_are_retried(monkeypatch):
    client = YahooFinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls["n"] += 1
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.ConnectError):
        await client.fetch_candles("^NSEI")
    assert calls["n"] == yahoo_client._MAX_RETRIES


@pytest.mark.asyncio
async def test_client_error_not_retried(monkeypatch):
    client = YahooFinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls["n"] += 1
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_candles("^NSEI")
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_gift_nifty_falls_through_symbols(monkeypatch):
    """The first symbol without data is skipped; the next one is used."""
    client = YahooFinanceClient(_make_config())

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        request = httpx.Request("GET", url)
        if url.endswith("NIFTY.SI"):
            return httpx.Response(200, json=MOCK_EMPTY_RESPONSE, request=request)
        return httpx.Response(200, json=MOCK_CHART_RESPONSE, request=request)

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    bars, symbol = await client.fetch_gift_nifty()
    assert symbol == "NIFTY.SG"
    assert len(bars) == 2


@pytest.mark.asyncio
async def test_gift_nifty_no_symbol_has_data(monkeypatch):
    client = YahooFinanceClient(_make_config())

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(ValueError, match="No GIFT Nifty data"):
        await client.fetch_gift_nifty()


@pytest.mark.asyncio
async def test_fetch_quote(monkeypatch):
    client = YahooFinanceClient(_make_config())

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(200, json=MOCK_CHART_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    quote = await client.fetch_quote("GC=F", "Gold")
    assert isinstance(quote, CommodityQuote)
    assert quote.name == "Gold"
    assert quote.symbol == "GC=F"
    assert quote.price == pytest.approx(22033.0)
    assert quote.change == pytest.approx(33.0)
    assert quote.change_percent == pytest.approx(0.15)
