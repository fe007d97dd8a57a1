"""Yahoo Finance chart API async client.

Fetches index candles, GIFT Nifty pre-market candles and commodity quotes.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from niftypulse.analysis.models import Bar, CommodityQuote
from niftypulse.config import Config
from niftypulse.feeds.normalize import latest_quote, parse_chart_payload

logger = logging.getLogger("niftypulse")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}

_HEADERS = {"User-Agent": "Mozilla/5.0"}


class YahooFinanceClient:
    """Async client wrapping the Yahoo Finance v8 chart endpoint."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._timeout = config.request_timeout_seconds

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str, params: dict) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504), rate-limits
        (429) and transport errors.  Other HTTP errors are raised
        immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        url,
                        headers=_HEADERS,
                        params=params,
                        timeout=self._timeout,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Yahoo GET %s returned %d — retry %d/%d in %.1fs",
                        url, resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Yahoo GET %s transport error (%s) — retry %d/%d in %.1fs",
                    url, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Candles ──────────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str = "1m",
        range_: str = "1d",
    ) -> list[Bar]:
        """Fetch and normalise candles for *symbol*.

        Args:
            symbol: e.g. ``"^NSEI"``
            interval: ``"1m"``, ``"5m"``, ``"15m"``, ``"1h"``, ``"1d"``
            range_: ``"1d"``, ``"5d"``, ``"1mo"``, ...

        Returns:
            Bars ordered oldest-first.  Raises ``ValueError`` when the
            response holds no chart data.
        """
        resp = await self._get_with_retry(
            self._config.chart_url(symbol),
            params={"interval": interval, "range": range_},
        )
        return parse_chart_payload(resp.json(), interval)

    async def fetch_index_candles(self, interval: str = "1m", range_: str = "1d") -> list[Bar]:
        return await self.fetch_candles(self._config.index_symbol, interval, range_)

    async def fetch_gift_nifty(
        self, interval: str = "15m", range_: str = "1d"
    ) -> tuple[list[Bar], str]:
        """Try each configured GIFT Nifty symbol in order.

        Returns ``(bars, symbol_used)`` for the first symbol yielding data.
        Raises ``ValueError`` when none does.
        """
        for symbol in self._config.gift_nifty_symbols:
            try:
                bars = await self.fetch_candles(symbol, interval, range_)
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("GIFT Nifty symbol %s unavailable: %s", symbol, exc)
                continue
            if bars:
                return bars, symbol
        raise ValueError("No GIFT Nifty data available")

    # ── Quotes ───────────────────────────────────────────────────────────

    async def fetch_quote(self, symbol: str, name: str) -> CommodityQuote:
        """Fetch the latest daily quote and change versus the previous close."""
        resp = await self._get_with_retry(
            self._config.chart_url(symbol),
            params={"interval": "1d", "range": "1d"},
        )
        price, previous = latest_quote(resp.json())
        change = price - previous
        change_pct = change / previous * 100 if previous > 0 else 0.0
        return CommodityQuote(
            name=name,
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_pct,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
