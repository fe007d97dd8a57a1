"""Market data service — live Yahoo data with mock fallback, plus analysis assembly.

Every accessor returns its payload together with a ``source`` tag
(``"live"`` or ``"mock"``).  Live failures are logged and replaced with
synthetic data; they never propagate to callers.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import numpy as np

from niftypulse.analysis.levels import detect_support_resistance
from niftypulse.analysis.models import (
    Bar,
    CommodityQuote,
    FiiDiiFlow,
    FlowSignal,
    MacroSnapshot,
    MultiTimeframeSetup,
    NextDayPrediction,
    OptionChainSummary,
    SRLevel,
)
from niftypulse.analysis.multi_timeframe import analyze_multi_timeframe
from niftypulse.analysis.option_chain import summarize_option_chain
from niftypulse.analysis.prediction import fii_dii_signal, predict_with_context
from niftypulse.config import Config
from niftypulse.feeds.mock_data import (
    INTERVAL_MINUTES,
    fallback_commodities,
    generate_index_bars,
    mock_fii_dii,
    mock_option_chain_entries,
)
from niftypulse.feeds.yahoo_client import YahooFinanceClient

logger = logging.getLogger("niftypulse")

MOCK_PERIODS = 200

# (interval, range) requested per analysis timeframe
TIMEFRAME_REQUESTS: dict[str, tuple[str, str]] = {
    "15m": ("15m", "5d"),
    "1h": ("1h", "1mo"),
    "1d": ("1d", "1y"),
}
PREDICTION_REQUEST = ("1d", "3mo")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MarketDataService:
    """Fetches market data and runs the analysis pipeline over it.

    Args:
        config: Application config.
        client: Live data client; ``None`` serves mock data only.
        rng: Random source for mock generators.
        clock: Returns the current UTC time (mock timestamps, FII/DII seed).
    """

    def __init__(
        self,
        config: Config,
        client: Optional[YahooFinanceClient] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._client = client
        self._rng = rng if rng is not None else np.random.default_rng(config.mock_seed)
        self._clock = clock

    @property
    def config(self) -> Config:
        return self._config

    def _mock_bars(self, interval: str) -> list[Bar]:
        return generate_index_bars(
            self._rng,
            periods=MOCK_PERIODS,
            interval_minutes=INTERVAL_MINUTES.get(interval, 1),
            end_time=self._clock(),
        )

    # ── Raw data ─────────────────────────────────────────────────────────

    async def index_bars(self, interval: str = "1m", range_: str = "1d") -> tuple[list[Bar], str]:
        """Index candles for *interval*/*range_*, mock when live data fails."""
        if self._client is not None:
            try:
                bars = await self._client.fetch_index_candles(interval, range_)
                if bars:
                    return bars, "live"
                logger.warning("Index feed returned no bars for %s/%s", interval, range_)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Index feed failed for %s/%s: %s", interval, range_, exc)
        return self._mock_bars(interval), "mock"

    async def gift_nifty(self, interval: str = "15m", range_: str = "1d") -> tuple[list[Bar], str]:
        """GIFT Nifty candles; falls back to the index itself.

        The fallback is tagged "index" (live index bars) or "mock", never
        "live", so callers can tell real pre-market prices apart.
        """
        if self._client is not None:
            try:
                bars, symbol = await self._client.fetch_gift_nifty(interval, range_)
                logger.debug("GIFT Nifty served from %s", symbol)
                return bars, "live"
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("GIFT Nifty feed failed: %s", exc)
        bars, source = await self.index_bars(interval, range_)
        return bars, "index" if source == "live" else source

    async def _quote(self, symbol: str, name: str, fallback: CommodityQuote) -> tuple[CommodityQuote, bool]:
        if self._client is None:
            return fallback, False
        try:
            return await self._client.fetch_quote(symbol, name), True
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Quote feed failed for %s: %s", symbol, exc)
            return fallback, False

    async def commodities(self) -> tuple[CommodityQuote, CommodityQuote, str]:
        """Gold and crude quotes; ``source`` is "live" only when both are live."""
        gold_fallback, crude_fallback = fallback_commodities(self._clock().isoformat())
        (gold, gold_live), (crude, crude_live) = await asyncio.gather(
            self._quote(self._config.gold_symbol, "Gold", gold_fallback),
            self._quote(self._config.crude_symbol, "Crude Oil", crude_fallback),
        )
        source = "live" if gold_live and crude_live else "mock"
        return gold, crude, source

    def fii_dii(self) -> FiiDiiFlow:
        return mock_fii_dii(self._clock())

    def option_chain(self, spot: Optional[float] = None) -> tuple[list[dict], Optional[OptionChainSummary]]:
        """Mock chain entries around *spot* and their summary."""
        entries = mock_option_chain_entries(self._rng, spot)
        return entries, summarize_option_chain(entries, self._clock().isoformat())

    async def macro_snapshot(self) -> MacroSnapshot:
        gold, crude, _ = await self.commodities()
        return MacroSnapshot(gold=gold, crude_oil=crude, fii_dii=self.fii_dii())

    # ── Analysis ─────────────────────────────────────────────────────────

    async def levels(
        self,
        interval: str = "5m",
        range_: str = "5d",
        lookback: Optional[int] = None,
    ) -> tuple[list[SRLevel], list[Bar], str]:
        bars, source = await self.index_bars(interval, range_)
        levels = await asyncio.to_thread(
            detect_support_resistance, bars, lookback or self._config.level_lookback,
        )
        return levels, bars, source

    async def morning_setup(self) -> tuple[MultiTimeframeSetup, dict[str, str]]:
        """Fuse 15m, 1h and 1d analysis; returns the setup and per-timeframe sources."""
        labels = list(TIMEFRAME_REQUESTS)
        fetched = await asyncio.gather(
            *(self.index_bars(*TIMEFRAME_REQUESTS[label]) for label in labels)
        )
        by_label = dict(zip(labels, fetched))
        gift_bars, gift_source = await self.gift_nifty()
        # Only a real GIFT print measures the overnight gap
        pre_market = gift_bars[-1].close if gift_bars and gift_source == "live" else None

        setup = await asyncio.to_thread(
            analyze_multi_timeframe,
            by_label["15m"][0],
            by_label["1h"][0],
            by_label["1d"][0],
            self._config.session_bars,
            pre_market,
        )
        logger.info(
            "Morning setup: %s (%d%%) suggestion=%s confidence=%d risk=%s",
            setup.trend, setup.trend_strength, setup.suggestion,
            setup.confidence, setup.risk_level,
        )
        return setup, {label: source for label, (_, source) in by_label.items()}

    async def prediction(self) -> tuple[NextDayPrediction, Optional[OptionChainSummary], str]:
        """Next-day prediction fused with the option chain and macro snapshot."""
        bars, source = await self.index_bars(*PREDICTION_REQUEST)
        spot = bars[-1].close if bars else None
        _, chain = self.option_chain(spot)
        macro = await self.macro_snapshot()

        result = await asyncio.to_thread(predict_with_context, bars, chain, macro)
        logger.info(
            "Next-day prediction: %s confidence=%d", result.direction, result.confidence,
        )
        return result, chain, source

    async def fii_dii_signal(self) -> tuple[FiiDiiFlow, FlowSignal, str]:
        """Institutional flows with an entry plan against intraday S/R levels.

        ``source`` tags the bars the levels and current price came from.
        """
        levels, bars, source = await self.levels()
        flows = self.fii_dii()
        price = bars[-1].close if bars else 0.0
        signal = fii_dii_signal(flows, price, levels)
        logger.info(
            "FII/DII signal: %s %s net=%.2f", signal.strength, signal.signal, flows.net_fii,
        )
        return flows, signal, source
