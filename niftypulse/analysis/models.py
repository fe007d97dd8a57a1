"""Analysis data models — typed value objects for bars, levels, setups and predictions.

Attributes are snake_case; ``to_dict()`` emits the camelCase JSON contract
consumed by the dashboard.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional


TrendLabel = Literal["uptrend", "downtrend", "sideways"]
Suggestion = Literal["buy_call", "buy_put", "wait"]
VolumeTrend = Literal["increasing", "decreasing", "neutral"]
Sentiment = Literal["bullish", "bearish", "neutral"]
Bias = Literal["BULLISH", "BEARISH", "NEUTRAL"]
FlowStrength = Literal["STRONG", "MODERATE", "MILD"]


@dataclass(frozen=True)
class Bar:
    """A single OHLCV candle. ``time`` is epoch seconds."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class SRLevel:
    """A support or resistance price level."""

    price: float
    level_type: Literal["support", "resistance"]
    strength: float  # 0-1
    touches: int

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "type": self.level_type,
            "strength": self.strength,
            "touches": self.touches,
        }


@dataclass(frozen=True)
class VolumeAnalysis:
    """Recent-versus-average volume read used by the session analyzer."""

    strength: float  # 0-1
    trend: VolumeTrend


@dataclass(frozen=True)
class IndicatorSnapshot:
    ema9: float
    ema21: float
    ema50: float
    rsi: float
    volume_strength: float  # 0-100
    volume_trend: VolumeTrend

    def to_dict(self) -> dict:
        return {
            "ema9": self.ema9,
            "ema21": self.ema21,
            "ema50": self.ema50,
            "rsi": self.rsi,
            "volumeStrength": self.volume_strength,
            "volumeTrend": self.volume_trend,
        }


# ── Trend setups ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class KeyLevels:
    support: float
    resistance: float
    pivot: float

    def to_dict(self) -> dict:
        return {
            "support": self.support,
            "resistance": self.resistance,
            "pivot": self.pivot,
        }


@dataclass(frozen=True)
class TradingStrategy:
    entry_strategy: str
    stop_loss: float
    target1: float
    target2: float

    def to_dict(self) -> dict:
        return {
            "entryStrategy": self.entry_strategy,
            "stopLoss": self.stop_loss,
            "target1": self.target1,
            "target2": self.target2,
        }


@dataclass(frozen=True)
class PreMarketAnalysis:
    """Overnight gap between the session close and a pre-market quote."""

    overnight_gap: float = 0.0
    gap_percent: float = 0.0
    gap_direction: Literal["up", "down", "neutral"] = "neutral"

    def to_dict(self) -> dict:
        return {
            "overnightGap": self.overnight_gap,
            "gapPercent": self.gap_percent,
            "gapDirection": self.gap_direction,
        }


@dataclass(frozen=True)
class TrendSetup:
    """Trend classification and trade suggestion for one timeframe."""

    trend: TrendLabel
    trend_strength: int  # 0-100
    suggestion: Suggestion
    confidence: int  # 0-100
    key_levels: KeyLevels
    reasoning: list[str]
    trading_strategy: TradingStrategy
    pre_market: PreMarketAnalysis = field(default_factory=PreMarketAnalysis)
    reference_price: float = 0.0  # session close

    def to_dict(self) -> dict:
        return {
            "trend": self.trend,
            "trendStrength": self.trend_strength,
            "suggestion": self.suggestion,
            "confidence": self.confidence,
            "keyLevels": self.key_levels.to_dict(),
            "reasoning": list(self.reasoning),
            "tradingStrategy": self.trading_strategy.to_dict(),
            "preMarketAnalysis": self.pre_market.to_dict(),
            "referencePrice": self.reference_price,
        }


@dataclass(frozen=True)
class TimeframeSignal:
    trend: TrendLabel
    strength: int
    signal: str

    def to_dict(self) -> dict:
        return {"trend": self.trend, "strength": self.strength, "signal": self.signal}


@dataclass(frozen=True)
class MultiTimeframeSetup(TrendSetup):
    """A ``TrendSetup`` fused from three timeframes."""

    timeframe_analysis: dict[str, TimeframeSignal] = field(default_factory=dict)
    risk_level: Literal["low", "medium", "high"] = "medium"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["timeframeAnalysis"] = {
            label: sig.to_dict() for label, sig in self.timeframe_analysis.items()
        }
        data["riskLevel"] = self.risk_level
        return data


# ── Option chain ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OptionLeg:
    strike_price: float
    open_interest: float
    change_in_open_interest: float
    volume: float
    ltp: float

    def to_dict(self) -> dict:
        return {
            "strikePrice": self.strike_price,
            "openInterest": self.open_interest,
            "changeInOpenInterest": self.change_in_open_interest,
            "volume": self.volume,
            "ltp": self.ltp,
        }


@dataclass(frozen=True)
class OptionChainSummary:
    timestamp: str
    pcr_oi: float
    pcr_volume: float
    bullish_strength: float  # 0-1
    sentiment: Sentiment
    top_calls: list[OptionLeg]
    top_puts: list[OptionLeg]

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "pcrOI": self.pcr_oi,
            "pcrVolume": self.pcr_volume,
            "bullishStrength": self.bullish_strength,
            "sentiment": self.sentiment,
            "topCalls": [leg.to_dict() for leg in self.top_calls],
            "topPuts": [leg.to_dict() for leg in self.top_puts],
        }


# ── Macro inputs ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CommodityQuote:
    name: str
    symbol: str
    price: float
    change: float
    change_percent: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FlowBreakdown:
    """Net buy/sell value in crores for one investor class."""

    equity: float
    debt: float
    total: float

    def to_dict(self) -> dict:
        return {"equity": self.equity, "debt": self.debt, "total": self.total}


@dataclass(frozen=True)
class FiiDiiFlow:
    date: str
    fii: FlowBreakdown
    dii: FlowBreakdown
    net_fii: float

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "fii": self.fii.to_dict(),
            "dii": self.dii.to_dict(),
            "netFII": self.net_fii,
        }


@dataclass(frozen=True)
class MacroSnapshot:
    """Commodity and institutional-flow inputs; every part is optional."""

    gold: Optional[CommodityQuote] = None
    crude_oil: Optional[CommodityQuote] = None
    fii_dii: Optional[FiiDiiFlow] = None

    def to_dict(self) -> dict:
        commodities = {}
        if self.gold is not None:
            commodities["gold"] = self.gold.to_dict()
        if self.crude_oil is not None:
            commodities["crudeOil"] = self.crude_oil.to_dict()
        data: dict = {"commodities": commodities}
        if self.fii_dii is not None:
            data["fiiDii"] = self.fii_dii.to_dict()
        return data


# ── Predictions ──────────────────────────────────────────────────────────


class Direction(str, Enum):
    """Next-day direction of the basic predictor."""

    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"

    @property
    def bias(self) -> Bias:
        return _BIAS_BY_DIRECTION[self]


_BIAS_BY_DIRECTION: dict[Direction, Bias] = {
    Direction.UP: "BULLISH",
    Direction.DOWN: "BEARISH",
    Direction.NEUTRAL: "NEUTRAL",
}


@dataclass(frozen=True)
class BasicPrediction:
    next_day_price: float
    confidence: int
    direction: Direction
    support_level: float
    resistance_level: float
    reasoning: list[str]
    indicators: IndicatorSnapshot

    def to_dict(self) -> dict:
        return {
            "nextDayPrice": self.next_day_price,
            "confidence": self.confidence,
            "direction": self.direction.value,
            "supportLevel": self.support_level,
            "resistanceLevel": self.resistance_level,
            "reasoning": list(self.reasoning),
            "indicators": self.indicators.to_dict(),
        }


@dataclass(frozen=True)
class OrderRecommendation:
    option_type: Literal["CALL", "PUT"]
    strike: int
    entry_level: float
    stop_loss: float
    target: float

    def to_dict(self) -> dict:
        return {
            "type": self.option_type,
            "strike": self.strike,
            "entryLevel": self.entry_level,
            "stopLoss": self.stop_loss,
            "target": self.target,
        }


@dataclass(frozen=True)
class MacroImpact:
    """Impact tags derived from a ``MacroSnapshot``. ``None`` means no input."""

    gold: Optional[Sentiment] = None
    crude_oil: Optional[Sentiment] = None
    fii_dii: Optional[Sentiment] = None

    def to_dict(self) -> dict:
        data: dict = {}
        commodities = {}
        if self.gold is not None:
            commodities["gold"] = {"impact": self.gold}
        if self.crude_oil is not None:
            commodities["crudeOil"] = {"impact": self.crude_oil}
        if commodities:
            data["commodities"] = commodities
        if self.fii_dii is not None:
            data["fiiDii"] = {"impact": self.fii_dii}
        return data


@dataclass(frozen=True)
class NextDayPrediction:
    direction: Bias
    confidence: int
    current_price: float
    predicted_price: float
    support_level: float
    resistance_level: float
    order_recommendation: OrderRecommendation
    global_markets: MacroImpact
    reasoning: list[str]

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "confidence": self.confidence,
            "currentPrice": self.current_price,
            "predictedPrice": self.predicted_price,
            "supportLevel": self.support_level,
            "resistanceLevel": self.resistance_level,
            "orderRecommendations": self.order_recommendation.to_dict(),
            "analysis": {"globalMarkets": self.global_markets.to_dict()},
            "reasoning": list(self.reasoning),
        }


# ── Institutional flow signal ────────────────────────────────────────────


@dataclass(frozen=True)
class FlowEntry:
    """Option entry plan derived from FII/DII activity; prices are whole points."""

    bias: Bias
    option_type: Literal["CALL", "PUT"]
    entry_level: int
    stop_loss: int
    target: int
    risk_reward: float
    strike: int
    support_ref: Optional[int]
    resistance_ref: Optional[int]

    def to_dict(self) -> dict:
        return {
            "type": self.bias,
            "optionType": self.option_type,
            "entryLevel": self.entry_level,
            "stopLoss": self.stop_loss,
            "target": self.target,
            "riskReward": self.risk_reward,
            "strike": self.strike,
            "supportRef": self.support_ref,
            "resistanceRef": self.resistance_ref,
        }


@dataclass(frozen=True)
class FlowSignal:
    strength: FlowStrength
    signal: Bias
    entry: Optional[FlowEntry]  # None without a current price

    def to_dict(self) -> dict:
        return {
            "strength": self.strength,
            "signal": self.signal,
            "entryLevels": self.entry.to_dict() if self.entry is not None else None,
        }
