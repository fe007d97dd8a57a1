"""Session trend analysis — EMA alignment, day change, RSI and volume scoring.

``analyze_session()`` reads the previous trading session (the trailing
*session_bars* bars supplied by the caller) and returns a ``TrendSetup``
with a trend label, an additive 0-100 strength score, a call/put/wait
suggestion and a trading plan anchored on the session close.
"""

from typing import Optional

from niftypulse.analysis.indicators import (
    analyze_volume,
    calculate_ema,
    calculate_pivot_points,
    calculate_rsi,
)
from niftypulse.analysis.models import (
    Bar,
    KeyLevels,
    PreMarketAnalysis,
    Suggestion,
    TradingStrategy,
    TrendSetup,
)


MIN_SESSION_BARS = 20
DEFAULT_SESSION_BARS = 96  # one session of 15-minute bars

STOP_LOSS_PCT = 1.5
TARGET1_PCT = 2.5
TARGET2_PCT = 4.0

GAP_THRESHOLD_PCT = 0.1


def default_setup() -> TrendSetup:
    """Neutral setup returned when there is not enough data to analyse."""
    return TrendSetup(
        trend="sideways",
        trend_strength=0,
        suggestion="wait",
        confidence=0,
        key_levels=KeyLevels(support=0.0, resistance=0.0, pivot=0.0),
        reasoning=["Insufficient data for trend analysis"],
        trading_strategy=TradingStrategy(
            entry_strategy="Wait for more data",
            stop_loss=0.0,
            target1=0.0,
            target2=0.0,
        ),
    )


def build_trading_strategy(
    suggestion: Suggestion,
    close: float,
    support: float,
    resistance: float,
) -> TradingStrategy:
    """Stop and targets as fixed percentages of *close* in the trade direction."""
    if suggestion == "buy_call":
        return TradingStrategy(
            entry_strategy=(
                f"Buy Call at support level {support:.2f} "
                f"or on breakout above {resistance:.2f}"
            ),
            stop_loss=close * (1 - STOP_LOSS_PCT / 100),
            target1=close * (1 + TARGET1_PCT / 100),
            target2=close * (1 + TARGET2_PCT / 100),
        )
    if suggestion == "buy_put":
        return TradingStrategy(
            entry_strategy=(
                f"Buy Put at resistance level {resistance:.2f} "
                f"or on breakdown below {support:.2f}"
            ),
            stop_loss=close * (1 + STOP_LOSS_PCT / 100),
            target1=close * (1 - TARGET1_PCT / 100),
            target2=close * (1 - TARGET2_PCT / 100),
        )
    return TradingStrategy(
        entry_strategy="Wait for clear trend confirmation before entering",
        stop_loss=0.0,
        target1=0.0,
        target2=0.0,
    )


def _pre_market_gap(close: float, pre_market_price: Optional[float]) -> PreMarketAnalysis:
    if pre_market_price is None or close <= 0:
        return PreMarketAnalysis()
    gap = pre_market_price - close
    gap_pct = gap / close * 100
    if gap_pct > GAP_THRESHOLD_PCT:
        direction = "up"
    elif gap_pct < -GAP_THRESHOLD_PCT:
        direction = "down"
    else:
        direction = "neutral"
    return PreMarketAnalysis(overnight_gap=gap, gap_percent=gap_pct, gap_direction=direction)


def analyze_session(
    bars: list[Bar],
    session_bars: int = DEFAULT_SESSION_BARS,
    pre_market_price: Optional[float] = None,
) -> TrendSetup:
    """Score the trend of the trailing session and suggest a trade.

    Args:
        bars: Bar history, oldest-first.
        session_bars: Number of trailing bars that make up one session.
        pre_market_price: Optional pre-open quote for gap reporting only.

    Returns:
        ``TrendSetup``; ``default_setup()`` when fewer than
        ``MIN_SESSION_BARS`` bars are usable.

    Scoring (additive, clamped to 0-100):
        - EMA9 > EMA21 > EMA50 and close > EMA9 → uptrend, +40 (mirror bearish).
        - Session change beyond ±0.5 % → +20, sets the trend if still sideways.
        - RSI > 60 in an uptrend or < 40 in a downtrend → +15;
          otherwise RSI > 70 or < 30 → -10.
        - Volume strength > 0.7 and rising → +15; strength < 0.3 → -10.
    """
    session = bars[-session_bars:] if session_bars > 0 else []
    if len(bars) < MIN_SESSION_BARS or len(session) < MIN_SESSION_BARS:
        return default_setup()

    day_high = max(b.high for b in session)
    day_low = min(b.low for b in session)
    day_open = session[0].open
    day_close = session[-1].close

    ema9 = calculate_ema(session, 9)
    ema21 = calculate_ema(session, 21)
    ema50 = calculate_ema(session, 50)
    rsi = calculate_rsi(session)
    volume = analyze_volume(session)

    pivot, resistance1, support1 = calculate_pivot_points(day_high, day_low, day_close)

    trend = "sideways"
    strength = 0
    reasoning: list[str] = []

    # EMA alignment
    if ema9 > ema21 > ema50 and day_close > ema9:
        trend = "uptrend"
        strength += 40
        reasoning.append("Bullish EMA alignment (EMA9 > EMA21 > EMA50)")
        reasoning.append("Price closed above EMA9 - bullish momentum")
    elif ema9 < ema21 < ema50 and day_close < ema9:
        trend = "downtrend"
        strength += 40
        reasoning.append("Bearish EMA alignment (EMA9 < EMA21 < EMA50)")
        reasoning.append("Price closed below EMA9 - bearish momentum")
    else:
        reasoning.append("Mixed EMA signals - sideways trend")

    # Session price action
    change_pct = (day_close - day_open) / day_open * 100 if day_open else 0.0
    if change_pct > 0.5:
        strength += 20
        reasoning.append(f"Strong bullish session: +{change_pct:.2f}%")
        if trend == "sideways":
            trend = "uptrend"
    elif change_pct < -0.5:
        strength += 20
        reasoning.append(f"Strong bearish session: {change_pct:.2f}%")
        if trend == "sideways":
            trend = "downtrend"
    else:
        reasoning.append(f"Neutral session: {change_pct:+.2f}%")

    # RSI
    if rsi > 60 and trend == "uptrend":
        strength += 15
        reasoning.append(f"RSI ({rsi:.1f}) confirms bullish trend")
    elif rsi < 40 and trend == "downtrend":
        strength += 15
        reasoning.append(f"RSI ({rsi:.1f}) confirms bearish trend")
    elif rsi > 70:
        strength -= 10
        reasoning.append(f"RSI ({rsi:.1f}) overbought - potential pullback")
    elif rsi < 30:
        strength -= 10
        reasoning.append(f"RSI ({rsi:.1f}) oversold - potential bounce")

    # Volume
    if volume.strength > 0.7 and volume.trend == "increasing":
        strength += 15
        reasoning.append(f"High volume ({volume.strength:.0%}) confirms trend")
    elif volume.strength < 0.3:
        strength -= 10
        reasoning.append(f"Low volume ({volume.strength:.0%}) - weak trend")

    strength = max(0, min(100, strength))

    if trend == "uptrend" and strength > 50:
        suggestion = "buy_call"
        confidence = min(90, strength + 10)
        reasoning.append("Uptrend detected - buy call options")
    elif trend == "downtrend" and strength > 50:
        suggestion = "buy_put"
        confidence = min(90, strength + 10)
        reasoning.append("Downtrend detected - buy put options")
    else:
        suggestion = "wait"
        confidence = max(30, strength)
        reasoning.append("Sideways or unclear - wait for a clearer signal")

    return TrendSetup(
        trend=trend,
        trend_strength=strength,
        suggestion=suggestion,
        confidence=confidence,
        key_levels=KeyLevels(support=support1, resistance=resistance1, pivot=pivot),
        reasoning=reasoning,
        trading_strategy=build_trading_strategy(suggestion, day_close, support1, resistance1),
        pre_market=_pre_market_gap(day_close, pre_market_price),
        reference_price=day_close,
    )
