"""Multi-timeframe fusion — weighted vote over 15m, 1h and 1d session setups."""

from typing import Optional

from niftypulse.analysis.models import (
    Bar,
    MultiTimeframeSetup,
    TimeframeSignal,
    TrendSetup,
)
from niftypulse.analysis.trend import (
    DEFAULT_SESSION_BARS,
    analyze_session,
    build_trading_strategy,
)


# Longer timeframes carry more weight; weights sum to 1.0.
TIMEFRAME_WEIGHTS: dict[str, float] = {
    "1d": 0.40,
    "1h": 0.35,
    "15m": 0.25,
}

STRONG_CONFIDENCE = 65
STANDARD_CONFIDENCE = 60
HIGH_RISK_CONFIDENCE = 50

_TIMEFRAME_NAMES = {"1d": "1 Day", "1h": "1 Hour", "15m": "15 Min"}


def timeframe_signal_label(setup: TrendSetup) -> str:
    if setup.suggestion == "buy_call":
        return "BUY CALL"
    if setup.suggestion == "buy_put":
        return "BUY PUT"
    return "WAIT"


def combine_timeframes(
    setup_short: TrendSetup,
    setup_medium: TrendSetup,
    setup_long: TrendSetup,
) -> MultiTimeframeSetup:
    """Fuse three independent session setups into one.

    Each setup adds ``trend_strength × weight`` to the score of its own
    trend label.  A directional label wins only when strictly above both
    others; otherwise the overall trend is sideways.  Confidence is the
    weighted average of the three confidences; thresholds compare the
    unrounded average and only the emitted value is rounded.

    Key levels and the reference price come from the long timeframe.
    """
    setups = {"1d": setup_long, "1h": setup_medium, "15m": setup_short}

    scores = {"uptrend": 0.0, "downtrend": 0.0, "sideways": 0.0}
    for label, setup in setups.items():
        scores[setup.trend] += setup.trend_strength * TIMEFRAME_WEIGHTS[label]

    if scores["uptrend"] > scores["downtrend"] and scores["uptrend"] > scores["sideways"]:
        overall = "uptrend"
    elif scores["downtrend"] > scores["uptrend"] and scores["downtrend"] > scores["sideways"]:
        overall = "downtrend"
    else:
        overall = "sideways"

    strength = round(max(0.0, min(100.0, scores[overall])))
    weighted_conf = max(0.0, min(100.0, sum(
        setup.confidence * TIMEFRAME_WEIGHTS[label] for label, setup in setups.items()
    )))

    reasoning = [
        f"{_TIMEFRAME_NAMES[label]} trend: {setup.trend.upper()} "
        f"({setup.trend_strength}% strength) - {timeframe_signal_label(setup)}"
        for label, setup in setups.items()
    ]

    all_up = all(s.trend == "uptrend" for s in setups.values())
    all_down = all(s.trend == "downtrend" for s in setups.values())

    if all_up and weighted_conf > STRONG_CONFIDENCE:
        suggestion = "buy_call"
        reasoning.append("STRONG BUY CALL: all timeframes aligned in uptrend")
    elif all_down and weighted_conf > STRONG_CONFIDENCE:
        suggestion = "buy_put"
        reasoning.append("STRONG BUY PUT: all timeframes aligned in downtrend")
    elif overall == "uptrend" and weighted_conf > STANDARD_CONFIDENCE:
        suggestion = "buy_call"
        reasoning.append("BUY CALL: overall trend is up across timeframes")
    elif overall == "downtrend" and weighted_conf > STANDARD_CONFIDENCE:
        suggestion = "buy_put"
        reasoning.append("BUY PUT: overall trend is down across timeframes")
    else:
        suggestion = "wait"
        reasoning.append("WAIT: mixed signals across timeframes")

    for line in setup_long.reasoning:
        if line not in reasoning:
            reasoning.append(line)

    if all_up or all_down:
        risk_level = "low"
    elif weighted_conf < HIGH_RISK_CONFIDENCE:
        risk_level = "high"
    else:
        risk_level = "medium"

    levels = setup_long.key_levels
    return MultiTimeframeSetup(
        trend=overall,
        trend_strength=strength,
        suggestion=suggestion,
        confidence=round(weighted_conf),
        key_levels=levels,
        reasoning=reasoning,
        trading_strategy=build_trading_strategy(
            suggestion, setup_long.reference_price, levels.support, levels.resistance,
        ),
        pre_market=setup_long.pre_market,
        reference_price=setup_long.reference_price,
        timeframe_analysis={
            label: TimeframeSignal(
                trend=setup.trend,
                strength=setup.trend_strength,
                signal=timeframe_signal_label(setup),
            )
            for label, setup in setups.items()
        },
        risk_level=risk_level,
    )


def analyze_multi_timeframe(
    bars_short: list[Bar],
    bars_medium: list[Bar],
    bars_long: list[Bar],
    session_bars: int = DEFAULT_SESSION_BARS,
    pre_market_price: Optional[float] = None,
) -> MultiTimeframeSetup:
    """Analyse 15m, 1h and 1d bar histories independently and fuse them.

    *pre_market_price* only feeds the gap report of the long timeframe.
    """
    return combine_timeframes(
        analyze_session(bars_short, session_bars),
        analyze_session(bars_medium, session_bars),
        analyze_session(bars_long, session_bars, pre_market_price),
    )
