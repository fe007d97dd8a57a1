"""Next-day prediction — technical bias, then option-chain and macro fusion.

``predict_next_day()`` reads only the trailing window of bars.
``predict_with_context()`` adds option-chain sentiment, put-call ratio,
commodity moves and institutional flows, and turns the result into a
concrete option order.  ``fii_dii_signal()`` grades institutional activity
and plans an option entry at the nearest support or resistance.
"""

import math
from typing import Optional

from niftypulse.analysis.indicators import calculate_rsi
from niftypulse.analysis.levels import find_nearest_level
from niftypulse.analysis.models import (
    Bar,
    BasicPrediction,
    Bias,
    Direction,
    FiiDiiFlow,
    FlowEntry,
    FlowSignal,
    FlowStrength,
    IndicatorSnapshot,
    MacroImpact,
    MacroSnapshot,
    NextDayPrediction,
    OptionChainSummary,
    OrderRecommendation,
    SRLevel,
)


PREDICTION_WINDOW = 20
MIN_CONFIDENCE = 5
MAX_CONFIDENCE = 95

GOLD_MOVE_PCT = 1.0
CRUDE_MOVE_PCT = 2.0
FII_FLOW_THRESHOLD = 500.0  # crores
ORDER_RISK_PCT = 2.0
STRIKE_OFFSET_PCT = 1.0

# FII/DII flow signal; flow thresholds in crores
STRONG_FLOW = 1000.0
MODERATE_FLOW = 500.0
ACTIVE_FLOW = 300.0
ENTRY_LEVEL_PROXIMITY = 0.02
ENTRY_OFFSET_PCT = 0.5
FLOW_STOP_PCT = 2.0
FLOW_TARGET_SCALE = 2000.0
MIN_FLOW_TARGET = 0.015
MAX_FLOW_TARGET = 0.05


def _clamp_confidence(value: int) -> int:
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, value))


def _window_ema(window: list[Bar], period: int) -> float:
    """EMA seeded with the window's first close and run over the whole window."""
    k = 2.0 / (period + 1)
    ema = window[0].close
    for bar in window[1:]:
        ema = bar.close * k + ema * (1 - k)
    return ema


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def predict_next_day(bars: list[Bar], window: int = PREDICTION_WINDOW) -> BasicPrediction:
    """Directional bias for the next session from the trailing *window* bars.

    Confidence starts at 50 and is adjusted additively:
        - EMA9 > EMA21 > EMA50 → up, +20 (mirror down).
        - RSI < 30 → up, +15; RSI > 70 → down, +15.
        - Window change > +1 % → up, +10; < -1 % → down, +10.
        - Rising volume with a non-neutral direction → +10.

    Later rules override the direction set by earlier ones.  Confidence is
    clamped to [5, 95].  Support and resistance are the window's lowest low
    and highest high.
    """
    if not bars:
        return BasicPrediction(
            next_day_price=0.0,
            confidence=MIN_CONFIDENCE,
            direction=Direction.NEUTRAL,
            support_level=0.0,
            resistance_level=0.0,
            reasoning=["Insufficient data"],
            indicators=IndicatorSnapshot(
                ema9=0.0, ema21=0.0, ema50=0.0, rsi=50.0,
                volume_strength=0.0, volume_trend="neutral",
            ),
        )

    recent = bars[-window:]
    current_price = recent[-1].close

    ema9 = _window_ema(recent, 9)
    ema21 = _window_ema(recent, 21)
    ema50 = _window_ema(recent, 50)
    rsi = calculate_rsi(recent)

    volumes = [b.volume or 0 for b in recent]
    avg_volume = sum(volumes) / len(volumes)
    last_volume = volumes[-1]
    volume_strength = min(100.0, last_volume / avg_volume * 100) if avg_volume > 0 else 0.0
    if last_volume > avg_volume * 1.2:
        volume_trend = "increasing"
    elif last_volume < avg_volume * 0.8:
        volume_trend = "decreasing"
    else:
        volume_trend = "neutral"

    direction = Direction.NEUTRAL
    confidence = 50
    reasoning: list[str] = []

    if ema9 > ema21 > ema50:
        direction = Direction.UP
        confidence += 20
        reasoning.append("Bullish EMA alignment (9 > 21 > 50)")
    elif ema9 < ema21 < ema50:
        direction = Direction.DOWN
        confidence += 20
        reasoning.append("Bearish EMA alignment (9 < 21 < 50)")

    if rsi < 30:
        direction = Direction.UP
        confidence += 15
        reasoning.append("RSI indicates oversold condition")
    elif rsi > 70:
        direction = Direction.DOWN
        confidence += 15
        reasoning.append("RSI indicates overbought condition")

    first_close = recent[0].close
    change_pct = (current_price - first_close) / first_close * 100 if first_close else 0.0
    if change_pct > 1:
        direction = Direction.UP
        confidence += 10
        reasoning.append("Strong upward momentum")
    elif change_pct < -1:
        direction = Direction.DOWN
        confidence += 10
        reasoning.append("Strong downward momentum")

    if volume_trend == "increasing" and direction != Direction.NEUTRAL:
        confidence += 10
        reasoning.append("Volume confirms trend")

    momentum = change_pct / 100
    return BasicPrediction(
        next_day_price=current_price * (1 + momentum * 0.5),
        confidence=_clamp_confidence(confidence),
        direction=direction,
        support_level=min(b.low for b in recent),
        resistance_level=max(b.high for b in recent),
        reasoning=reasoning or ["Neutral market conditions"],
        indicators=IndicatorSnapshot(
            ema9=ema9,
            ema21=ema21,
            ema50=ema50,
            rsi=rsi,
            volume_strength=volume_strength,
            volume_trend=volume_trend,
        ),
    )


def _commodity_impact(change_pct: float, threshold: float) -> str:
    """Rising gold or crude is read as risk-off for Indian equities."""
    if change_pct > threshold:
        return "bearish"
    if change_pct < -threshold:
        return "bullish"
    return "neutral"


def predict_with_context(
    bars: list[Bar],
    option_chain: Optional[OptionChainSummary] = None,
    macro: Optional[MacroSnapshot] = None,
) -> NextDayPrediction:
    """Fuse the basic prediction with option-chain and macro inputs.

    Confidence adjustments are independent and additive, then clamped to
    [5, 95]:
        - Option-chain sentiment bullish or bearish → +5.
        - PCR(OI) > 1.2 or < 0.8 → +3.
        - Net FII flow beyond ±500 crores → +5.

    Gold (±1 %) and crude (±2 %) moves are tagged in the impact map but do
    not move confidence.
    """
    base = predict_next_day(bars)
    current_price = bars[-1].close if bars else 0.0
    bias = base.direction.bias

    confidence = base.confidence
    reasoning = list(base.reasoning)

    if option_chain is not None:
        if option_chain.sentiment == "bullish":
            confidence += 5
            reasoning.append("Option chain shows bullish sentiment")
        elif option_chain.sentiment == "bearish":
            confidence += 5
            reasoning.append("Option chain shows bearish sentiment")

        if option_chain.pcr_oi > 1.2:
            confidence += 3
            reasoning.append("High Put-Call Ratio (OI) indicates support")
        elif option_chain.pcr_oi < 0.8:
            confidence += 3
            reasoning.append("Low Put-Call Ratio (OI) indicates resistance")

    gold_impact = crude_impact = fii_impact = None
    if macro is not None:
        if macro.gold is not None:
            gold_impact = _commodity_impact(macro.gold.change_percent or 0.0, GOLD_MOVE_PCT)
            if gold_impact == "bearish":
                reasoning.append("Gold rising indicates risk-off sentiment")
            elif gold_impact == "bullish":
                reasoning.append("Gold falling indicates risk-on sentiment")

        if macro.crude_oil is not None:
            crude_impact = _commodity_impact(
                macro.crude_oil.change_percent or 0.0, CRUDE_MOVE_PCT,
            )
            if crude_impact == "bearish":
                reasoning.append("Crude oil rising is negative for Indian markets")
            elif crude_impact == "bullish":
                reasoning.append("Crude oil falling is positive for Indian markets")

        if macro.fii_dii is not None:
            net_fii = macro.fii_dii.net_fii or 0.0
            if net_fii > FII_FLOW_THRESHOLD:
                fii_impact = "bullish"
                confidence += 5
                reasoning.append("Strong FII buying activity")
            elif net_fii < -FII_FLOW_THRESHOLD:
                fii_impact = "bearish"
                confidence += 5
                reasoning.append("Strong FII selling activity")
            else:
                fii_impact = "neutral"

    risk = ORDER_RISK_PCT / 100
    offset = STRIKE_OFFSET_PCT / 100
    if bias == "BULLISH":
        order = OrderRecommendation(
            option_type="CALL",
            strike=_round_half_up(current_price * (1 + offset)),
            entry_level=current_price,
            stop_loss=current_price * (1 - risk),
            target=current_price * (1 + risk),
        )
    else:
        order = OrderRecommendation(
            option_type="PUT",
            strike=_round_half_up(current_price * (1 - offset)),
            entry_level=current_price,
            stop_loss=current_price * (1 + risk),
            target=current_price * (1 - risk),
        )

    return NextDayPrediction(
        direction=bias,
        confidence=_clamp_confidence(confidence),
        current_price=current_price,
        predicted_price=base.next_day_price,
        support_level=base.support_level,
        resistance_level=base.resistance_level,
        order_recommendation=order,
        global_markets=MacroImpact(gold=gold_impact, crude_oil=crude_impact, fii_dii=fii_impact),
        reasoning=reasoning,
    )


# ── Institutional flow signal ────────────────────────────────────────────


def classify_flows(fii_equity: float, dii_equity: float) -> tuple[FlowStrength, Bias, bool]:
    """Grade FII/DII equity activity.

    Returns ``(strength, signal, is_bullish)``.  Heavy FII buying, or FII
    buying met by DII selling, is bullish (mirror bearish).  MILD activity
    leans with the FII sign and reads NEUTRAL when FII is flat and DII is
    not selling.  *is_bullish* picks the side of the entry plan.
    """
    strong_bull = fii_equity > STRONG_FLOW or (
        fii_equity > MODERATE_FLOW and dii_equity < -MODERATE_FLOW
    )
    strong_bear = fii_equity < -STRONG_FLOW or (
        fii_equity < -MODERATE_FLOW and dii_equity > MODERATE_FLOW
    )
    moderate_bull = MODERATE_FLOW < fii_equity <= STRONG_FLOW or (
        fii_equity > 0 and dii_equity < -ACTIVE_FLOW
    )
    moderate_bear = -STRONG_FLOW <= fii_equity < -MODERATE_FLOW or (
        fii_equity < 0 and dii_equity > ACTIVE_FLOW
    )

    if strong_bull or strong_bear:
        bullish = strong_bull
        return "STRONG", "BULLISH" if bullish else "BEARISH", bullish
    if moderate_bull or moderate_bear:
        bullish = moderate_bull
        return "MODERATE", "BULLISH" if bullish else "BEARISH", bullish

    bullish = fii_equity > 0 or (fii_equity == 0 and dii_equity < 0)
    if bullish:
        return "MILD", "BULLISH", True
    return "MILD", "BEARISH" if fii_equity < 0 else "NEUTRAL", False


def _flow_entry(
    bullish: bool,
    current_price: float,
    net_fii: float,
    levels: list[SRLevel],
) -> FlowEntry:
    support = find_nearest_level(current_price, levels, "support")
    resistance = find_nearest_level(current_price, levels, "resistance")
    target_pct = max(min(abs(net_fii) / FLOW_TARGET_SCALE, MAX_FLOW_TARGET), MIN_FLOW_TARGET)
    stop_pct = FLOW_STOP_PCT / 100
    offset = ENTRY_OFFSET_PCT / 100

    if bullish:
        # Buy calls at a support just below price
        if (
            support is not None
            and support.price < current_price
            and (current_price - support.price) / current_price < ENTRY_LEVEL_PROXIMITY
        ):
            entry = support.price
        else:
            entry = current_price * (1 - offset)
        stop = entry * (1 - stop_pct)
        target = entry * (1 + target_pct)
        risk, reward = entry - stop, target - entry
        option_type, strike = "CALL", entry * (1 + STRIKE_OFFSET_PCT / 100)
    else:
        # Buy puts at a resistance just above price
        if (
            resistance is not None
            and resistance.price > current_price
            and (resistance.price - current_price) / current_price < ENTRY_LEVEL_PROXIMITY
        ):
            entry = resistance.price
        else:
            entry = current_price * (1 + offset)
        stop = entry * (1 + stop_pct)
        target = entry * (1 - target_pct)
        risk, reward = stop - entry, entry - target
        option_type, strike = "PUT", entry * (1 - STRIKE_OFFSET_PCT / 100)

    return FlowEntry(
        bias="BULLISH" if bullish else "BEARISH",
        option_type=option_type,
        entry_level=_round_half_up(entry),
        stop_loss=_round_half_up(stop),
        target=_round_half_up(target),
        risk_reward=round(reward / risk, 2) if risk > 0 else 0.0,
        strike=_round_half_up(strike),
        support_ref=_round_half_up(support.price) if support is not None else None,
        resistance_ref=_round_half_up(resistance.price) if resistance is not None else None,
    )


def fii_dii_signal(
    flows: FiiDiiFlow,
    current_price: float,
    levels: list[SRLevel],
) -> FlowSignal:
    """Institutional-flow signal with an option entry plan.

    The entry anchors on the nearest support (bullish) or resistance
    (bearish) when it lies on the trade side within 2 % of *current_price*,
    otherwise 0.5 % away from price.  Stop is 2 % beyond entry; the target
    distance scales with ``|net_fii| / 2000`` bounded to 1.5-5 %.  No entry
    plan is produced without a positive price.
    """
    strength, signal, bullish = classify_flows(
        flows.fii.equity, flows.dii.equity,
    )
    entry = None
    if current_price > 0:
        entry = _flow_entry(bullish, current_price, flows.net_fii, levels)
    return FlowSignal(strength=strength, signal=signal, entry=entry)
