"""CLI report — prints the pre-market setup and next-day prediction to the console."""

from niftypulse.analysis.models import MultiTimeframeSetup, NextDayPrediction


_RULE = "──────────────────────────────────────────────────"


def _price(value: float) -> str:
    return f"{value:,.2f}" if value else "N/A"


def format_setup(setup: MultiTimeframeSetup) -> str:
    """Format and print a multi-timeframe setup.

    Returns:
        The formatted string (also printed to stdout).
    """
    plan = setup.trading_strategy
    lines = [
        "────────────── NiftyPulse Morning Setup ──────────────",
        f"  Trend:           {setup.trend} ({setup.trend_strength}%)",
        f"  Suggestion:      {setup.suggestion}",
        f"  Confidence:      {setup.confidence}%",
        f"  Risk:            {setup.risk_level}",
        f"  Pivot:           {_price(setup.key_levels.pivot)}",
        f"  Support (S1):    {_price(setup.key_levels.support)}",
        f"  Resistance (R1): {_price(setup.key_levels.resistance)}",
        f"  Entry:           {plan.entry_strategy}",
        f"  Stop Loss:       {_price(plan.stop_loss)}",
        f"  Targets:         {_price(plan.target1)} / {_price(plan.target2)}",
    ]
    for label, signal in setup.timeframe_analysis.items():
        lines.append(f"  [{label:>3}]           {signal.trend} ({signal.strength}%) {signal.signal}")
    lines.append(_RULE)
    lines.extend(f"  - {line}" for line in setup.reasoning)
    lines.append(_RULE)
    output = "\n".join(lines)
    print(output)
    return output


def format_prediction(prediction: NextDayPrediction) -> str:
    """Format and print a next-day prediction.

    Returns:
        The formatted string (also printed to stdout).
    """
    order = prediction.order_recommendation
    impacts = prediction.global_markets
    lines = [
        "────────────── NiftyPulse Next-Day Bias ──────────────",
        f"  Direction:       {prediction.direction}",
        f"  Confidence:      {prediction.confidence}%",
        f"  Current:         {_price(prediction.current_price)}",
        f"  Predicted:       {_price(prediction.predicted_price)}",
        f"  Range:           {_price(prediction.support_level)} - {_price(prediction.resistance_level)}",
        f"  Order:           {order.option_type} {order.strike} @ {_price(order.entry_level)}",
        f"  Stop / Target:   {_price(order.stop_loss)} / {_price(order.target)}",
        f"  Gold:            {impacts.gold or 'N/A'}",
        f"  Crude Oil:       {impacts.crude_oil or 'N/A'}",
        f"  FII/DII:         {impacts.fii_dii or 'N/A'}",
        _RULE,
    ]
    output = "\n".join(lines)
    print(output)
    return output
