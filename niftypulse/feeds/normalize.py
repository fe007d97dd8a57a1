"""Chart payload normalisation — Yahoo Finance v8 JSON to clean, ordered bars.

Pure functions, no I/O.
"""

from niftypulse.analysis.models import Bar


MAX_RANGE_PCT = 5.0  # wider bars are squeezed around their midpoint
REJECT_RANGE_PCT = 10.0  # bars still wider than this are dropped
FIVE_MINUTES = 300


def _value(series: list, index: int) -> float:
    try:
        raw = series[index]
    except (IndexError, TypeError):
        return 0.0
    return float(raw) if raw else 0.0


def _range_pct(bar: dict) -> float:
    mid = (bar["open"] + bar["close"]) / 2
    return (bar["high"] - bar["low"]) / mid * 100


def _repair(bar: dict) -> dict:
    """Make high/low bracket open/close and cap an excessive range."""
    top = max(bar["open"], bar["close"])
    bottom = min(bar["open"], bar["close"])
    bar["high"] = max(bar["high"], top)
    bar["low"] = min(bar["low"], bottom)
    if bar["high"] < bar["low"]:
        bar["high"], bar["low"] = top, bottom

    if _range_pct(bar) > MAX_RANGE_PCT:
        mid = (bar["open"] + bar["close"]) / 2
        half_range = mid * MAX_RANGE_PCT / 100 / 2
        center = (bar["high"] + bar["low"]) / 2
        bar["high"] = max(center + half_range, top)
        bar["low"] = min(center - half_range, bottom)
    return bar


def _is_valid(bar: dict) -> bool:
    return (
        bar["time"] > 0
        and bar["open"] > 0
        and bar["close"] > 0
        and bar["low"] > 0
        and bar["high"] >= bar["low"]
        and bar["high"] >= max(bar["open"], bar["close"])
        and bar["low"] <= min(bar["open"], bar["close"])
        and _range_pct(bar) <= REJECT_RANGE_PCT
    )


def parse_chart_payload(payload: dict, interval: str = "1m") -> list[Bar]:
    """Convert a Yahoo Finance chart response into bars.

    Steps:
        1. Drop rows with a non-positive open, high, low or close.
        2. Align ``5m`` timestamps down to the 5-minute boundary.
        3. Round prices to 2 dp; merge rows sharing a timestamp (first open,
           max high, min low, last close, summed volume).
        4. Repair high/low, squeeze ranges above 5 %, drop ranges above 10 %.
        5. Sort by time.

    Raises ``ValueError`` if the payload carries no chart result.
    """
    results = (payload.get("chart") or {}).get("result") or []
    if not results:
        raise ValueError("No chart data available")

    result = results[0]
    timestamps = result.get("timestamp") or []
    quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0]
    opens = quotes.get("open") or []
    highs = quotes.get("high") or []
    lows = quotes.get("low") or []
    closes = quotes.get("close") or []
    volumes = quotes.get("volume") or []

    merged: dict[int, dict] = {}
    for i, ts in enumerate(timestamps):
        o, h, l, c = _value(opens, i), _value(highs, i), _value(lows, i), _value(closes, i)
        if o <= 0 or h <= 0 or l <= 0 or c <= 0:
            continue

        t = int(ts)
        if interval == "5m":
            t -= t % FIVE_MINUTES

        row = {
            "time": t,
            "open": round(o, 2),
            "high": round(max(h, o, c), 2),
            "low": round(min(l, o, c), 2),
            "close": round(c, 2),
            "volume": int(_value(volumes, i)),
        }

        existing = merged.get(t)
        if existing is None:
            merged[t] = row
        else:
            existing["high"] = max(existing["high"], row["high"])
            existing["low"] = min(existing["low"], row["low"])
            existing["close"] = row["close"]
            existing["volume"] += row["volume"]

    bars = [_repair(row) for row in merged.values()]
    return [
        Bar(**row)
        for row in sorted(bars, key=lambda r: r["time"])
        if _is_valid(row)
    ]


def latest_quote(payload: dict) -> tuple[float, float]:
    """Return ``(last_close, previous_close)`` from a chart payload.

    The previous close comes from ``meta.previousClose`` and falls back to
    the last close.  Raises ``ValueError`` on an empty chart.
    """
    results = (payload.get("chart") or {}).get("result") or []
    if not results:
        raise ValueError("No chart data available")

    result = results[0]
    quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0]
    closes = [c for c in (quotes.get("close") or []) if c]
    price = float(closes[-1]) if closes else 0.0
    previous = float((result.get("meta") or {}).get("previousClose") or price)
    return price, previous
