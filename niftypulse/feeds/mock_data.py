"""Synthetic market data used when live sources are unavailable.

Every generator takes its randomness from an explicit
``numpy.random.Generator`` so callers (and tests) control determinism.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import numpy as np

from niftypulse.analysis.models import (
    Bar,
    CommodityQuote,
    FiiDiiFlow,
    FlowBreakdown,
)


IST = ZoneInfo("Asia/Kolkata")

INDEX_FLOOR = 19500.0
INDEX_CEILING = 25500.0
STRIKE_STEP = 50

INTERVAL_MINUTES: dict[str, int] = {
    "1m": 1,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "1d": 1440,
}


def _align_end_time(end_time: datetime, interval_minutes: int) -> datetime:
    """Floor *end_time* (UTC) to the most recent completed interval boundary."""
    end_time = end_time.astimezone(timezone.utc)
    if interval_minutes >= 1440:
        return end_time.replace(hour=0, minute=0, second=0, microsecond=0)
    if interval_minutes >= 60:
        hours = interval_minutes // 60
        return end_time.replace(
            hour=(end_time.hour // hours) * hours, minute=0, second=0, microsecond=0,
        )
    return end_time.replace(
        minute=(end_time.minute // interval_minutes) * interval_minutes,
        second=0,
        microsecond=0,
    )


def generate_index_bars(
    rng: np.random.Generator,
    periods: int = 100,
    interval_minutes: int = 1,
    end_time: Optional[datetime] = None,
    start_price: Optional[float] = None,
) -> list[Bar]:
    """Generate a Nifty-like random walk of *periods* bars.

    The last bar is stamped at the most recent completed interval before
    *end_time* (default: now).  Per-bar volatility is 0.3-0.8 %, prices stay
    within 19,500-25,500, wicks are at most 0.8 % and volumes fall in
    1-6 crore.
    """
    end = _align_end_time(end_time or datetime.now(timezone.utc), interval_minutes)
    step = timedelta(minutes=interval_minutes)
    start = end - step * (periods - 1)

    price = start_price if start_price is not None else 22000 + rng.uniform(-1000, 1000)
    bars: list[Bar] = []
    for i in range(periods):
        volatility = 0.3 + rng.random() * 0.5
        drift = np.sin(i / 15) * 0.2
        walk = (rng.random() - 0.5) * volatility
        price = price * (1 + drift * 0.005 + walk * 0.005)
        price = max(INDEX_FLOOR, min(INDEX_CEILING, price))

        open_ = price
        close = open_ * (1 + (rng.random() - 0.5) * 0.015)
        high = max(open_, close) * (1 + rng.random() * 0.008)
        low = min(open_, close) * (1 - rng.random() * 0.008)

        bars.append(
            Bar(
                time=int((start + step * i).timestamp()),
                open=round(float(open_), 2),
                high=round(float(high), 2),
                low=round(float(low), 2),
                close=round(float(close), 2),
                volume=int(rng.integers(10_000_000, 60_000_000)),
            )
        )
    return bars


def _mock_leg(rng: np.random.Generator, strike: int, intrinsic: float) -> dict:
    return {
        "strikePrice": strike,
        "openInterest": int(rng.integers(100_000, 1_100_000)),
        "changeInOpenInterest": int(rng.integers(-50_000, 50_000)),
        "volume": int(rng.integers(50_000, 550_000)),
        "ltp": round(max(0.0, intrinsic + rng.random() * 100), 2),
    }


def mock_option_chain_entries(
    rng: np.random.Generator,
    spot: Optional[float] = None,
) -> list[dict]:
    """Raw chain entries around *spot*: 5 OTM calls above and 5 OTM puts below.

    Entries use the ``{"strikePrice", "call", "put"}`` shape with the
    opposite side set to ``None``.
    """
    if spot is None:
        spot = 22000 + rng.uniform(-1000, 1000)
    base = round(spot / STRIKE_STEP) * STRIKE_STEP
    strikes = [base + i * STRIKE_STEP for i in range(-10, 11)]

    call_strikes = [s for s in strikes if s > spot][:5]
    put_strikes = [s for s in strikes if s < spot][-5:]

    entries = [
        {"strikePrice": s, "call": _mock_leg(rng, s, spot - s), "put": None}
        for s in call_strikes
    ]
    entries += [
        {"strikePrice": s, "call": None, "put": _mock_leg(rng, s, s - spot)}
        for s in put_strikes
    ]
    return entries


def _date_seed(date_str: str, hour: int) -> int:
    return sum(int(ch) for ch in date_str if ch.isdigit()) + hour


def mock_fii_dii(now: Optional[datetime] = None) -> FiiDiiFlow:
    """Institutional flows (crores) seeded by the IST date and hour.

    The same IST hour always yields the same numbers.  DII flows lean
    against heavy FII activity, and ``net_fii = fii.equity - dii.equity``.
    """
    ist_now = (now or datetime.now(timezone.utc)).astimezone(IST)
    date_str = ist_now.strftime("%Y-%m-%d")
    rng = np.random.default_rng(_date_seed(date_str, ist_now.hour))
    r1, r2, r3, r4 = rng.random(4)

    fii_equity = round(r1 * 5000 - 2000, 2)
    if fii_equity > 1000:
        dii_equity = -r2 * 1000 - 200
    elif fii_equity < -1000:
        dii_equity = r3 * 1000 + 200
    else:
        dii_equity = r4 * 4000 - 1500
    dii_equity = round(float(dii_equity), 2)

    fii_debt, fii_extra, dii_debt, dii_extra = rng.random(4)
    fii = FlowBreakdown(
        equity=float(fii_equity),
        debt=round(float(fii_debt * 500 - 200), 2),
        total=round(float(fii_equity + fii_extra * 500 - 200), 2),
    )
    dii = FlowBreakdown(
        equity=dii_equity,
        debt=round(float(dii_debt * 300 - 100), 2),
        total=round(float(dii_equity + dii_extra * 300 - 100), 2),
    )
    return FiiDiiFlow(
        date=date_str,
        fii=fii,
        dii=dii,
        net_fii=round(fii.equity - dii.equity, 2),
    )


def fallback_commodities(timestamp: Optional[str] = None) -> tuple[CommodityQuote, CommodityQuote]:
    """Fixed gold and crude quotes used when the quote feed fails."""
    stamp = timestamp or datetime.now(timezone.utc).isoformat()
    gold = CommodityQuote(
        name="Gold", symbol="GC=F", price=2650.50, change=-5.20,
        change_percent=-0.20, timestamp=stamp,
    )
    crude = CommodityQuote(
        name="Crude Oil", symbol="CL=F", price=78.45, change=0.85,
        change_percent=1.10, timestamp=stamp,
    )
    return gold, crude
