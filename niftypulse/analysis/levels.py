"""Support/Resistance level detection from OHLCV bars — pure functions."""

from typing import Literal, Optional

from niftypulse.analysis.models import Bar, SRLevel


CLUSTER_TOLERANCE = 0.01  # relative distance for merging pivots
MAX_LEVELS = 10
FALLBACK_TOUCH_TOLERANCE = 0.002


def _find_pivot_highs(bars: list[Bar], lookback: int) -> list[float]:
    """Highs that are strictly above every other high within ±*lookback* bars."""
    highs: list[float] = []
    for i in range(lookback, len(bars) - lookback):
        high = bars[i].high
        is_pivot = all(
            bars[j].high < high
            for j in range(i - lookback, i + lookback + 1)
            if j != i
        )
        if is_pivot:
            highs.append(high)
    return highs


def _find_pivot_lows(bars: list[Bar], lookback: int) -> list[float]:
    """Lows that are strictly below every other low within ±*lookback* bars."""
    lows: list[float] = []
    for i in range(lookback, len(bars) - lookback):
        low = bars[i].low
        is_pivot = all(
            bars[j].low > low
            for j in range(i - lookback, i + lookback + 1)
            if j != i
        )
        if is_pivot:
            lows.append(low)
    return lows


class _Cluster:
    __slots__ = ("price", "touches", "level_type")

    def __init__(self, price: float, level_type: Literal["support", "resistance"]) -> None:
        self.price = price
        self.touches = 1
        self.level_type = level_type

    def absorb(self, price: float) -> None:
        self.touches += 1
        self.price = (self.price * (self.touches - 1) + price) / self.touches


def _cluster_pivots(
    pivots: list[tuple[float, Literal["support", "resistance"]]],
    tolerance: float = CLUSTER_TOLERANCE,
) -> list[_Cluster]:
    """Merge pivot prices lying within *tolerance* of a cluster's running average.

    Pivots are processed in the given order; the first cluster within
    tolerance absorbs the price, otherwise a new cluster opens with the
    pivot's type.
    """
    clusters: list[_Cluster] = []
    for price, level_type in pivots:
        for cluster in clusters:
            if abs(price - cluster.price) / cluster.price <= tolerance:
                cluster.absorb(price)
                break
        else:
            clusters.append(_Cluster(price, level_type))
    return clusters


def _fallback_support(bars: list[Bar], lookback: int) -> Optional[SRLevel]:
    """Synthesize a support from the lowest low of the recent window."""
    window = max(20, lookback * 4)
    recent = bars[-window:]
    if not recent:
        return None

    min_low = min(b.low for b in recent)
    touches = sum(
        1 for b in recent
        if abs(b.low - min_low) / min_low < FALLBACK_TOUCH_TOLERANCE
    ) or 1
    return SRLevel(
        price=min_low,
        level_type="support",
        strength=min(0.3 + touches * 0.1, 0.9),
        touches=touches,
    )


def detect_support_resistance(
    bars: list[Bar],
    lookback_period: int = 5,
) -> list[SRLevel]:
    """Detect clustered support and resistance levels.

    Args:
        bars: Bar history, oldest-first.
        lookback_period: Half-window for pivot detection.

    Returns:
        Up to ``MAX_LEVELS`` levels sorted by descending strength
        (``min(touches / 3, 1)``).  When no support survives, a fallback
        support built from the recent minimum low is appended, dropping the
        weakest level if the list is full.  Fewer than
        ``2 × lookback_period`` bars returns ``[]``.
    """
    if len(bars) < lookback_period * 2:
        return []

    pivots: list[tuple[float, Literal["support", "resistance"]]] = [
        (price, "resistance") for price in _find_pivot_highs(bars, lookback_period)
    ]
    pivots += [
        (price, "support") for price in _find_pivot_lows(bars, lookback_period)
    ]

    levels = [
        SRLevel(
            price=c.price,
            level_type=c.level_type,
            strength=min(c.touches / 3, 1.0),
            touches=c.touches,
        )
        for c in _cluster_pivots(pivots)
    ]
    levels.sort(key=lambda lvl: lvl.strength, reverse=True)
    levels = levels[:MAX_LEVELS]

    if not any(lvl.level_type == "support" for lvl in levels):
        fallback = _fallback_support(bars, lookback_period)
        if fallback is not None:
            levels = levels[: MAX_LEVELS - 1]
            levels.append(fallback)

    return levels


def find_nearest_level(
    price: float,
    levels: list[SRLevel],
    level_type: Optional[Literal["support", "resistance"]] = None,
) -> Optional[SRLevel]:
    """Return the level closest to *price*, optionally restricted to one type."""
    candidates = [
        lvl for lvl in levels
        if level_type is None or lvl.level_type == level_type
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda lvl: abs(price - lvl.price))
