"""Technical indicators — EMA, RSI, volume strength, pivot points. Pure functions, no I/O.

Every function is total: short or empty input yields a documented neutral
value instead of an exception.
"""

from niftypulse.analysis.models import Bar, VolumeAnalysis


def calculate_ema_series(bars: list[Bar], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the recurrence:
        ``EMA_i = (close_i - EMA_{i-1}) × k + EMA_{i-1}``
    where ``k = 2 / (period + 1)``.

    The seed is the SMA of the first *period* closes, placed at index
    ``period - 1``; earlier entries are ``float('nan')``.  With fewer than
    *period* bars the seed is the first close (index 0) and the recurrence
    runs over the remaining bars.

    Returns a list the same length as *bars* (empty for empty input).
    """
    if not bars:
        return []

    k = 2.0 / (period + 1)
    closes = [b.close for b in bars]
    ema: list[float] = [float("nan")] * len(closes)

    if len(closes) < period:
        start = 0
        ema[0] = closes[0]
    else:
        start = period - 1
        ema[start] = sum(closes[:period]) / period

    for i in range(start + 1, len(closes)):
        ema[i] = (closes[i] - ema[i - 1]) * k + ema[i - 1]

    return ema


def calculate_ema(bars: list[Bar], period: int) -> float:
    """Return the latest EMA(*period*) value, or ``0.0`` for empty input."""
    series = calculate_ema_series(bars, period)
    return series[-1] if series else 0.0


def calculate_rsi(bars: list[Bar], period: int = 14) -> float:
    """Calculate the Relative Strength Index over the trailing *period* deltas.

    Algorithm:
        1. delta = close[i] - close[i-1] for the last *period* bars.
        2. avg_gain = sum(gains) / period, avg_loss = sum(|losses|) / period.
        3. RSI = 100 - 100 / (1 + avg_gain / avg_loss).

    Returns ``100.0`` when there are no losses (including a flat window)
    and ``50.0`` when fewer than ``period + 1`` bars are available.
    """
    if len(bars) < period + 1:
        return 50.0

    closes = [b.close for b in bars[-(period + 1):]]
    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]

    avg_gain = sum(d for d in deltas if d > 0) / period
    avg_loss = sum(-d for d in deltas if d < 0) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def analyze_volume(bars: list[Bar], recent: int = 5) -> VolumeAnalysis:
    """Compare recent volume with the window average.

    Strength is ``min(1, max(0, (ratio - 0.5) × 2))`` where *ratio* is the
    mean of the last *recent* volumes over the mean of all volumes.  Trend is
    "increasing" when the second half of the window averages more than 10 %
    above the first half, "decreasing" when more than 10 % below.

    Fewer than 10 bars, or a first bar without volume, yields
    ``VolumeAnalysis(0.5, "neutral")``.
    """
    neutral = VolumeAnalysis(strength=0.5, trend="neutral")
    if len(bars) < 10 or not bars[0].volume:
        return neutral

    volumes = [b.volume for b in bars if b.volume and b.volume > 0]
    if not volumes:
        return neutral

    avg_volume = sum(volumes) / len(volumes)
    tail = volumes[-recent:]
    recent_avg = sum(tail) / len(tail)

    ratio = recent_avg / avg_volume
    strength = min(1.0, max(0.0, (ratio - 0.5) * 2))

    half = len(volumes) // 2
    first_half = volumes[:half]
    second_half = volumes[half:]
    if not first_half:
        return VolumeAnalysis(strength=strength, trend="neutral")
    first_avg = sum(first_half) / len(first_half)
    second_avg = sum(second_half) / len(second_half)

    trend_ratio = second_avg / first_avg
    if trend_ratio > 1.1:
        trend = "increasing"
    elif trend_ratio < 0.9:
        trend = "decreasing"
    else:
        trend = "neutral"

    return VolumeAnalysis(strength=strength, trend=trend)


def calculate_pivot_points(
    high: float, low: float, close: float
) -> tuple[float, float, float]:
    """Classic floor-trader pivot.

    Returns ``(pivot, resistance1, support1)`` with
    ``P = (H + L + C) / 3``, ``R1 = 2P - L``, ``S1 = 2P - H``.
    """
    pivot = (high + low + close) / 3
    return pivot, 2 * pivot - low, 2 * pivot - high
