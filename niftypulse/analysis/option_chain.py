"""Option chain summarisation — put-call ratios, sentiment and top open interest.

Raw chain entries come from several providers with different key
spellings.  Each field is resolved through an ordered alias table; the
first alias holding a usable number wins and missing fields become 0.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from niftypulse.analysis.models import OptionChainSummary, OptionLeg


CALL_KEYS = ("call", "CE", "callOption")
PUT_KEYS = ("put", "PE", "putOption")

LEG_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "strike_price": ("strikePrice", "strike"),
    "open_interest": ("openInterest", "OI", "oi"),
    "change_in_open_interest": ("changeInOpenInterest", "changeInOI", "changeInOi"),
    "volume": ("volume", "vol"),
    "ltp": ("ltp", "lastPrice", "price"),
}

BEARISH_PCR = 1.2
BULLISH_PCR = 0.8
TOP_LEGS = 5


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _first_number(source: dict, keys: tuple[str, ...]) -> Optional[float]:
    for key in keys:
        number = _as_number(source.get(key))
        if number:
            return number
    return None


def _first_mapping(entry: dict, keys: tuple[str, ...]) -> Optional[dict]:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, dict) and value:
            return value
    return None


def _parse_leg(leg: dict, entry: dict) -> OptionLeg:
    strike = _first_number(leg, LEG_FIELD_ALIASES["strike_price"])
    if strike is None:
        strike = _first_number(entry, ("strikePrice",))
    return OptionLeg(
        strike_price=strike or 0.0,
        open_interest=_first_number(leg, LEG_FIELD_ALIASES["open_interest"]) or 0.0,
        change_in_open_interest=(
            _first_number(leg, LEG_FIELD_ALIASES["change_in_open_interest"]) or 0.0
        ),
        volume=_first_number(leg, LEG_FIELD_ALIASES["volume"]) or 0.0,
        ltp=_first_number(leg, LEG_FIELD_ALIASES["ltp"]) or 0.0,
    )


def classify_pcr(pcr_oi: float) -> str:
    """High PCR (more puts written) reads bearish, low PCR bullish."""
    if pcr_oi > BEARISH_PCR:
        return "bearish"
    if pcr_oi < BULLISH_PCR:
        return "bullish"
    return "neutral"


def bullish_strength(pcr_oi: float) -> float:
    """Map PCR(OI) onto 0-1, with 1 meaning call-heavy."""
    if pcr_oi < 1:
        value = 1 - pcr_oi * 0.5
    else:
        value = max(0.0, 1 - (pcr_oi - 1) * 0.5)
    return max(0.0, min(1.0, value))


def _top_by_open_interest(legs: list[OptionLeg]) -> list[OptionLeg]:
    listed = [leg for leg in legs if leg.strike_price > 0]
    listed.sort(key=lambda leg: leg.open_interest, reverse=True)
    return listed[:TOP_LEGS]


def summarize_option_chain(
    entries: Any,
    timestamp: Optional[str] = None,
) -> Optional[OptionChainSummary]:
    """Reduce raw chain entries to an ``OptionChainSummary``.

    Args:
        entries: List of per-strike dicts holding call and/or put legs.
        timestamp: ISO-8601 stamp for the summary; defaults to now (UTC).

    Returns:
        The summary, or ``None`` when *entries* is not a non-empty list.
        PCR defaults to 1 when the call side has no open interest (or
        volume).
    """
    if not isinstance(entries, list) or not entries:
        return None

    calls: list[OptionLeg] = []
    puts: list[OptionLeg] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        call = _first_mapping(entry, CALL_KEYS)
        if call is not None:
            calls.append(_parse_leg(call, entry))
        put = _first_mapping(entry, PUT_KEYS)
        if put is not None:
            puts.append(_parse_leg(put, entry))

    total_call_oi = sum(leg.open_interest for leg in calls)
    total_put_oi = sum(leg.open_interest for leg in puts)
    pcr_oi = total_put_oi / total_call_oi if total_call_oi > 0 else 1.0

    total_call_volume = sum(leg.volume for leg in calls)
    total_put_volume = sum(leg.volume for leg in puts)
    pcr_volume = total_put_volume / total_call_volume if total_call_volume > 0 else 1.0

    return OptionChainSummary(
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        pcr_oi=pcr_oi,
        pcr_volume=pcr_volume,
        bullish_strength=bullish_strength(pcr_oi),
        sentiment=classify_pcr(pcr_oi),
        top_calls=_top_by_open_interest(calls),
        top_puts=_top_by_open_interest(puts),
    )
