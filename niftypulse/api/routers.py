"""Internal API routers — market data and analysis endpoints for the dashboard.

No business logic. Delegates to the ``MarketDataService`` injected at startup.
Live-source failures never surface as 5xx: payloads carry ``success`` and
``source`` fields and fall back to synthetic data.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from niftypulse.feeds.market_data import MarketDataService

logger = logging.getLogger("niftypulse")
router = APIRouter()

_NO_CACHE = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

_service: Optional[MarketDataService] = None  # Set via configure_routers()


def configure_routers(service: Optional[MarketDataService]) -> None:
    """Inject the market data service from the application startup.

    Args:
        service: A ``MarketDataService`` (or duck-type for tests).
    """
    global _service  # noqa: PLW0603
    _service = service


def _unconfigured(**empty) -> dict:
    return {"success": False, "error": "Service not configured", **empty}


# ── Raw data ─────────────────────────────────────────────────────────────


@router.get("/nifty50")
async def get_nifty50(
    interval: str = Query(default="1m"),
    range_: str = Query(default="1d", alias="range"),
):
    """Return index candles (live, or mock on failure)."""
    if _service is None:
        return _unconfigured(data=[], currentPrice=0)
    bars, source = await _service.index_bars(interval, range_)
    return {
        "success": True,
        "data": [b.to_dict() for b in bars],
        "currentPrice": bars[-1].close if bars else 0,
        "source": source,
    }


@router.get("/giftnifty")
async def get_gift_nifty(
    interval: str = Query(default="15m"),
    range_: str = Query(default="1d", alias="range"),
):
    """Return GIFT Nifty candles, falling back to the index."""
    if _service is None:
        return _unconfigured(data=[], currentPrice=0)
    bars, source = await _service.gift_nifty(interval, range_)
    return {
        "success": True,
        "data": [b.to_dict() for b in bars],
        "currentPrice": bars[-1].close if bars else 0,
        "source": source,
    }


@router.get("/optionchain")
async def get_option_chain():
    """Return raw chain entries with their summary."""
    if _service is None:
        return JSONResponse(
            _unconfigured(data=[], summary=None, source="error"), headers=_NO_CACHE,
        )
    entries, summary = _service.option_chain()
    return JSONResponse(
        {
            "success": summary is not None,
            "data": entries,
            "summary": summary.to_dict() if summary is not None else None,
            "source": "mock",
        },
        headers=_NO_CACHE,
    )


@router.get("/commodities")
async def get_commodities():
    """Return gold and crude oil quotes."""
    if _service is None:
        return _unconfigured(data=None)
    gold, crude, source = await _service.commodities()
    return {
        "success": True,
        "data": {"gold": gold.to_dict(), "crudeOil": crude.to_dict()},
        "source": source,
    }


@router.get("/fiidii")
async def get_fii_dii():
    """Return institutional flows for the current IST hour and their signal."""
    if _service is None:
        return _unconfigured(data=None, signal=None)
    flows, signal, level_source = await _service.fii_dii_signal()
    return {
        "success": True,
        "data": flows.to_dict(),
        "signal": signal.to_dict(),
        "source": "mock",
        "levelSource": level_source,
    }


# ── Analysis ─────────────────────────────────────────────────────────────


@router.get("/analysis/levels")
async def get_levels(
    interval: str = Query(default="5m"),
    range_: str = Query(default="5d", alias="range"),
    lookback: Optional[int] = Query(default=None, ge=1, le=50),
):
    """Return support/resistance levels for the requested chart."""
    if _service is None:
        return _unconfigured(levels=[])
    levels, bars, source = await _service.levels(interval, range_, lookback)
    return {
        "success": True,
        "levels": [lvl.to_dict() for lvl in levels],
        "currentPrice": bars[-1].close if bars else 0,
        "source": source,
    }


@router.get("/analysis/morning-setup")
async def get_morning_setup():
    """Return the multi-timeframe pre-market setup."""
    if _service is None:
        return _unconfigured(setup=None)
    setup, sources = await _service.morning_setup()
    return {"success": True, "setup": setup.to_dict(), "sources": sources}


@router.get("/analysis/prediction")
async def get_prediction():
    """Return the next-day prediction with its option-chain context."""
    if _service is None:
        return _unconfigured(prediction=None)
    prediction, chain, source = await _service.prediction()
    return {
        "success": True,
        "prediction": prediction.to_dict(),
        "optionChain": chain.to_dict() if chain is not None else None,
        "source": source,
    }
