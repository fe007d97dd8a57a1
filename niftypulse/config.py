"""NiftyPulse — application configuration.

Loads .env variables into a typed config object.
Validates values on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    index_symbol: str
    gift_nifty_symbols: tuple[str, ...]
    gold_symbol: str
    crude_symbol: str
    yahoo_base_url: str
    request_timeout_seconds: float
    session_bars: int
    level_lookback: int
    use_live_data: bool
    mock_seed: Optional[int]
    log_level: str
    api_port: int

    def chart_url(self, symbol: str) -> str:
        """Return the Yahoo Finance v8 chart URL for *symbol*."""
        return f"{self.yahoo_base_url.rstrip('/')}/v8/finance/chart/{symbol}"


def _get_int(name: str, default: str, minimum: int) -> int:
    raw = os.environ.get(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _get_bool(name: str, default: str) -> bool:
    raw = os.environ.get(name, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable has a default.  Raises ``ValueError`` with a message
    naming the variable when a value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    raw_seed = os.environ.get("MOCK_SEED", "").strip()
    if raw_seed:
        try:
            mock_seed: Optional[int] = int(raw_seed)
        except ValueError:
            raise ValueError(f"MOCK_SEED must be an integer, got {raw_seed!r}") from None
    else:
        mock_seed = None

    gift_symbols = tuple(
        s.strip()
        for s in os.environ.get("GIFT_NIFTY_SYMBOLS", "^NSEI,NIFTY.SI,NIFTY.SG").split(",")
        if s.strip()
    )
    if not gift_symbols:
        raise ValueError("GIFT_NIFTY_SYMBOLS must list at least one symbol")

    return Config(
        index_symbol=os.environ.get("INDEX_SYMBOL", "^NSEI"),
        gift_nifty_symbols=gift_symbols,
        gold_symbol=os.environ.get("GOLD_SYMBOL", "GC=F"),
        crude_symbol=os.environ.get("CRUDE_SYMBOL", "CL=F"),
        yahoo_base_url=os.environ.get(
            "YAHOO_BASE_URL", "https://query1.finance.yahoo.com"
        ),
        request_timeout_seconds=_get_float("REQUEST_TIMEOUT_SECONDS", "4.0"),
        session_bars=_get_int("SESSION_BARS", "96", minimum=20),
        level_lookback=_get_int("LEVEL_LOOKBACK", "5", minimum=1),
        use_live_data=_get_bool("USE_LIVE_DATA", "true"),
        mock_seed=mock_seed,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        api_port=_get_int("API_PORT", "8080", minimum=1),
    )
