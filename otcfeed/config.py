"""OTCFeed application configuration.

Loads .env variables into a typed config object and reads the symbol
catalogue from ``symbols.json``.
"""

import json
import logging
import os
import pathlib
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv

from otcfeed.models.symbol_config import SymbolConfig, SymbolSeed

logger = logging.getLogger("otcfeed.config")

_SYMBOLS_JSON = pathlib.Path(__file__).resolve().parent.parent / "symbols.json"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    tick_interval_ms: int
    tick_variance_ms: int
    price_history_size: int
    feed_poll_ms: int
    candle_period_seconds: int
    reference_update_seconds: int
    random_seed: Optional[int]
    symbols_file: str
    log_level: str
    api_port: int


def _env_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable has a default.  Raises ``ValueError`` naming the variable
    when a numeric value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    seed_raw = os.environ.get("RANDOM_SEED")
    random_seed = _env_int("RANDOM_SEED", "0") if seed_raw else None

    config = Config(
        tick_interval_ms=_env_int("TICK_INTERVAL_MS", "500"),
        tick_variance_ms=_env_int("TICK_VARIANCE_MS", "120"),
        price_history_size=_env_int("PRICE_HISTORY_SIZE", "300"),
        feed_poll_ms=_env_int("FEED_POLL_MS", "1000"),
        candle_period_seconds=_env_int("CANDLE_PERIOD_SECONDS", "5"),
        reference_update_seconds=_env_int("REFERENCE_UPDATE_SECONDS", "300"),
        random_seed=random_seed,
        symbols_file=os.environ.get("SYMBOLS_FILE", str(_SYMBOLS_JSON)),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_env_int("API_PORT", "8080"),
    )
    if config.tick_variance_ms >= config.tick_interval_ms:
        raise ValueError("TICK_VARIANCE_MS must be smaller than TICK_INTERVAL_MS")
    if config.price_history_size < 1:
        raise ValueError("PRICE_HISTORY_SIZE must be at least 1")
    return config


_SYMBOL_FIELDS = {f.name for f in fields(SymbolConfig)}


def load_symbols(path: str | pathlib.Path | None = None) -> list[SymbolSeed]:
    """Read the symbol catalogue.

    The file looks like ``{"symbols": [{"symbol": ..., "pip_size": ...,
    "initial_price": ...}, ...]}``.  Unknown keys are ignored.  A missing
    file yields an empty catalogue.

    Raises:
        ValueError: An entry breaks a ``SymbolConfig`` invariant or lacks
            ``initial_price``.
    """
    symbols_path = pathlib.Path(path) if path is not None else _SYMBOLS_JSON
    if not symbols_path.exists():
        logger.warning("Symbols file %s not found; no symbols loaded.", symbols_path)
        return []

    data = json.loads(symbols_path.read_text(encoding="utf-8"))
    seeds: list[SymbolSeed] = []
    for entry in data.get("symbols", []):
        if "initial_price" not in entry:
            raise ValueError(f"Symbol {entry.get('symbol')!r} has no initial_price")
        kwargs = {k: v for k, v in entry.items() if k in _SYMBOL_FIELDS}
        seeds.append(
            SymbolSeed(
                config=SymbolConfig(**kwargs),
                initial_price=float(entry["initial_price"]),
            )
        )
    return seeds
