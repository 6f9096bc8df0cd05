"""Internal API routers: /symbols, /prices, /candles, /state, /status, /admin endpoints.

No pricing logic.  Delegates to the generator, feed manager and manual
control service injected through ``configure_routers``.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Query

from otcfeed.generator.models import CandleOHLC, PriceTick

logger = logging.getLogger("otcfeed.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_CANDLE_HISTORY_LIMIT = 50

_latest_ticks: dict[str, dict] = {}  # symbol → last published tick
_candle_history: dict[str, list[dict]] = {}  # symbol → closed candles, oldest first

_generator = None  # Set via configure_routers()
_feed_manager = None  # Set via configure_routers()
_manual_control = None  # Set via configure_routers()


def configure_routers(
    generator,
    feed_manager=None,
    manual_control=None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        generator: An ``OTCPriceGenerator`` (or duck-type for tests).
        feed_manager: A ``FeedManager`` for status queries.
        manual_control: An ``InMemoryManualControl`` for admin controls.
            Defaults to the generator's own service.
    """
    global _generator, _feed_manager, _manual_control  # noqa: PLW0603
    _generator = generator
    _feed_manager = feed_manager
    if manual_control is None and generator is not None:
        manual_control = getattr(generator, "manual_control", None)
    _manual_control = manual_control


def update_latest_tick(tick: PriceTick) -> None:
    """Tick sink: remember the most recent tick per symbol."""
    _latest_ticks[tick.symbol] = tick.to_dict()


def latest_ticks() -> dict[str, dict]:
    """Copy of the latest published tick per symbol."""
    return dict(_latest_ticks)


def record_candle(symbol: str, ohlc: CandleOHLC, volume: Optional[int], closed_at: str) -> None:
    """Candle sink: append a closed candle to the per-symbol ring (max 50)."""
    history = _candle_history.setdefault(symbol, [])
    history.append({**asdict(ohlc), "volume": volume, "closed_at": closed_at})
    if len(history) > _CANDLE_HISTORY_LIMIT:
        del history[0]


def _unknown(symbol: str) -> dict:
    return {"error": f"Unknown symbol: {symbol}"}


def _known(symbol: str) -> bool:
    return _generator is not None and _generator.has_symbol(symbol)


# ── Market data ──────────────────────────────────────────────────────────


@router.get("/symbols")
async def get_symbols():
    """Return the active OTC symbols."""
    if _generator is None:
        return {"symbols": []}
    return {"symbols": _generator.get_active_symbols()}


@router.get("/prices")
async def get_prices():
    """Return the latest published tick for every symbol."""
    return {"prices": latest_ticks()}


@router.get("/prices/{symbol}")
async def get_price(symbol: str):
    """Return the latest published tick, or the bare current price if none yet."""
    if symbol in _latest_ticks:
        return _latest_ticks[symbol]
    if not _known(symbol):
        return _unknown(symbol)
    return {"symbol": symbol, "price": _generator.get_current_price(symbol)}


@router.get("/candles/{symbol}")
async def get_candle(symbol: str):
    """Return the candle currently being built."""
    if not _known(symbol):
        return _unknown(symbol)
    ohlc = _generator.get_candle_ohlc(symbol)
    return {"symbol": symbol, **asdict(ohlc)}


@router.get("/candles/{symbol}/history")
async def get_candle_history(
    symbol: str,
    limit: int = Query(default=20, ge=1, le=_CANDLE_HISTORY_LIMIT),
):
    """Return recently closed candles, newest first."""
    recent = _candle_history.get(symbol, [])[-limit:]
    return {"symbol": symbol, "candles": list(reversed(recent))}


@router.get("/state/{symbol}")
async def get_state(symbol: str):
    """Return a snapshot of the generator state for diagnostics."""
    if not _known(symbol):
        return _unknown(symbol)
    state = _generator.get_state(symbol)
    return {
        "symbol": symbol,
        "current_price": state.current_price,
        "last_real_price": state.last_real_price,
        "last_return": state.last_return,
        "volatility": state.volatility,
        "history_size": len(state.history),
        "wave": asdict(state.wave),
        "candle": asdict(state.candle),
        "timing": asdict(state.timing),
        "anti_pattern": asdict(state.anti_pattern),
    }


@router.get("/status")
async def get_status():
    """Return per-symbol feed status."""
    if _feed_manager is None:
        return {"symbols": {}}
    return _feed_manager.get_status()


# ── Admin controls ───────────────────────────────────────────────────────


@router.post("/admin/{symbol}/impulse")
async def post_impulse(symbol: str, body: dict):
    """Force a trend leg: ``{"direction": "up"|"down", "duration": 20}``."""
    if not _known(symbol):
        return _unknown(symbol)
    direction = body.get("direction", "")
    try:
        _generator.force_impulse(symbol, direction, int(body.get("duration", 20)))
    except ValueError as exc:
        return {"error": str(exc)}
    return {"status": "impulse", "symbol": symbol, "direction": direction}


@router.post("/admin/{symbol}/consolidation")
async def post_consolidation(symbol: str, body: dict):
    """Dampen movement: ``{"duration": 15}``."""
    if not _known(symbol):
        return _unknown(symbol)
    try:
        _generator.force_consolidation(symbol, int(body.get("duration", 15)))
    except ValueError as exc:
        return {"error": str(exc)}
    return {"status": "consolidation", "symbol": symbol}


@router.post("/admin/{symbol}/bias")
async def post_bias(symbol: str, body: dict):
    """Set a direction bias: ``{"bias": 60, "strength": 0.8, "duration_minutes": 10}``."""
    if not _known(symbol) or _manual_control is None:
        return _unknown(symbol)
    try:
        _manual_control.set_direction_bias(
            symbol,
            float(body.get("bias", 0)),
            float(body.get("strength", 0)),
            duration_minutes=body.get("duration_minutes"),
            admin_id=body.get("admin_id", "api"),
            reason=body.get("reason"),
        )
    except (TypeError, ValueError) as exc:
        return {"error": str(exc)}
    return {"status": "ok", "control": _manual_control.get_control(symbol)}


@router.post("/admin/{symbol}/volatility")
async def post_volatility(symbol: str, body: dict):
    """Set a volatility multiplier: ``{"multiplier": 2.0, "duration_minutes": 5}``."""
    if not _known(symbol) or _manual_control is None:
        return _unknown(symbol)
    try:
        _manual_control.set_volatility_multiplier(
            symbol,
            float(body.get("multiplier", 1.0)),
            duration_minutes=body.get("duration_minutes"),
            admin_id=body.get("admin_id", "api"),
            reason=body.get("reason"),
        )
    except (TypeError, ValueError) as exc:
        return {"error": str(exc)}
    return {"status": "ok", "control": _manual_control.get_control(symbol)}


@router.post("/admin/{symbol}/override")
async def post_override(symbol: str, body: dict):
    """Pin the price: ``{"price": 1.105, "expiry_minutes": 2}``."""
    if not _known(symbol) or _manual_control is None:
        return _unknown(symbol)
    try:
        _manual_control.set_price_override(
            symbol,
            float(body.get("price", 0)),
            float(body.get("expiry_minutes", 1)),
            admin_id=body.get("admin_id", "api"),
            reason=body.get("reason"),
        )
    except (TypeError, ValueError) as exc:
        return {"error": str(exc)}
    return {"status": "ok", "control": _manual_control.get_control(symbol)}


@router.delete("/admin/{symbol}/controls")
async def delete_controls(symbol: str):
    """Clear every manual control on *symbol*."""
    if _manual_control is None:
        return {"error": "No manual control service"}
    cleared = _manual_control.clear_all(symbol, admin_id="api")
    logger.info("Manual controls cleared for %s via API.", symbol)
    return {"status": "cleared" if cleared else "none", "symbol": symbol}
