"""Candle and tick aggregation over a ``PriceState``."""

from datetime import datetime

from otcfeed.generator.bounds import round_to_pip
from otcfeed.generator.models import (
    CandleOHLC,
    CandleState,
    PriceMode,
    PriceState,
    PriceTick,
)
from otcfeed.generator.params import SPREAD_PIPS


def update_candle_tracking(candle: CandleState, price: float) -> None:
    """Extend the candle's high/low with *price* and count the tick."""
    if price > candle.high:
        candle.high = price
    if price < candle.low:
        candle.low = price
    candle.tick_count += 1


def reset_candle(candle: CandleState, price: float) -> None:
    """Start a new aggregation period at *price*."""
    candle.open = price
    candle.high = price
    candle.low = price
    candle.tick_count = 0


def candle_ohlc(state: PriceState) -> CandleOHLC:
    """Snapshot the current candle, closing at the current price."""
    return CandleOHLC(
        open=state.candle.open,
        high=state.candle.high,
        low=state.candle.low,
        close=state.current_price,
        tick_count=state.candle.tick_count,
    )


def record_price(state: PriceState, price: float) -> None:
    """Accept *price* as the new current price for candle and history."""
    state.current_price = price
    update_candle_tracking(state.candle, price)
    # history is a bounded deque, the oldest entry drops out on overflow
    state.history.append(price)


def build_tick(
    state: PriceState,
    price: float,
    pip_size: float,
    mode: PriceMode,
    timestamp: datetime,
) -> PriceTick:
    """Build the externally visible tick for *price*.

    Bid/ask straddle the price by half the spread.  Change is measured
    against the oldest price still in history.
    """
    half_spread = SPREAD_PIPS * pip_size / 2
    first_price = state.history[0] if state.history else price
    change = price - first_price
    decimals = 5 if pip_size < 0.01 else 2
    change_percent = (change / first_price) * 100 if first_price else 0.0

    return PriceTick(
        symbol=state.symbol,
        price=price,
        bid=round_to_pip(price - half_spread, pip_size),
        ask=round_to_pip(price + half_spread, pip_size),
        timestamp=timestamp,
        price_mode=mode,
        volatility=state.volatility,
        change=round(change, decimals),
        change_percent=round(change_percent, 2),
    )
