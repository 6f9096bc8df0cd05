"""Generator data models: per-symbol mutable state and emitted values."""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PriceMode(str, Enum):
    """Where an emitted price came from."""

    REAL = "REAL"
    OTC = "OTC"
    ANCHORING = "ANCHORING"


@dataclass
class WaveState:
    """Current trend leg plus its nested pullback / fake-out sub-states.

    ``direction`` is +1 or -1.  Pullback and fake-out are checked
    independently every tick, so both flags can be set at once.
    """

    direction: int
    target_pips: float
    progress_pips: float
    remaining_ticks: int
    start_price: float
    in_pullback: bool = False
    pullback_remaining: int = 0
    pullback_direction: int = 1
    in_fake_out: bool = False
    fake_out_remaining: int = 0
    fake_out_original_direction: int = 1


@dataclass
class CandleState:
    """OHLC tracking for the current aggregation period (close = current price)."""

    open: float
    high: float
    low: float
    tick_count: int = 0


@dataclass
class TimingState:
    """Local rate limiting between ticks."""

    next_tick_delay_ms: int
    last_tick_time: float


@dataclass
class AntiPatternState:
    """Streak tracking for the streak breaker."""

    last_direction: int
    same_direction_count: int = 0


@dataclass
class PriceState:
    """Everything the generator knows about one symbol.

    Owned by ``OTCPriceGenerator``; callers only ever see copies.
    """

    symbol: str
    current_price: float
    last_real_price: float
    volatility: float
    last_return: float
    last_update: float
    history: deque
    wave: WaveState
    candle: CandleState
    timing: TimingState
    anti_pattern: AntiPatternState


@dataclass(frozen=True)
class CandleOHLC:
    """Read-only view of the current candle."""

    open: float
    high: float
    low: float
    close: float
    tick_count: int


@dataclass(frozen=True)
class PriceTick:
    """A single emitted price."""

    symbol: str
    price: float
    bid: float
    ask: float
    timestamp: datetime
    price_mode: PriceMode
    volatility: float
    change: float
    change_percent: float

    def to_dict(self) -> dict:
        """JSON-friendly representation used by the API and broadcasters."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "bid": self.bid,
            "ask": self.ask,
            "timestamp": self.timestamp.isoformat(),
            "price_mode": self.price_mode.value,
            "volatility": self.volatility,
            "change": self.change,
            "change_percent": self.change_percent,
        }


@dataclass(frozen=True)
class ControlSnapshot:
    """Manual-control values read once per tick, before any state is locked."""

    price_override: float | None = None
    bias: float = 0.0
    strength: float = 0.0
    volatility_multiplier: float = 1.0
