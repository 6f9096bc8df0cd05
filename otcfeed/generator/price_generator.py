"""OTC price generator: symbol registry and the per-tick pipeline.

Per tick, for a known symbol that is due:

    manual override?  -> emit the override, skip everything else
    otherwise         -> fake-out / pullback -> direction -> micro-reversal
                         -> streak breaker -> move size -> admin bias and
                         volatility -> bounded price -> state update -> tick

Each symbol has its own lock; the manual-control service is queried
outside it.  Callers never receive references to live state.
"""

import copy
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from otcfeed.config import Config
from otcfeed.control.manual_control import InMemoryManualControl, ManualControlProtocol
from otcfeed.generator.bounds import calculate_bounded_price, round_to_pip
from otcfeed.generator.candle import build_tick, candle_ohlc, record_price, reset_candle
from otcfeed.generator.models import (
    AntiPatternState,
    CandleOHLC,
    CandleState,
    ControlSnapshot,
    PriceMode,
    PriceState,
    PriceTick,
    TimingState,
)
from otcfeed.generator.modifiers import (
    apply_admin_bias,
    apply_anti_pattern,
    apply_micro_reversal,
)
from otcfeed.generator.movement import calculate_move_size
from otcfeed.generator.params import (
    DEFAULT_CONSOLIDATION_TICKS,
    DEFAULT_IMPULSE_TICKS,
    PULLBACK_STRENGTH,
    get_market_params,
)
from otcfeed.generator.rng import NumpyRandomSource, RandomSource
from otcfeed.generator.wave import (
    advance_wave,
    choose_direction,
    consolidate,
    new_wave,
    process_fake_out,
    process_pullback,
    random_direction,
)
from otcfeed.models.symbol_config import SymbolConfig

logger = logging.getLogger("otcfeed.generator")

IMPULSE_DIRECTIONS: dict[str, int] = {"up": 1, "down": -1}
_CONFIG_FIELDS = {f.name for f in fields(SymbolConfig)}


@dataclass
class _SymbolSlot:
    config: SymbolConfig
    state: PriceState
    lock: threading.Lock = field(default_factory=threading.Lock)


class OTCPriceGenerator:
    """Registry of OTC symbols and the engine that moves their prices.

    Args:
        rng: Random source; a fresh ``NumpyRandomSource`` when omitted.
        manual_control: Admin control service queried every tick.
        clock: Returns the current time in epoch seconds.
        tick_interval_ms: Base delay between ticks of one symbol.
        tick_variance_ms: Maximum random jitter added to the base delay.
        history_size: Number of recent prices kept per symbol.
    """

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        manual_control: Optional[ManualControlProtocol] = None,
        clock: Optional[Callable[[], float]] = None,
        tick_interval_ms: int = 500,
        tick_variance_ms: int = 120,
        history_size: int = 300,
    ) -> None:
        self._rng = rng if rng is not None else NumpyRandomSource()
        self._controls = manual_control if manual_control is not None else InMemoryManualControl()
        self._clock = clock or time.time
        self._tick_interval_ms = tick_interval_ms
        self._tick_variance_ms = tick_variance_ms
        self._history_size = history_size
        self._slots: dict[str, _SymbolSlot] = {}
        self._registry_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        manual_control: Optional[ManualControlProtocol] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "OTCPriceGenerator":
        """Build a generator from the application ``Config``."""
        return cls(
            rng=NumpyRandomSource(config.random_seed),
            manual_control=manual_control,
            clock=clock,
            tick_interval_ms=config.tick_interval_ms,
            tick_variance_ms=config.tick_variance_ms,
            history_size=config.price_history_size,
        )

    @property
    def manual_control(self) -> ManualControlProtocol:
        return self._controls

    # ── Registry ─────────────────────────────────────────────────────────

    def initialize_symbol(self, config: SymbolConfig, initial_price: float) -> bool:
        """Create state for *config.symbol* starting at *initial_price*.

        Invalid input is logged and ignored.  Re-initialising an existing
        symbol replaces its state.

        Returns:
            ``True`` if the symbol was initialised.
        """
        if config is None or not config.symbol:
            logger.warning("Cannot initialise symbol: empty symbol identifier.")
            return False
        if not _valid_price(initial_price):
            logger.warning(
                "Cannot initialise %s: invalid initial price %r.",
                config.symbol, initial_price,
            )
            return False

        state = self._create_initial_state(config, float(initial_price))
        with self._registry_lock:
            self._slots[config.symbol] = _SymbolSlot(config=config, state=state)
        logger.info("Price generator initialised for %s at %s.", config.symbol, initial_price)
        return True

    def remove_symbol(self, symbol: str) -> bool:
        """Discard state and config for *symbol*."""
        with self._registry_lock:
            removed = self._slots.pop(symbol, None)
        if removed is not None:
            logger.info("Removed %s from the price generator.", symbol)
        return removed is not None

    def update_config(self, symbol: str, updates: dict) -> bool:
        """Merge *updates* into the stored config of *symbol*.

        The ``symbol`` key is ignored.  Unknown symbols are a no-op.

        Raises:
            ValueError: An unknown field, or a value breaking a
                ``SymbolConfig`` invariant.  The stored config is unchanged.
        """
        changes = {k: v for k, v in updates.items() if k != "symbol"}
        unknown = set(changes) - _CONFIG_FIELDS
        if unknown:
            raise ValueError(f"Unknown config field(s): {', '.join(sorted(unknown))}")

        slot = self._slots.get(symbol)
        if slot is None:
            return False
        with slot.lock:
            slot.config = replace(slot.config, **changes)
            if "base_volatility" in changes:
                slot.state.volatility = slot.config.base_volatility
        logger.info("Config updated for %s: %s", symbol, changes)
        return True

    def has_symbol(self, symbol: str) -> bool:
        return symbol in self._slots

    def get_active_symbols(self) -> list[str]:
        with self._registry_lock:
            return list(self._slots.keys())

    def get_config(self, symbol: str) -> Optional[SymbolConfig]:
        slot = self._slots.get(symbol)
        return slot.config if slot else None

    # ── Reads ────────────────────────────────────────────────────────────

    def get_current_price(self, symbol: str) -> Optional[float]:
        slot = self._slots.get(symbol)
        if slot is None:
            return None
        with slot.lock:
            return slot.state.current_price

    def get_state(self, symbol: str) -> Optional[PriceState]:
        """Deep copy of the symbol's state; mutating it has no effect."""
        slot = self._slots.get(symbol)
        if slot is None:
            return None
        with slot.lock:
            return copy.deepcopy(slot.state)

    def get_candle_ohlc(self, symbol: str) -> Optional[CandleOHLC]:
        slot = self._slots.get(symbol)
        if slot is None:
            return None
        with slot.lock:
            return candle_ohlc(slot.state)

    def reset_candle(self, symbol: str) -> None:
        """Start a new candle at the current price (period boundary)."""
        slot = self._slots.get(symbol)
        if slot is None:
            return
        with slot.lock:
            reset_candle(slot.state.candle, slot.state.current_price)

    def generate_volume(self, symbol: str) -> Optional[int]:
        """Display volume derived from the current candle's range."""
        slot = self._slots.get(symbol)
        if slot is None:
            return None
        with slot.lock:
            candle = slot.state.candle
            range_pips = (candle.high - candle.low) / slot.config.pip_size
        base_volume = 50 + range_pips * 10
        return round(base_volume * self._rng.uniform(0.7, 1.3))

    # ── Reference price ──────────────────────────────────────────────────

    def update_real_price(self, symbol: str, real_price: float) -> None:
        """Move the bounds anchor; non-finite or non-positive prices are ignored."""
        slot = self._slots.get(symbol)
        if slot is None or not _valid_price(real_price):
            return
        with slot.lock:
            slot.state.last_real_price = float(real_price)

    def get_real_based_price(self, symbol: str, real_price: float) -> Optional[PriceTick]:
        """Emit a tick tracking *real_price* with up to one pip of noise.

        Bypasses the simulation pipeline and the rate limit.
        """
        slot = self._slots.get(symbol)
        if slot is None or not _valid_price(real_price):
            return None
        now = self._clock()
        with slot.lock:
            state, pip_size = slot.state, slot.config.pip_size
            noise = (self._rng.random() - 0.5) * 2 * pip_size
            price = round_to_pip(real_price + noise, pip_size)
            state.last_real_price = float(real_price)
            state.last_return = _simple_return(state.current_price, price)
            state.last_update = now
            record_price(state, price)
            return build_tick(state, price, pip_size, PriceMode.REAL, _utc(now))

    def preview_tick(
        self,
        symbol: str,
        price: float,
        mode: PriceMode = PriceMode.ANCHORING,
    ) -> Optional[PriceTick]:
        """Build a tick for an externally computed *price* without touching state."""
        slot = self._slots.get(symbol)
        if slot is None or not _valid_price(price):
            return None
        with slot.lock:
            rounded = round_to_pip(price, slot.config.pip_size)
            return build_tick(slot.state, rounded, slot.config.pip_size, mode, _utc(self._clock()))

    # ── Tick generation ──────────────────────────────────────────────────

    def generate_next_price(self, symbol: str) -> Optional[PriceTick]:
        """Produce the next tick, or ``None`` if unknown or not yet due."""
        slot = self._slots.get(symbol)
        if slot is None:
            return None

        now = self._clock()
        with slot.lock:
            if not self._is_due(slot.state, now):
                return None

        controls = self._read_controls(symbol)

        with slot.lock:
            # Re-check: another caller may have ticked or removed the symbol
            if self._slots.get(symbol) is not slot or not self._is_due(slot.state, now):
                return None
            if controls.price_override is not None:
                return self._apply_manual_override(slot, controls.price_override, now)
            return self._generate_organic(slot, controls, now)

    # ── Admin controls ───────────────────────────────────────────────────

    def force_impulse(
        self,
        symbol: str,
        direction: str,
        duration_ticks: int = DEFAULT_IMPULSE_TICKS,
    ) -> bool:
        """Replace the current wave with one heading *direction* ("up"/"down").

        Raises:
            ValueError: Unknown direction or non-positive duration.
        """
        if direction not in IMPULSE_DIRECTIONS:
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        _check_duration(duration_ticks)

        slot = self._slots.get(symbol)
        if slot is None:
            return False
        with slot.lock:
            state = slot.state
            state.wave = new_wave(
                self._rng,
                state.current_price,
                force_direction=IMPULSE_DIRECTIONS[direction],
            )
            state.wave.remaining_ticks = duration_ticks
        logger.info("Forced %s impulse on %s for %d ticks.", direction, symbol, duration_ticks)
        return True

    def force_consolidation(
        self,
        symbol: str,
        duration_ticks: int = DEFAULT_CONSOLIDATION_TICKS,
    ) -> bool:
        """Shrink the current wave's target so price ranges for a while.

        Raises:
            ValueError: Non-positive duration.
        """
        _check_duration(duration_ticks)
        slot = self._slots.get(symbol)
        if slot is None:
            return False
        with slot.lock:
            consolidate(slot.state.wave, duration_ticks)
        logger.info("Forced consolidation on %s for %d ticks.", symbol, duration_ticks)
        return True

    # ── Internals ────────────────────────────────────────────────────────

    def _create_initial_state(self, config: SymbolConfig, price: float) -> PriceState:
        direction = random_direction(self._rng)
        now = self._clock()
        return PriceState(
            symbol=config.symbol,
            current_price=price,
            last_real_price=price,
            volatility=config.base_volatility,
            last_return=0.0,
            last_update=now,
            history=deque([price], maxlen=self._history_size),
            wave=new_wave(self._rng, price, force_direction=direction),
            candle=CandleState(open=price, high=price, low=price),
            timing=TimingState(next_tick_delay_ms=self._tick_interval_ms, last_tick_time=now),
            anti_pattern=AntiPatternState(last_direction=direction),
        )

    @staticmethod
    def _is_due(state: PriceState, now: float) -> bool:
        return (now - state.last_update) * 1000.0 >= state.timing.next_tick_delay_ms

    def _read_controls(self, symbol: str) -> ControlSnapshot:
        try:
            override = self._controls.get_price_override(symbol)
            bias, strength = self._controls.get_direction_bias(symbol)
            multiplier = self._controls.get_volatility_multiplier(symbol)
        except Exception as exc:
            logger.warning("Manual control lookup failed for %s: %s", symbol, exc)
            return ControlSnapshot()
        return ControlSnapshot(
            price_override=override if _valid_price(override) else None,
            bias=bias,
            strength=strength,
            volatility_multiplier=multiplier,
        )

    def _apply_manual_override(
        self,
        slot: _SymbolSlot,
        override: float,
        now: float,
    ) -> PriceTick:
        state, pip_size = slot.state, slot.config.pip_size
        price = round_to_pip(override, pip_size)
        state.last_update = now
        state.timing.last_tick_time = now
        record_price(state, price)
        logger.debug("%s manual override tick %s", state.symbol, price)
        return build_tick(state, price, pip_size, PriceMode.OTC, _utc(now))

    def _generate_organic(
        self,
        slot: _SymbolSlot,
        controls: ControlSnapshot,
        now: float,
    ) -> PriceTick:
        state, config, rng = slot.state, slot.config, self._rng
        market = get_market_params(config.market_type)
        wave = state.wave

        process_fake_out(wave, rng)
        process_pullback(wave, rng, market)

        direction = choose_direction(wave, rng, market)
        direction = apply_micro_reversal(direction, rng)
        direction = apply_anti_pattern(direction, state.anti_pattern, rng)

        move_pips = calculate_move_size(rng, market)
        if wave.in_pullback:
            move_pips *= PULLBACK_STRENGTH

        direction = apply_admin_bias(direction, controls.bias, controls.strength, rng)
        move_pips *= controls.volatility_multiplier

        new_price = calculate_bounded_price(
            current_price=state.current_price,
            reference_price=state.last_real_price,
            move_pips=move_pips,
            direction=direction,
            pip_size=config.pip_size,
            max_deviation_percent=config.max_deviation_percent,
            rng=rng,
        )
        self._update_state(state, new_price, direction, move_pips, now)
        logger.debug(
            "%s tick %s dir=%+d move=%.3f pips", state.symbol, new_price, direction, move_pips,
        )
        return build_tick(state, new_price, config.pip_size, PriceMode.OTC, _utc(now))

    def _update_state(
        self,
        state: PriceState,
        new_price: float,
        direction: int,
        move_pips: float,
        now: float,
    ) -> None:
        state.last_return = _simple_return(state.current_price, new_price)
        state.last_update = now
        state.anti_pattern.last_direction = direction

        if advance_wave(state.wave, move_pips * direction):
            state.wave = new_wave(
                self._rng, new_price, previous_direction=state.wave.direction,
            )

        record_price(state, new_price)

        state.timing.next_tick_delay_ms = self._tick_interval_ms + self._rng.randint(
            -self._tick_variance_ms, self._tick_variance_ms,
        )
        state.timing.last_tick_time = now


def _valid_price(price) -> bool:
    return (
        isinstance(price, (int, float))
        and not isinstance(price, bool)
        and math.isfinite(price)
        and price > 0
    )


def _simple_return(previous: float, current: float) -> float:
    return (current - previous) / previous if previous > 0 else 0.0


def _check_duration(duration_ticks: int) -> None:
    if duration_ticks < 1:
        raise ValueError(f"duration_ticks must be at least 1, got {duration_ticks}")


def _utc(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
