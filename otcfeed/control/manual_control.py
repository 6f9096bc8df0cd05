"""Manual control: admin price override, direction bias and volatility.

The generator only depends on ``ManualControlProtocol``.
``InMemoryManualControl`` is the in-process implementation used by the
service; every change is written to the audit logger.  Expiring values
are cleared lazily the next time they are read.
"""

import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger("otcfeed.manual_control")
audit = logging.getLogger("otcfeed.audit")

BIAS_LIMIT = 100.0
VOLATILITY_MIN = 0.1
VOLATILITY_MAX = 5.0


@runtime_checkable
class ManualControlProtocol(Protocol):
    """What the price generator asks of the manual-control service each tick."""

    def get_price_override(self, symbol: str) -> Optional[float]:
        """Absolute price to emit instead of a generated one, or ``None``."""
        ...

    def get_volatility_multiplier(self, symbol: str) -> float:
        """Multiplier on the move size (1.0 = untouched)."""
        ...

    def get_direction_bias(self, symbol: str) -> tuple[float, float]:
        """``(bias, strength)`` with bias in [-100, 100] and strength in [0, 1]."""
        ...


@dataclass
class ManualControl:
    """Active admin controls for one symbol.  Expiries are epoch seconds."""

    symbol: str
    direction_bias: float = 0.0
    direction_strength: float = 0.0
    direction_bias_expiry: Optional[float] = None
    volatility_multiplier: float = 1.0
    volatility_expiry: Optional[float] = None
    price_override: Optional[float] = None
    price_override_expiry: Optional[float] = None
    updated_at: float = 0.0
    updated_by: Optional[str] = None


def _expiry(now: float, minutes: Optional[float]) -> Optional[float]:
    if minutes is None:
        return None
    if minutes <= 0:
        raise ValueError(f"duration must be positive minutes, got {minutes}")
    return now + minutes * 60.0


class InMemoryManualControl:
    """Thread-safe, process-local manual control store.

    Args:
        clock: Returns the current time in epoch seconds.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.time
        self._controls: dict[str, ManualControl] = {}
        self._lock = threading.Lock()

    # ── Engine-facing queries ────────────────────────────────────────────

    def get_price_override(self, symbol: str) -> Optional[float]:
        with self._lock:
            control = self._live(symbol)
            return control.price_override if control else None

    def get_volatility_multiplier(self, symbol: str) -> float:
        with self._lock:
            control = self._live(symbol)
            return control.volatility_multiplier if control else 1.0

    def get_direction_bias(self, symbol: str) -> tuple[float, float]:
        with self._lock:
            control = self._live(symbol)
            if control is None:
                return 0.0, 0.0
            return control.direction_bias, control.direction_strength

    # ── Admin setters ────────────────────────────────────────────────────

    def set_direction_bias(
        self,
        symbol: str,
        bias: float,
        strength: float,
        duration_minutes: Optional[float] = None,
        admin_id: str = "system",
        reason: Optional[str] = None,
    ) -> None:
        """Push prices toward the sign of *bias*.

        Raises:
            ValueError: *bias* outside [-100, 100] or *strength* outside [0, 1].
        """
        if not -BIAS_LIMIT <= bias <= BIAS_LIMIT:
            raise ValueError(f"bias must be within [-100, 100], got {bias}")
        if not 0.0 <= strength <= 1.0:
            raise ValueError(f"strength must be within [0, 1], got {strength}")
        now = self._clock()
        expiry = _expiry(now, duration_minutes)
        with self._lock:
            control = self._get_or_create(symbol)
            control.direction_bias = float(bias)
            control.direction_strength = float(strength)
            control.direction_bias_expiry = expiry
            self._touch(control, now, admin_id)
        audit.info(
            "PRICE_BIAS %s bias=%s strength=%s by %s (%s)",
            symbol, bias, strength, admin_id, reason or "-",
        )

    def clear_direction_bias(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            control = self._controls.get(symbol)
            if control is None:
                return
            self._reset_bias(control)
            self._touch(control, self._clock(), admin_id)
        audit.info("PRICE_BIAS %s cleared by %s", symbol, admin_id)

    def set_volatility_multiplier(
        self,
        symbol: str,
        multiplier: float,
        duration_minutes: Optional[float] = None,
        admin_id: str = "system",
        reason: Optional[str] = None,
    ) -> None:
        """Scale move sizes by *multiplier*.

        Raises:
            ValueError: *multiplier* outside [0.1, 5].
        """
        if not VOLATILITY_MIN <= multiplier <= VOLATILITY_MAX:
            raise ValueError(
                f"multiplier must be within [{VOLATILITY_MIN}, {VOLATILITY_MAX}], "
                f"got {multiplier}"
            )
        now = self._clock()
        expiry = _expiry(now, duration_minutes)
        with self._lock:
            control = self._get_or_create(symbol)
            control.volatility_multiplier = float(multiplier)
            control.volatility_expiry = expiry
            self._touch(control, now, admin_id)
        audit.info(
            "VOLATILITY %s multiplier=%s by %s (%s)",
            symbol, multiplier, admin_id, reason or "-",
        )

    def clear_volatility_multiplier(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            control = self._controls.get(symbol)
            if control is None:
                return
            self._reset_volatility(control)
            self._touch(control, self._clock(), admin_id)
        audit.info("VOLATILITY %s cleared by %s", symbol, admin_id)

    def set_price_override(
        self,
        symbol: str,
        price: float,
        expiry_minutes: float,
        admin_id: str = "system",
        reason: Optional[str] = None,
    ) -> None:
        """Pin the symbol to *price* for *expiry_minutes*.

        Raises:
            ValueError: *price* not finite and positive, or non-positive expiry.
        """
        if not math.isfinite(price) or price <= 0:
            raise ValueError(f"override price must be finite and positive, got {price}")
        now = self._clock()
        expiry = _expiry(now, expiry_minutes)
        with self._lock:
            control = self._get_or_create(symbol)
            control.price_override = float(price)
            control.price_override_expiry = expiry
            self._touch(control, now, admin_id)
        audit.info(
            "PRICE_OVERRIDE %s price=%s for %s min by %s (%s)",
            symbol, price, expiry_minutes, admin_id, reason or "-",
        )

    def clear_price_override(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            control = self._controls.get(symbol)
            if control is None:
                return
            self._reset_override(control)
            self._touch(control, self._clock(), admin_id)
        audit.info("PRICE_OVERRIDE %s cleared by %s", symbol, admin_id)

    def clear_all(self, symbol: str, admin_id: str = "system") -> bool:
        """Drop every control for *symbol*.  Returns ``False`` if none existed."""
        with self._lock:
            removed = self._controls.pop(symbol, None)
        if removed is not None:
            audit.info("ALL_CONTROLS %s cleared by %s", symbol, admin_id)
        return removed is not None

    # ── Queries ──────────────────────────────────────────────────────────

    def get_control(self, symbol: str) -> Optional[dict]:
        """Current controls for *symbol* as a dict, or ``None``."""
        with self._lock:
            control = self._live(symbol)
            return asdict(control) if control else None

    def all_controls(self) -> list[dict]:
        with self._lock:
            symbols = list(self._controls)
            live = [self._live(s) for s in symbols]
            return [asdict(c) for c in live if c is not None]

    # ── Internals (caller holds the lock) ────────────────────────────────

    def _get_or_create(self, symbol: str) -> ManualControl:
        control = self._controls.get(symbol)
        if control is None:
            control = ManualControl(symbol=symbol)
            self._controls[symbol] = control
        return control

    @staticmethod
    def _touch(control: ManualControl, now: float, admin_id: str) -> None:
        control.updated_at = now
        control.updated_by = admin_id

    @staticmethod
    def _reset_bias(control: ManualControl) -> None:
        control.direction_bias = 0.0
        control.direction_strength = 0.0
        control.direction_bias_expiry = None

    @staticmethod
    def _reset_volatility(control: ManualControl) -> None:
        control.volatility_multiplier = 1.0
        control.volatility_expiry = None

    @staticmethod
    def _reset_override(control: ManualControl) -> None:
        control.price_override = None
        control.price_override_expiry = None

    def _live(self, symbol: str) -> Optional[ManualControl]:
        """Return the control for *symbol* with expired values cleared."""
        control = self._controls.get(symbol)
        if control is None:
            return None
        now = self._clock()
        if control.price_override_expiry is not None and control.price_override_expiry <= now:
            self._reset_override(control)
            logger.info("Price override for %s expired.", symbol)
        if control.direction_bias_expiry is not None and control.direction_bias_expiry <= now:
            self._reset_bias(control)
            logger.info("Direction bias for %s expired.", symbol)
        if control.volatility_expiry is not None and control.volatility_expiry <= now:
            self._reset_volatility(control)
            logger.info("Volatility multiplier for %s expired.", symbol)
        return control
