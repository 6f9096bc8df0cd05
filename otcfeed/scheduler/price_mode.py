"""Price-mode scheduler: REAL while the market trades, OTC while it is shut.

When a market reopens after an OTC stretch the symbol passes through
ANCHORING, during which the emitted price eases from the synthetic path
onto the real one so charts show no gap.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from otcfeed.generator.models import PriceMode
from otcfeed.scheduler.market_hours import is_real_market_open

logger = logging.getLogger("otcfeed.scheduler")

DEFAULT_ANCHORING_SECONDS = 15 * 60
ANCHORING_START_WEIGHT = 0.95


class PriceModeScheduler:
    """Tracks per-symbol mode transitions and anchoring windows.

    Args:
        clock: Returns the current time in epoch seconds.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.time
        self._previous_modes: dict[str, PriceMode] = {}
        self._anchoring_started: dict[str, float] = {}
        self._anchoring_seconds: dict[str, float] = {}

    def set_anchoring_duration(self, symbol: str, minutes: float) -> None:
        self._anchoring_seconds[symbol] = minutes * 60.0

    def is_real_market_open(self, market_type: str) -> bool:
        return is_real_market_open(market_type, self._now())

    def get_price_mode(self, symbol: str, market_type: str) -> PriceMode:
        """Resolve the mode for *symbol* now, recording transitions."""
        previous = self._previous_modes.get(symbol)

        if self.is_real_market_open(market_type):
            if previous == PriceMode.OTC:
                self._anchoring_started[symbol] = self._clock()
                self._previous_modes[symbol] = PriceMode.ANCHORING
                logger.info(
                    "Mode switch: OTC -> ANCHORING for %s (%.0fs).",
                    symbol, self._duration(symbol),
                )
                return PriceMode.ANCHORING
            if self._is_anchoring(symbol):
                return PriceMode.ANCHORING
            self._previous_modes[symbol] = PriceMode.REAL
            return PriceMode.REAL

        if previous in (PriceMode.REAL, PriceMode.ANCHORING):
            logger.info("Mode switch: %s -> OTC for %s.", previous.value, symbol)
            self._anchoring_started.pop(symbol, None)
        self._previous_modes[symbol] = PriceMode.OTC
        return PriceMode.OTC

    def get_anchoring_progress(self, symbol: str) -> float:
        """Fraction of the anchoring window elapsed; 1.0 when not anchoring."""
        started = self._anchoring_started.get(symbol)
        if started is None:
            return 1.0
        duration = self._duration(symbol)
        if duration <= 0:
            return 1.0
        return min((self._clock() - started) / duration, 1.0)

    def get_anchored_price(self, symbol: str, otc_price: float, real_price: float) -> float:
        """Blend *otc_price* into *real_price* with quadratic ease-out."""
        progress = self.get_anchoring_progress(symbol)
        if progress >= 1.0:
            return real_price
        otc_weight = ANCHORING_START_WEIGHT * (1.0 - progress) ** 2
        return otc_price * otc_weight + real_price * (1.0 - otc_weight)

    def end_anchoring(self, symbol: str) -> None:
        self._anchoring_started.pop(symbol, None)
        self._previous_modes[symbol] = PriceMode.REAL

    def anchoring_symbols(self) -> list[str]:
        return list(self._anchoring_started.keys())

    def reset_symbol(self, symbol: str) -> None:
        self._previous_modes.pop(symbol, None)
        self._anchoring_started.pop(symbol, None)
        self._anchoring_seconds.pop(symbol, None)

    # ── Internals ────────────────────────────────────────────────────────

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def _duration(self, symbol: str) -> float:
        return self._anchoring_seconds.get(symbol, DEFAULT_ANCHORING_SECONDS)

    def _is_anchoring(self, symbol: str) -> bool:
        started = self._anchoring_started.get(symbol)
        if started is None:
            return False
        if self._clock() - started >= self._duration(symbol):
            del self._anchoring_started[symbol]
            logger.info("Anchoring completed for %s.", symbol)
            return False
        return True
