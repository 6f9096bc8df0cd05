"""FeedManager: drives the price generator for every configured symbol.

Each symbol gets exactly one ``asyncio`` task that owns its tick
generation, so a symbol's ticks are serialised without extra locking.  A
separate task closes candles once per candle period.  Ticks and closed
candles go to pluggable sinks (the API's shared state by default).
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from otcfeed.api.routers import record_candle, update_latest_tick
from otcfeed.config import Config
from otcfeed.generator.models import CandleOHLC, PriceMode, PriceTick
from otcfeed.generator.price_generator import OTCPriceGenerator
from otcfeed.models.symbol_config import SymbolSeed
from otcfeed.scheduler.market_hours import current_forex_session
from otcfeed.scheduler.price_mode import PriceModeScheduler

logger = logging.getLogger("otcfeed.feed_manager")

TickSink = Callable[[PriceTick], None]
CandleSink = Callable[[str, CandleOHLC, Optional[int], str], None]


class FeedManager:
    """Lifecycle manager for one-or-many OTC symbols.

    Args:
        config: Global ``Config`` loaded from ``.env``.
        generator: Shared ``OTCPriceGenerator``.
        seeds: Symbols to serve (disabled ones are skipped).
        scheduler: Price-mode scheduler for symbols that follow market hours.
        on_tick: Receives every emitted tick.
        on_candle: Receives ``(symbol, ohlc, volume, closed_at)`` per period.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        config: Config,
        generator: OTCPriceGenerator,
        seeds: list[SymbolSeed],
        scheduler: Optional[PriceModeScheduler] = None,
        on_tick: Optional[TickSink] = None,
        on_candle: Optional[CandleSink] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = config
        self._generator = generator
        self._seeds = [s for s in seeds if s.config.enabled]
        self._clock = clock or time.time
        self._scheduler = scheduler or PriceModeScheduler(clock=self._clock)
        self._on_tick = on_tick or update_latest_tick
        self._on_candle = on_candle or record_candle
        self._real_prices: dict[str, float] = {}  # base symbol → latest real price
        self._last_reference_update: dict[str, float] = {}
        self._running: dict[str, bool] = {}
        self._tick_counts: dict[str, int] = {}
        self._last_modes: dict[str, PriceMode] = {}
        self._errors: dict[str, str] = {}
        self._candles_running = False

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def symbols(self) -> list[str]:
        """Symbols registered by :meth:`build_symbols`."""
        return list(self._running.keys())

    def pip_sizes(self) -> dict[str, float]:
        """``{symbol: pip_size}`` for every registered symbol."""
        sizes = {}
        for symbol in self.symbols:
            cfg = self._generator.get_config(symbol)
            if cfg is not None:
                sizes[symbol] = cfg.pip_size
        return sizes

    def build_symbols(self) -> None:
        """Initialise every enabled seed in the generator.

        Call **once** before :meth:`run_all`.
        """
        for seed in self._seeds:
            cfg = seed.config
            if not self._generator.initialize_symbol(cfg, seed.initial_price):
                continue
            self._scheduler.set_anchoring_duration(cfg.symbol, cfg.anchoring_duration_mins)
            self._running[cfg.symbol] = False
            self._tick_counts[cfg.symbol] = 0
            logger.info(
                "Registered symbol '%s' (%s, base %s, 24h=%s).",
                cfg.symbol, cfg.market_type, cfg.base_symbol, cfg.is_24_hours,
            )

    def update_real_price(self, base_symbol: str, price: float) -> None:
        """Record a real-market price and refresh the bounds anchor.

        The anchor of each OTC symbol on *base_symbol* moves at most once
        per ``reference_update_seconds`` so the synthetic path does not
        shadow every real tick.
        """
        self._real_prices[base_symbol] = price
        now = self._clock()
        for symbol in self.symbols:
            cfg = self._generator.get_config(symbol)
            if cfg is None or cfg.base_symbol != base_symbol:
                continue
            last = self._last_reference_update.get(symbol)
            if last is None or now - last >= self._config.reference_update_seconds:
                self._generator.update_real_price(symbol, price)
                self._last_reference_update[symbol] = now

    def tick_symbol(self, symbol: str) -> Optional[PriceTick]:
        """Produce and publish one tick for *symbol* according to its mode."""
        cfg = self._generator.get_config(symbol)
        if cfg is None:
            return None

        if cfg.is_24_hours:
            mode = PriceMode.OTC
            tick = self._generator.generate_next_price(symbol)
        else:
            scheduled = self._scheduler.get_price_mode(symbol, cfg.market_type)
            mode, tick = self._tick_for_mode(symbol, cfg.base_symbol, scheduled)

        if self._last_modes.get(symbol) not in (None, mode):
            logger.info("Symbol '%s' now priced in %s mode.", symbol, mode.value)
        self._last_modes[symbol] = mode

        if tick is not None:
            self._tick_counts[symbol] = self._tick_counts.get(symbol, 0) + 1
            self._on_tick(tick)
        return tick

    def flush_candles(self) -> None:
        """Publish the current candle of every symbol, then start a new one."""
        closed_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()
        for symbol in self.symbols:
            ohlc = self._generator.get_candle_ohlc(symbol)
            if ohlc is None:
                continue
            volume = self._generator.generate_volume(symbol)
            self._on_candle(symbol, ohlc, volume, closed_at)
            self._generator.reset_candle(symbol)

    async def run_symbol(self, symbol: str, max_cycles: int = 0) -> int:
        """Tick *symbol* until stopped.

        Returns:
            Number of ticks emitted.
        """
        self._running[symbol] = True
        emitted = 0
        cycle = 0
        poll_seconds = self._config.feed_poll_ms / 1000.0
        while self._running.get(symbol):
            cycle += 1
            try:
                if self.tick_symbol(symbol) is not None:
                    emitted += 1
            except Exception as exc:
                logger.error("Symbol '%s' tick %d failed: %s", symbol, cycle, exc)
                self._errors[symbol] = str(exc)
            if max_cycles > 0 and cycle >= max_cycles:
                break
            await asyncio.sleep(poll_seconds)
        self._running[symbol] = False
        return emitted

    async def run_candles(self) -> None:
        """Close candles every ``candle_period_seconds`` until stopped."""
        self._candles_running = True
        while self._candles_running:
            await asyncio.sleep(self._config.candle_period_seconds)
            if self._candles_running:
                self.flush_candles()

    async def run_all(self, max_cycles: int = 0) -> dict[str, int]:
        """Launch every symbol concurrently and wait for them to finish.

        Returns:
            ``{symbol: ticks_emitted}`` for every symbol.
        """
        if not self._running:
            self.build_symbols()

        tasks = {
            symbol: asyncio.create_task(self.run_symbol(symbol, max_cycles))
            for symbol in self.symbols
        }
        candle_task = asyncio.create_task(self.run_candles())

        results: dict[str, int] = {}
        for symbol, task in tasks.items():
            try:
                results[symbol] = await task
            except Exception as exc:  # pragma: no cover
                logger.error("Symbol '%s' crashed: %s", symbol, exc)
                self._errors[symbol] = str(exc)
                results[symbol] = 0

        self._candles_running = False
        candle_task.cancel()
        try:
            await candle_task
        except asyncio.CancelledError:
            pass
        return results

    def stop_all(self) -> None:
        """Signal every symbol task to stop after its current cycle."""
        for symbol in self.symbols:
            self._running[symbol] = False
        self._candles_running = False
        logger.info("Stop signal sent to all symbols.")

    def stop_symbol(self, symbol: str) -> None:
        """Stop a single symbol by name."""
        if symbol in self._running:
            self._running[symbol] = False
            logger.info("Stop signal sent to symbol '%s'.", symbol)

    def get_status(self, symbol: Optional[str] = None) -> dict:
        """Return aggregated or per-symbol status."""
        if symbol is not None:
            if symbol not in self._running:
                return {"error": f"Unknown symbol: {symbol}"}
            return self._symbol_status(symbol)
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return {
            "forex_session": current_forex_session(now.hour + now.minute / 60.0),
            "symbols": {s: self._symbol_status(s) for s in self.symbols},
        }

    # ── Internals ────────────────────────────────────────────────────────

    def _tick_for_mode(
        self,
        symbol: str,
        base_symbol: str,
        mode: PriceMode,
    ) -> tuple[PriceMode, Optional[PriceTick]]:
        """Return the mode actually used and the tick it produced."""
        real_price = self._real_prices.get(base_symbol)

        if mode == PriceMode.REAL and real_price:
            return mode, self._generator.get_real_based_price(symbol, real_price)

        if mode == PriceMode.ANCHORING and real_price:
            otc_price = self._generator.get_current_price(symbol)
            if otc_price:
                anchored = self._scheduler.get_anchored_price(symbol, otc_price, real_price)
                return mode, self._generator.preview_tick(symbol, anchored, PriceMode.ANCHORING)

        # OTC, or no real price to follow yet
        return PriceMode.OTC, self._generator.generate_next_price(symbol)

    def _symbol_status(self, symbol: str) -> dict:
        mode = self._last_modes.get(symbol)
        return {
            "running": self._running.get(symbol, False),
            "tick_count": self._tick_counts.get(symbol, 0),
            "mode": mode.value if mode else None,
            "current_price": self._generator.get_current_price(symbol),
            "last_error": self._errors.get(symbol),
        }
