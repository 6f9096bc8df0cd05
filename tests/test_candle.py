"""Tests for candle tracking, history and tick construction."""

from collections import deque
from datetime import datetime, timezone

import pytest

from otcfeed.generator.candle import (
    build_tick,
    candle_ohlc,
    record_price,
    reset_candle,
    update_candle_tracking,
)
from otcfeed.generator.models import (
    AntiPatternState,
    CandleState,
    PriceMode,
    PriceState,
    TimingState,
    WaveState,
)

TS = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_state(price=1.1, history_size=300, symbol="EURUSD-OTC") -> PriceState:
    return PriceState(
        symbol=symbol,
        current_price=price,
        last_real_price=price,
        volatility=0.0003,
        last_return=0.0,
        last_update=0.0,
        history=deque([price], maxlen=history_size),
        wave=WaveState(direction=1, target_pips=20.0, progress_pips=0.0,
                       remaining_ticks=30, start_price=price),
        candle=CandleState(open=price, high=price, low=price),
        timing=TimingState(next_tick_delay_ms=500, last_tick_time=0.0),
        anti_pattern=AntiPatternState(last_direction=1),
    )


class TestCandleTracking:
    def test_extends_high_and_low(self):
        candle = CandleState(open=1.1, high=1.1, low=1.1)
        update_candle_tracking(candle, 1.1005)
        update_candle_tracking(candle, 1.0996)
        assert candle.high == 1.1005
        assert candle.low == 1.0996
        assert candle.open == 1.1
        assert candle.tick_count == 2

    def test_reset(self):
        candle = CandleState(open=1.1, high=1.2, low=1.0, tick_count=9)
        reset_candle(candle, 1.15)
        assert (candle.open, candle.high, candle.low, candle.tick_count) == (1.15, 1.15, 1.15, 0)

    def test_ohlc_closes_at_current_price(self):
        state = _make_state()
        record_price(state, 1.1003)
        record_price(state, 1.1001)
        ohlc = candle_ohlc(state)
        assert ohlc.open == 1.1
        assert ohlc.high == 1.1003
        assert ohlc.low == 1.1
        assert ohlc.close == 1.1001
        assert ohlc.tick_count == 2
        assert ohlc.low <= min(ohlc.open, ohlc.close)
        assert ohlc.high >= max(ohlc.open, ohlc.close)


class TestHistory:
    def test_record_price_appends(self):
        state = _make_state()
        record_price(state, 1.1002)
        assert list(state.history) == [1.1, 1.1002]
        assert state.current_price == 1.1002

    def test_history_is_bounded(self):
        state = _make_state(history_size=3)
        for price in (1.1001, 1.1002, 1.1003, 1.1004):
            record_price(state, price)
        assert list(state.history) == [1.1002, 1.1003, 1.1004]


class TestBuildTick:
    def test_forex_tick(self):
        state = _make_state()
        record_price(state, 1.101)
        tick = build_tick(state, 1.101, 0.0001, PriceMode.OTC, TS)
        assert tick.symbol == "EURUSD-OTC"
        assert tick.bid == 1.1009
        assert tick.ask == 1.1011
        assert tick.change == pytest.approx(0.001)
        assert tick.change_percent == 0.09
        assert tick.price_mode == PriceMode.OTC
        assert tick.volatility == 0.0003

    def test_crypto_precision(self):
        state = _make_state(price=100.0, symbol="BTCUSD-OTC")
        tick = build_tick(state, 100.5, 0.01, PriceMode.REAL, TS)
        assert tick.bid == 100.49
        assert tick.ask == 100.51
        assert tick.change == 0.5
        assert tick.change_percent == 0.5

    def test_to_dict(self):
        tick = build_tick(_make_state(), 1.1, 0.0001, PriceMode.ANCHORING, TS)
        data = tick.to_dict()
        assert data["price_mode"] == "ANCHORING"
        assert data["timestamp"] == "2026-03-04T12:00:00+00:00"
        assert data["change"] == 0.0
