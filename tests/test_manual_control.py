"""Tests for the in-memory manual control service."""

import logging

import pytest

from otcfeed.control.manual_control import InMemoryManualControl, ManualControlProtocol


# ── Helpers ──────────────────────────────────────────────────────────────


class _FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_control():
    clock = _FakeClock()
    return InMemoryManualControl(clock=clock), clock


class TestDefaults:
    def test_satisfies_protocol(self):
        control, _ = _make_control()
        assert isinstance(control, ManualControlProtocol)

    def test_untouched_symbol_is_neutral(self):
        control, _ = _make_control()
        assert control.get_price_override("EURUSD-OTC") is None
        assert control.get_volatility_multiplier("EURUSD-OTC") == 1.0
        assert control.get_direction_bias("EURUSD-OTC") == (0.0, 0.0)
        assert control.get_control("EURUSD-OTC") is None


class TestDirectionBias:
    def test_set_and_read(self):
        control, _ = _make_control()
        control.set_direction_bias("EURUSD-OTC", 60, 0.8, admin_id="ops")
        assert control.get_direction_bias("EURUSD-OTC") == (60.0, 0.8)
        assert control.get_control("EURUSD-OTC")["updated_by"] == "ops"

    @pytest.mark.parametrize("bias,strength", [(101, 0.5), (-150, 0.5), (50, 1.5), (50, -0.1)])
    def test_out_of_range_rejected(self, bias, strength):
        control, _ = _make_control()
        with pytest.raises(ValueError):
            control.set_direction_bias("EURUSD-OTC", bias, strength)

    def test_expires(self):
        control, clock = _make_control()
        control.set_direction_bias("EURUSD-OTC", -40, 1.0, duration_minutes=10)
        clock.advance(9 * 60)
        assert control.get_direction_bias("EURUSD-OTC") == (-40.0, 1.0)
        clock.advance(60)
        assert control.get_direction_bias("EURUSD-OTC") == (0.0, 0.0)

    def test_non_positive_duration_rejected(self):
        control, _ = _make_control()
        with pytest.raises(ValueError, match="duration"):
            control.set_direction_bias("EURUSD-OTC", 40, 1.0, duration_minutes=0)

    def test_clear(self):
        control, _ = _make_control()
        control.set_direction_bias("EURUSD-OTC", 40, 1.0)
        control.clear_direction_bias("EURUSD-OTC")
        assert control.get_direction_bias("EURUSD-OTC") == (0.0, 0.0)


class TestVolatility:
    def test_set_and_clear(self):
        control, _ = _make_control()
        control.set_volatility_multiplier("EURUSD-OTC", 2.5)
        assert control.get_volatility_multiplier("EURUSD-OTC") == 2.5
        control.clear_volatility_multiplier("EURUSD-OTC")
        assert control.get_volatility_multiplier("EURUSD-OTC") == 1.0

    @pytest.mark.parametrize("multiplier", [0.05, 5.5])
    def test_out_of_range_rejected(self, multiplier):
        control, _ = _make_control()
        with pytest.raises(ValueError, match="multiplier"):
            control.set_volatility_multiplier("EURUSD-OTC", multiplier)


class TestPriceOverride:
    def test_set_and_expire(self):
        control, clock = _make_control()
        control.set_price_override("EURUSD-OTC", 1.105, expiry_minutes=2)
        assert control.get_price_override("EURUSD-OTC") == 1.105
        clock.advance(120)
        assert control.get_price_override("EURUSD-OTC") is None

    @pytest.mark.parametrize("price", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_price_rejected(self, price):
        control, _ = _make_control()
        with pytest.raises(ValueError, match="override price"):
            control.set_price_override("EURUSD-OTC", price, expiry_minutes=1)

    def test_expiry_leaves_other_controls(self):
        control, clock = _make_control()
        control.set_price_override("EURUSD-OTC", 1.105, expiry_minutes=1)
        control.set_volatility_multiplier("EURUSD-OTC", 3.0)
        clock.advance(61)
        snapshot = control.get_control("EURUSD-OTC")
        assert snapshot["price_override"] is None
        assert snapshot["volatility_multiplier"] == 3.0


class TestClearAllAndAudit:
    def test_clear_all(self):
        control, _ = _make_control()
        control.set_volatility_multiplier("EURUSD-OTC", 2.0)
        assert control.clear_all("EURUSD-OTC") is True
        assert control.clear_all("EURUSD-OTC") is False
        assert control.get_control("EURUSD-OTC") is None

    def test_all_controls(self):
        control, _ = _make_control()
        control.set_volatility_multiplier("EURUSD-OTC", 2.0)
        control.set_direction_bias("BTCUSD-OTC", 10, 0.5)
        symbols = sorted(c["symbol"] for c in control.all_controls())
        assert symbols == ["BTCUSD-OTC", "EURUSD-OTC"]

    def test_changes_are_audited(self, caplog):
        control, _ = _make_control()
        with caplog.at_level(logging.INFO, logger="otcfeed.audit"):
            control.set_price_override("EURUSD-OTC", 1.2, expiry_minutes=5, admin_id="alice",
                                       reason="drill")
        assert any("PRICE_OVERRIDE EURUSD-OTC" in r.message and "alice" in r.message
                   for r in caplog.records)
