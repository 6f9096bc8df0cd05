"""Tests for SymbolConfig validation and defaults."""

import pytest

from otcfeed.models.symbol_config import SymbolConfig, SymbolSeed


class TestSymbolConfig:
    def test_defaults(self):
        cfg = SymbolConfig(symbol="EURUSD-OTC", pip_size=0.0001)
        assert cfg.market_type == "FOREX"
        assert cfg.max_deviation_percent == 1.5
        assert cfg.base_volatility == 0.0003
        assert cfg.is_24_hours is True
        assert cfg.anchoring_duration_mins == 15
        assert cfg.enabled is True

    def test_base_symbol_derived_from_suffix(self):
        assert SymbolConfig(symbol="GBPUSD-OTC", pip_size=0.0001).base_symbol == "GBPUSD"
        assert SymbolConfig(symbol="XAUUSD", pip_size=0.01).base_symbol == "XAUUSD"

    def test_explicit_base_symbol_kept(self):
        cfg = SymbolConfig(symbol="BTC-OTC", pip_size=0.01, base_symbol="BTCUSDT")
        assert cfg.base_symbol == "BTCUSDT"

    @pytest.mark.parametrize("pip", [0, -0.0001])
    def test_pip_size_must_be_positive(self, pip):
        with pytest.raises(ValueError, match="pip_size"):
            SymbolConfig(symbol="EURUSD-OTC", pip_size=pip)

    def test_deviation_must_be_positive(self):
        with pytest.raises(ValueError, match="max_deviation_percent"):
            SymbolConfig(symbol="EURUSD-OTC", pip_size=0.0001, max_deviation_percent=0)

    def test_frozen(self):
        cfg = SymbolConfig(symbol="EURUSD-OTC", pip_size=0.0001)
        with pytest.raises(AttributeError):
            cfg.pip_size = 0.01

    def test_seed_pairs_config_and_price(self):
        seed = SymbolSeed(SymbolConfig(symbol="EURUSD-OTC", pip_size=0.0001), 1.1)
        assert seed.config.symbol == "EURUSD-OTC"
        assert seed.initial_price == 1.1
