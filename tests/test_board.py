"""Tests for the CLI price board and the simulate helper."""

from otcfeed.cli.board import format_board
from otcfeed.generator.price_generator import OTCPriceGenerator
from otcfeed.generator.rng import NumpyRandomSource
from otcfeed.main import _stepping_clock, simulate
from otcfeed.models.symbol_config import SymbolConfig


def _tick_dict(symbol="EURUSD-OTC", **overrides) -> dict:
    tick = {
        "symbol": symbol,
        "price": 1.10234,
        "bid": 1.10224,
        "ask": 1.10244,
        "price_mode": "OTC",
        "change_percent": 0.21,
    }
    tick.update(overrides)
    return tick


class TestFormatBoard:
    def test_rows_sorted_with_precision(self, capsys):
        output = format_board(
            {
                "EURUSD-OTC": _tick_dict(),
                "BTCUSD-OTC": _tick_dict("BTCUSD-OTC", bid=89940.7, ask=89940.72,
                                         change_percent=-1.5, price_mode="REAL"),
            },
            {"EURUSD-OTC": 0.0001, "BTCUSD-OTC": 0.01},
        )
        lines = output.splitlines()
        assert "OTCFeed Prices" in lines[0]
        assert lines[2].strip().startswith("BTCUSD-OTC")
        assert "89,940.70" in lines[2]
        assert "-1.50" in lines[2]
        assert "1.10224" in lines[3]
        assert "+0.21" in lines[3]
        assert capsys.readouterr().out.strip() == output.strip()

    def test_empty_board(self):
        output = format_board({})
        assert "(no ticks yet)" in output

    def test_missing_fields(self):
        output = format_board({"X-OTC": {"symbol": "X-OTC"}})
        assert "N/A" in output


class TestSimulate:
    def test_every_call_is_due(self):
        gen = OTCPriceGenerator(rng=NumpyRandomSource(1), clock=_stepping_clock(0.621))
        gen.initialize_symbol(SymbolConfig(symbol="EURUSD-OTC", pip_size=0.0001), 1.1)
        ticks = simulate(gen, "EURUSD-OTC", 25)
        assert len(ticks) == 25
        assert all(t.symbol == "EURUSD-OTC" for t in ticks)

    def test_unknown_symbol_yields_nothing(self):
        gen = OTCPriceGenerator(rng=NumpyRandomSource(1), clock=_stepping_clock(1.0))
        assert simulate(gen, "NOPE", 5) == []
