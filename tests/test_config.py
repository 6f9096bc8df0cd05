"""Tests for otcfeed.config — environment variable loading and the symbol catalogue."""

import json

import pytest

from otcfeed.config import load_config, load_symbols


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure OTCFeed env vars are cleared between tests."""
    for var in [
        "TICK_INTERVAL_MS",
        "TICK_VARIANCE_MS",
        "PRICE_HISTORY_SIZE",
        "FEED_POLL_MS",
        "CANDLE_PERIOD_SECONDS",
        "REFERENCE_UPDATE_SECONDS",
        "RANDOM_SEED",
        "SYMBOLS_FILE",
        "LOG_LEVEL",
        "API_PORT",
    ]:
        monkeypatch.delenv(var, raising=False)


def _no_env_file(tmp_path) -> str:
    """Path of a non-existent .env so load_dotenv never reads a real one."""
    return str(tmp_path / "nonexistent.env")


def _write_symbols(tmp_path, entries) -> str:
    path = tmp_path / "symbols.json"
    path.write_text(json.dumps({"symbols": entries}), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        cfg = load_config(env_path=_no_env_file(tmp_path))
        assert cfg.tick_interval_ms == 500
        assert cfg.tick_variance_ms == 120
        assert cfg.price_history_size == 300
        assert cfg.feed_poll_ms == 1000
        assert cfg.candle_period_seconds == 5
        assert cfg.reference_update_seconds == 300
        assert cfg.random_seed is None
        assert cfg.log_level == "INFO"
        assert cfg.api_port == 8080
        assert cfg.symbols_file.endswith("symbols.json")

    def test_overrides_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TICK_INTERVAL_MS", "250")
        monkeypatch.setenv("TICK_VARIANCE_MS", "50")
        monkeypatch.setenv("RANDOM_SEED", "42")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        cfg = load_config(env_path=_no_env_file(tmp_path))
        assert cfg.tick_interval_ms == 250
        assert cfg.tick_variance_ms == 50
        assert cfg.random_seed == 42
        assert cfg.log_level == "DEBUG"

    def test_reads_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("API_PORT=9090\n", encoding="utf-8")
        cfg = load_config(env_path=str(env_file))
        assert cfg.api_port == 9090

    def test_non_integer_names_variable(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FEED_POLL_MS", "fast")
        with pytest.raises(ValueError, match="FEED_POLL_MS"):
            load_config(env_path=_no_env_file(tmp_path))

    def test_variance_must_be_below_interval(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TICK_INTERVAL_MS", "100")
        monkeypatch.setenv("TICK_VARIANCE_MS", "100")
        with pytest.raises(ValueError, match="TICK_VARIANCE_MS"):
            load_config(env_path=_no_env_file(tmp_path))

    def test_history_size_at_least_one(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PRICE_HISTORY_SIZE", "0")
        with pytest.raises(ValueError, match="PRICE_HISTORY_SIZE"):
            load_config(env_path=_no_env_file(tmp_path))

    def test_config_is_frozen(self, tmp_path):
        cfg = load_config(env_path=_no_env_file(tmp_path))
        with pytest.raises(AttributeError):
            cfg.api_port = 1


class TestLoadSymbols:
    def test_loads_repo_catalogue(self):
        seeds = load_symbols()
        symbols = [s.config.symbol for s in seeds]
        assert "EURUSD-OTC" in symbols
        eur = next(s for s in seeds if s.config.symbol == "EURUSD-OTC")
        assert eur.config.pip_size == 0.0001
        assert eur.config.max_deviation_percent == 2.0
        assert eur.initial_price == 1.1

    def test_missing_file_returns_empty(self, tmp_path):
        assert load_symbols(tmp_path / "missing.json") == []

    def test_unknown_keys_ignored(self, tmp_path):
        path = _write_symbols(tmp_path, [
            {"symbol": "AUDUSD-OTC", "pip_size": 0.0001, "initial_price": 0.65,
             "display_name": "Aussie"},
        ])
        seeds = load_symbols(path)
        assert len(seeds) == 1
        assert seeds[0].config.base_symbol == "AUDUSD"
        assert seeds[0].initial_price == 0.65

    def test_missing_initial_price_raises(self, tmp_path):
        path = _write_symbols(tmp_path, [{"symbol": "AUDUSD-OTC", "pip_size": 0.0001}])
        with pytest.raises(ValueError, match="initial_price"):
            load_symbols(path)

    def test_invalid_pip_size_raises(self, tmp_path):
        path = _write_symbols(tmp_path, [
            {"symbol": "AUDUSD-OTC", "pip_size": 0, "initial_price": 0.65},
        ])
        with pytest.raises(ValueError, match="pip_size"):
            load_symbols(path)
