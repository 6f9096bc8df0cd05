"""Tests for the movement size model and market parameters."""

import pytest

from otcfeed.generator.movement import (
    calculate_move_size,
    clamp,
    noise_factor,
    pick_size_bucket,
)
from otcfeed.generator.params import MARKET_PARAMS, SIZE_BUCKETS, get_market_params
from otcfeed.generator.rng import NumpyRandomSource, ScriptedRandomSource


class TestClamp:
    def test_inside_range_unchanged(self):
        assert clamp(0.5, 0.0, 1.0) == 0.5

    def test_clamps_both_ends(self):
        assert clamp(-3.0, 0.0, 1.0) == 0.0
        assert clamp(3.0, 0.0, 1.0) == 1.0


class TestSizeBuckets:
    def test_probabilities_sum_to_one(self):
        assert sum(b.probability for b in SIZE_BUCKETS) == pytest.approx(1.0)

    @pytest.mark.parametrize("roll,name", [
        (0.0, "small"),
        (0.39, "small"),
        (0.41, "medium"),
        (0.84, "medium"),
        (0.86, "large"),
        (0.999, "large"),
    ])
    def test_roll_maps_to_bucket(self, roll, name):
        assert pick_size_bucket(roll).name == name

    def test_roll_past_total_falls_into_last_bucket(self):
        assert pick_size_bucket(1.5).name == "large"


class TestNoiseFactor:
    def test_zero_noise_is_identity(self):
        assert noise_factor(0.0) == 1.0

    def test_one_sigma(self):
        assert noise_factor(1.0) == pytest.approx(1.25)

    def test_clamped(self):
        assert noise_factor(10.0) == 1.6
        assert noise_factor(-10.0) == 0.4


class TestMarketParams:
    def test_forex_and_crypto_tables(self):
        assert MARKET_PARAMS["FOREX"].move_multiplier == 0.85
        assert MARKET_PARAMS["FOREX"].wave_bias == 0.54
        assert MARKET_PARAMS["CRYPTO"].move_multiplier == 15.0
        assert MARKET_PARAMS["CRYPTO"].pullback_prob == 0.26

    def test_lookup_is_case_insensitive(self):
        assert get_market_params("crypto") is MARKET_PARAMS["CRYPTO"]

    def test_unknown_market_falls_back_to_forex(self):
        assert get_market_params("COMMODITY") is MARKET_PARAMS["FOREX"]


class TestCalculateMoveSize:
    def test_scripted_small_move(self):
        rng = ScriptedRandomSource(randoms=[0.0, 0.5], gaussians=[0.0])
        move = calculate_move_size(rng, get_market_params("FOREX"))
        # small bucket midpoint 0.40 pips * 0.85
        assert move == pytest.approx(0.34)
        assert rng.remaining == 0

    def test_crypto_multiplier(self):
        rng = ScriptedRandomSource(randoms=[0.5, 0.0], gaussians=[0.0])
        move = calculate_move_size(rng, get_market_params("CRYPTO"))
        # medium bucket lower edge 0.55 pips * 15
        assert move == pytest.approx(8.25)

    def test_always_positive_and_bounded(self):
        rng = NumpyRandomSource(seed=7)
        market = get_market_params("FOREX")
        ceiling = SIZE_BUCKETS[-1].max_pips * market.move_multiplier * 1.6
        for _ in range(2000):
            move = calculate_move_size(rng, market)
            assert 0 < move <= ceiling
