"""Tuning constants for the OTC price generator.

Wider ranges and lower biases make the path harder to read; the wave bias
stays just above a coin flip so trends exist without being exploitable.
"""

from dataclasses import dataclass


# ── Wave ─────────────────────────────────────────────────────────────────

WAVE_LENGTH_MIN = 15
WAVE_LENGTH_MAX = 100
WAVE_PIPS_MIN = 8.0
WAVE_PIPS_MAX = 45.0
WAVE_CONTINUATION_PROB = 0.42

# ── Unpredictability ─────────────────────────────────────────────────────

MICRO_REVERSAL_PROB = 0.12
FAKE_OUT_PROB = 0.06
FAKE_OUT_LENGTH_MIN = 3
FAKE_OUT_LENGTH_MAX = 7
ANTI_PATTERN_THRESHOLD = 4
ANTI_PATTERN_STEP_PROB = 0.08
ANTI_PATTERN_MAX_PROB = 0.7

# ── Pullback ─────────────────────────────────────────────────────────────

PULLBACK_PROB = 0.22
PULLBACK_LENGTH_MIN = 2
PULLBACK_LENGTH_MAX = 5
PULLBACK_STRENGTH = 0.45

# ── Movement size ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SizeBucket:
    """One tier of the move-size distribution, in pips."""

    name: str
    min_pips: float
    max_pips: float
    probability: float


SIZE_BUCKETS: tuple[SizeBucket, ...] = (
    SizeBucket("small", 0.25, 0.55, 0.40),
    SizeBucket("medium", 0.55, 1.15, 0.45),
    SizeBucket("large", 1.15, 2.20, 0.15),
)

NOISE_SCALE = 0.25
NOISE_MIN = 0.4
NOISE_MAX = 1.6

# ── Bounds ───────────────────────────────────────────────────────────────

MEAN_REVERSION_TRIGGER = 0.5  # fraction of the deviation band
MEAN_REVERSION_PULL = 0.02  # fraction of the deviation applied per tick
CLAMP_JITTER_PIPS = 5.0

# ── Ticks ────────────────────────────────────────────────────────────────

SPREAD_PIPS = 2
DEFAULT_IMPULSE_TICKS = 20
DEFAULT_CONSOLIDATION_TICKS = 15
CONSOLIDATION_TARGET_PIPS = 3.0
ADMIN_BIAS_WEIGHT = 0.35


# ── Market parameters ────────────────────────────────────────────────────


@dataclass(frozen=True)
class MarketParams:
    """Per-market scaling and direction tuning."""

    move_multiplier: float
    wave_bias: float  # probability of following the wave direction
    pullback_prob: float = PULLBACK_PROB


# Crypto quotes are large numbers with a 0.01 pip, so the multiplier is
# much higher to produce percentage moves comparable to forex.
MARKET_PARAMS: dict[str, MarketParams] = {
    "FOREX": MarketParams(move_multiplier=0.85, wave_bias=0.54, pullback_prob=0.24),
    "CRYPTO": MarketParams(move_multiplier=15.0, wave_bias=0.51, pullback_prob=0.26),
}


def get_market_params(market_type: str | None) -> MarketParams:
    """Look up market parameters case-insensitively, defaulting to FOREX."""
    key = (market_type or "FOREX").upper()
    return MARKET_PARAMS.get(key, MARKET_PARAMS["FOREX"])
