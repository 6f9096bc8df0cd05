"""Movement size model: how many pips the next tick moves.

Pure functions over a ``RandomSource``; no state.
"""

from otcfeed.generator.params import (
    NOISE_MAX,
    NOISE_MIN,
    NOISE_SCALE,
    SIZE_BUCKETS,
    MarketParams,
    SizeBucket,
)
from otcfeed.generator.rng import RandomSource


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into ``[low, high]``."""
    return max(low, min(high, value))


def pick_size_bucket(roll: float) -> SizeBucket:
    """Map a uniform roll in ``[0, 1)`` onto a size bucket.

    Buckets are walked in order, accumulating their probabilities; the last
    bucket absorbs any rounding slack.
    """
    cumulative = 0.0
    for bucket in SIZE_BUCKETS:
        cumulative += bucket.probability
        if roll < cumulative:
            return bucket
    return SIZE_BUCKETS[-1]


def noise_factor(gauss: float) -> float:
    """Multiplicative noise ``1 + N(0,1) * scale``, clamped to the noise band."""
    return clamp(1.0 + gauss * NOISE_SCALE, NOISE_MIN, NOISE_MAX)


def calculate_move_size(rng: RandomSource, market: MarketParams) -> float:
    """Sample the magnitude of the next move in pips.

    Args:
        rng: Random source.
        market: Market parameters supplying the move multiplier.

    Returns:
        A strictly positive pip count.
    """
    bucket = pick_size_bucket(rng.random())
    base_pips = rng.uniform(bucket.min_pips, bucket.max_pips)
    return base_pips * market.move_multiplier * noise_factor(rng.gauss())
