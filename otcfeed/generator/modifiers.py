"""Direction modifiers applied after the wave machine picks a direction.

Order matters: micro-reversal, then the streak breaker, then admin bias.
"""

from otcfeed.generator.models import AntiPatternState
from otcfeed.generator.params import (
    ADMIN_BIAS_WEIGHT,
    ANTI_PATTERN_MAX_PROB,
    ANTI_PATTERN_STEP_PROB,
    ANTI_PATTERN_THRESHOLD,
    MICRO_REVERSAL_PROB,
)
from otcfeed.generator.rng import RandomSource


def apply_micro_reversal(direction: int, rng: RandomSource) -> int:
    """Flip *direction* outright with a small fixed probability."""
    if rng.random() < MICRO_REVERSAL_PROB:
        return -direction
    return direction


def streak_reversal_probability(streak: int) -> float:
    """Forced-reversal probability for a run of *streak* same-direction moves.

    Zero up to the threshold, then linear in ``streak - threshold``, capped.
    """
    excess = max(0, streak - ANTI_PATTERN_THRESHOLD)
    return min(ANTI_PATTERN_MAX_PROB, excess * ANTI_PATTERN_STEP_PROB)


def apply_anti_pattern(
    direction: int,
    state: AntiPatternState,
    rng: RandomSource,
) -> int:
    """Break long same-direction streaks.

    Extends the streak when *direction* repeats the last emitted direction
    and rolls for a forced reversal; a forced reversal zeroes the streak.
    A genuine change of direction restarts the streak at 1.  The caller
    records the final emitted direction in ``state.last_direction``.
    """
    if direction != state.last_direction:
        state.same_direction_count = 1
        return direction

    state.same_direction_count += 1
    if rng.random() < streak_reversal_probability(state.same_direction_count):
        state.same_direction_count = 0
        return -direction
    return direction


def bias_influence(bias: float, strength: float) -> float:
    """Probability that an admin bias overrides the organic direction."""
    return 0.5 + (abs(bias) / 100.0) * strength * ADMIN_BIAS_WEIGHT


def apply_admin_bias(
    direction: int,
    bias: float,
    strength: float,
    rng: RandomSource,
) -> int:
    """Pull *direction* toward the sign of an admin bias.

    Args:
        direction: Direction after the organic modifiers.
        bias: Admin bias in ``[-100, 100]``; 0 disables.
        strength: Admin strength in ``[0, 1]``; 0 disables.
        rng: Random source.
    """
    if bias == 0 or strength <= 0:
        return direction
    if rng.random() < bias_influence(bias, strength):
        return 1 if bias > 0 else -1
    return direction
