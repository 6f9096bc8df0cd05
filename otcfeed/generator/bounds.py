"""Bounded price calculator: move, soft mean reversion, hard clamp, pip rounding."""

from decimal import Decimal

from otcfeed.generator.params import (
    CLAMP_JITTER_PIPS,
    MEAN_REVERSION_PULL,
    MEAN_REVERSION_TRIGGER,
)
from otcfeed.generator.rng import RandomSource


def pip_decimals(pip_size: float) -> int:
    """Number of decimal places needed to print a multiple of *pip_size*."""
    exponent = Decimal(repr(pip_size)).normalize().as_tuple().exponent
    return max(0, -int(exponent))


def round_to_pip(price: float, pip_size: float) -> float:
    """Round *price* to the nearest multiple of *pip_size*.

    The result is also rounded to the pip's decimal places so that
    ``price / pip_size`` lands on an integer up to float epsilon.
    """
    return round(round(price / pip_size) * pip_size, pip_decimals(pip_size))


def deviation_bounds(reference_price: float, max_deviation_percent: float) -> tuple[float, float]:
    """Return ``(lower, upper)`` hard bounds around *reference_price*."""
    band = max_deviation_percent / 100.0
    return reference_price * (1 - band), reference_price * (1 + band)


def calculate_bounded_price(
    current_price: float,
    reference_price: float,
    move_pips: float,
    direction: int,
    pip_size: float,
    max_deviation_percent: float,
    rng: RandomSource,
) -> float:
    """Compute the next price.

    1. Raw candidate: ``current + move_pips * pip_size * direction``.
    2. Mean reversion: when ``current`` sits more than half the band away
       from the reference, nudge the candidate 2 % of that distance back.
    3. Hard clamp: a candidate outside the band is pulled back inside by a
       random 0-5 pip jitter so the boundary never draws a flat line.
    4. Round to pip size.
    """
    candidate = current_price + move_pips * pip_size * direction

    deviation = reference_price - current_price
    max_deviation = reference_price * (max_deviation_percent / 100.0)
    if abs(deviation) > max_deviation * MEAN_REVERSION_TRIGGER:
        candidate += deviation * MEAN_REVERSION_PULL

    lower, upper = deviation_bounds(reference_price, max_deviation_percent)
    if candidate > upper:
        candidate = upper - rng.uniform(0, CLAMP_JITTER_PIPS) * pip_size
    elif candidate < lower:
        candidate = lower + rng.uniform(0, CLAMP_JITTER_PIPS) * pip_size

    return round_to_pip(candidate, pip_size)
