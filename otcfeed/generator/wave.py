"""Wave state machine: trend legs with nested pullbacks and fake-outs.

A wave is a run of ticks sharing a base direction and a pip target.  Two
orthogonal sub-states sit on top of it:

- **Fake-out**: the visible direction is reversed for a few ticks; on
  expiry the base direction becomes the opposite of the pre-trap direction.
- **Pullback**: a short counter-trend excursion with reduced move size.

The wave is replaced once its tick allowance runs out or its progress reaches
the target.
"""

from typing import Optional

from otcfeed.generator.models import WaveState
from otcfeed.generator.params import (
    CONSOLIDATION_TARGET_PIPS,
    FAKE_OUT_LENGTH_MAX,
    FAKE_OUT_LENGTH_MIN,
    FAKE_OUT_PROB,
    PULLBACK_LENGTH_MAX,
    PULLBACK_LENGTH_MIN,
    WAVE_CONTINUATION_PROB,
    WAVE_LENGTH_MAX,
    WAVE_LENGTH_MIN,
    WAVE_PIPS_MAX,
    WAVE_PIPS_MIN,
    MarketParams,
)
from otcfeed.generator.rng import RandomSource


def random_direction(rng: RandomSource) -> int:
    """Return +1 or -1 with equal probability."""
    return 1 if rng.random() > 0.5 else -1


def new_wave(
    rng: RandomSource,
    start_price: float,
    previous_direction: Optional[int] = None,
    force_direction: Optional[int] = None,
) -> WaveState:
    """Create a fresh wave with all sub-states cleared.

    Args:
        rng: Random source.
        start_price: Price the wave starts from.
        previous_direction: Direction of the wave being replaced, if any.
            It is kept with the continuation probability.
        force_direction: Use this direction unconditionally.
    """
    if force_direction is not None:
        direction = force_direction
    elif previous_direction is not None and rng.random() < WAVE_CONTINUATION_PROB:
        direction = previous_direction
    else:
        direction = random_direction(rng)

    return WaveState(
        direction=direction,
        target_pips=rng.uniform(WAVE_PIPS_MIN, WAVE_PIPS_MAX),
        progress_pips=0.0,
        remaining_ticks=rng.randint(WAVE_LENGTH_MIN, WAVE_LENGTH_MAX),
        start_price=start_price,
        pullback_direction=direction,
        fake_out_original_direction=direction,
    )


def process_fake_out(wave: WaveState, rng: RandomSource) -> None:
    """Advance an active fake-out, or roll to start one."""
    if wave.in_fake_out:
        wave.fake_out_remaining -= 1
        if wave.fake_out_remaining <= 0:
            wave.in_fake_out = False
            wave.direction = -wave.fake_out_original_direction
        return

    if rng.random() < FAKE_OUT_PROB:
        wave.in_fake_out = True
        wave.fake_out_remaining = rng.randint(FAKE_OUT_LENGTH_MIN, FAKE_OUT_LENGTH_MAX)
        wave.fake_out_original_direction = wave.direction
        wave.direction = -wave.direction


def process_pullback(wave: WaveState, rng: RandomSource, market: MarketParams) -> None:
    """Advance an active pullback, or roll to start one."""
    if wave.in_pullback:
        wave.pullback_remaining -= 1
        if wave.pullback_remaining <= 0:
            wave.in_pullback = False
        return

    if rng.random() < market.pullback_prob:
        wave.in_pullback = True
        wave.pullback_remaining = rng.randint(PULLBACK_LENGTH_MIN, PULLBACK_LENGTH_MAX)
        wave.pullback_direction = -wave.direction


def choose_direction(wave: WaveState, rng: RandomSource, market: MarketParams) -> int:
    """Pick this tick's direction from the wave and its sub-states.

    Fake-out takes precedence over pullback.  Outside both, the wave
    direction is followed with probability ``market.wave_bias``.
    """
    if wave.in_fake_out:
        return wave.direction
    if wave.in_pullback:
        return wave.pullback_direction
    if rng.random() < market.wave_bias:
        return wave.direction
    return -wave.direction


def advance_wave(wave: WaveState, signed_move_pips: float) -> bool:
    """Record one tick of movement against the wave.

    Progress is the move projected onto the wave's own direction.

    Returns:
        ``True`` when the wave is exhausted and must be replaced.
    """
    wave.progress_pips += signed_move_pips * wave.direction
    wave.remaining_ticks -= 1
    return wave.remaining_ticks <= 0 or abs(wave.progress_pips) >= wave.target_pips


def consolidate(wave: WaveState, duration_ticks: int) -> None:
    """Shrink the wave target and reset its tick allowance, keeping its identity."""
    wave.target_pips = CONSOLIDATION_TARGET_PIPS
    wave.remaining_ticks = duration_ticks
