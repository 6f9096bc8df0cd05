"""Random sources for the price generator.

The generator never touches a global RNG.  Production code uses
``NumpyRandomSource``; tests replay exact draws with ``ScriptedRandomSource``
to pin down branch selection.
"""

from collections import deque
from typing import Iterable, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class RandomSource(Protocol):
    """Interface every random source must satisfy."""

    def random(self) -> float:
        """Uniform float in ``[0, 1)``."""
        ...

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in ``[low, high)``."""
        ...

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]`` (both inclusive)."""
        ...

    def gauss(self) -> float:
        """Standard normal draw."""
        ...


class NumpyRandomSource:
    """``RandomSource`` backed by a NumPy ``Generator``.

    Args:
        seed: Optional seed for reproducible paths.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)

    def random(self) -> float:
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def randint(self, low: int, high: int) -> int:
        return int(self._rng.integers(low, high, endpoint=True))

    def gauss(self) -> float:
        return float(self._rng.standard_normal())


class ScriptedRandomSource:
    """Replays a fixed sequence of draws.

    ``uniform`` and ``randint`` consume the next ``random()`` value and map
    it onto their range, so a script is just a list of floats in ``[0, 1)``.

    Args:
        randoms: Values returned by successive ``random()`` calls.
        gaussians: Values returned by successive ``gauss()`` calls
                   (``0.0`` once exhausted).
        default: Value returned by ``random()`` once *randoms* is exhausted.
                 ``None`` makes exhaustion an error.
    """

    def __init__(
        self,
        randoms: Iterable[float] = (),
        gaussians: Iterable[float] = (),
        default: Optional[float] = None,
    ) -> None:
        self._randoms: deque[float] = deque(randoms)
        self._gaussians: deque[float] = deque(gaussians)
        self._default = default

    def push(self, *values: float) -> None:
        """Append more ``random()`` values to the script."""
        self._randoms.extend(values)

    @property
    def remaining(self) -> int:
        """Number of scripted ``random()`` values not yet consumed."""
        return len(self._randoms)

    def random(self) -> float:
        if self._randoms:
            return self._randoms.popleft()
        if self._default is None:
            raise RuntimeError("ScriptedRandomSource exhausted")
        return self._default

    def uniform(self, low: float, high: float) -> float:
        return low + self.random() * (high - low)

    def randint(self, low: int, high: int) -> int:
        return min(high, low + int(self.random() * (high - low + 1)))

    def gauss(self) -> float:
        if self._gaussians:
            return self._gaussians.popleft()
        return 0.0
