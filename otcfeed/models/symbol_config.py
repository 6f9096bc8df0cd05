"""Symbol configuration dataclasses.

Represents one OTC symbol served by the price generator.
"""

from dataclasses import dataclass


_OTC_SUFFIX = "-OTC"


@dataclass(frozen=True)
class SymbolConfig:
    """Configuration for a single OTC symbol.

    Replaced wholesale (never mutated) when an admin updates it through
    ``OTCPriceGenerator.update_config``.
    """

    symbol: str
    pip_size: float
    market_type: str = "FOREX"  # "FOREX" or "CRYPTO"; selects movement parameters
    max_deviation_percent: float = 1.5
    base_volatility: float = 0.0003  # volatility tag carried on every tick
    base_symbol: str = ""  # real-market symbol; defaults to symbol without "-OTC"
    is_24_hours: bool = True  # always synthesise, ignore real market hours
    anchoring_duration_mins: int = 15
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.pip_size > 0:
            raise ValueError(f"pip_size must be positive, got {self.pip_size}")
        if not self.max_deviation_percent > 0:
            raise ValueError(
                "max_deviation_percent must be positive, "
                f"got {self.max_deviation_percent}"
            )
        if not self.base_symbol:
            base = self.symbol
            if base.upper().endswith(_OTC_SUFFIX):
                base = base[: -len(_OTC_SUFFIX)]
            object.__setattr__(self, "base_symbol", base)


@dataclass(frozen=True)
class SymbolSeed:
    """A symbol configuration paired with the price it starts from."""

    config: SymbolConfig
    initial_price: float
