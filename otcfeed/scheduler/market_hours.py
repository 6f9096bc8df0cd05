"""Market hours: pure functions deciding whether a real market is open.

All times are UTC.  Weekdays follow ``datetime.weekday()`` (Monday = 0).
"""

from datetime import datetime

# Forex runs from Sunday 22:00 to Friday 22:00 UTC.
FOREX_CLOSE_WEEKDAY = 4  # Friday
FOREX_OPEN_WEEKDAY = 6  # Sunday
FOREX_ROLLOVER_HOUR = 22

# US cash session, 09:30-16:00 ET.
STOCK_OPEN_HOUR = 14.5
STOCK_CLOSE_HOUR = 21.0

FOREX_SESSIONS: tuple[tuple[str, int, int], ...] = (
    ("Sydney", 22, 7),
    ("Tokyo", 0, 9),
    ("London", 8, 17),
    ("New York", 13, 22),
)


def _fractional_hour(now: datetime) -> float:
    return now.hour + now.minute / 60.0


def is_forex_open(now: datetime) -> bool:
    """Return True between Sunday 22:00 and Friday 22:00 UTC."""
    weekday = now.weekday()
    hour = _fractional_hour(now)
    if weekday == 5:
        return False
    if weekday == FOREX_CLOSE_WEEKDAY and hour >= FOREX_ROLLOVER_HOUR:
        return False
    if weekday == FOREX_OPEN_WEEKDAY and hour < FOREX_ROLLOVER_HOUR:
        return False
    return True


def is_stock_open(now: datetime) -> bool:
    """Return True Monday-Friday, 14:30-21:00 UTC (inclusive start, exclusive end)."""
    if now.weekday() > 4:
        return False
    return STOCK_OPEN_HOUR <= _fractional_hour(now) < STOCK_CLOSE_HOUR


def is_real_market_open(market_type: str, now: datetime) -> bool:
    """Return True if the real market for *market_type* is trading at *now*.

    Crypto never closes.  Unknown market types count as closed, so their
    OTC symbols are always synthesised.
    """
    kind = (market_type or "").lower()
    if kind == "crypto":
        return True
    if kind == "forex":
        return is_forex_open(now)
    if kind in ("stock", "index"):
        return is_stock_open(now)
    return False


def current_forex_session(utc_hour: float) -> str | None:
    """Name of the first forex session covering *utc_hour*, if any."""
    for name, open_hour, close_hour in FOREX_SESSIONS:
        if open_hour < close_hour:
            if open_hour <= utc_hour < close_hour:
                return name
        elif utc_hour >= open_hour or utc_hour < close_hour:
            return name
    return None
