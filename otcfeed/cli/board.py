"""CLI price board — prints the latest tick of every symbol to the console."""

from typing import Optional


def _format_price(price: Optional[float], pip_size: float) -> str:
    if price is None:
        return "N/A"
    decimals = 5 if pip_size < 0.01 else 2
    return f"{price:,.{decimals}f}"


def format_board(ticks: dict, pip_sizes: Optional[dict] = None, title: str = "OTCFeed") -> str:
    """Format and print a one-row-per-symbol price board.

    Args:
        ticks: ``{symbol: tick_dict}`` as produced by ``PriceTick.to_dict``.
        pip_sizes: Optional ``{symbol: pip_size}`` for price precision.
        title: Heading printed in the top rule.

    Returns:
        The formatted string (also printed to stdout).
    """
    pip_sizes = pip_sizes or {}
    header = f" {title} Prices "
    lines = [f"{header:─^66}"]
    lines.append(f"  {'Symbol':<14}{'Mode':<11}{'Bid':>13}{'Ask':>13}{'Chg %':>9}")

    if not ticks:
        lines.append("  (no ticks yet)")

    for symbol in sorted(ticks):
        tick = ticks[symbol]
        pip = pip_sizes.get(symbol, 0.0001)
        change_pct = tick.get("change_percent")
        chg_str = f"{change_pct:+.2f}" if change_pct is not None else "N/A"
        lines.append(
            f"  {symbol:<14}{tick.get('price_mode', '?'):<11}"
            f"{_format_price(tick.get('bid'), pip):>13}"
            f"{_format_price(tick.get('ask'), pip):>13}"
            f"{chg_str:>9}"
        )

    lines.append("─" * 66)
    output = "\n".join(lines)
    print(output)
    return output
