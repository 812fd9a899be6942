"""
FundWars — Display Formatting

Deterministic currency / percent / multiple strings used in event text,
warnings and IC prompts.
"""


def format_currency(amount: float) -> str:
    """
    Compact dollar string.

    Examples:
        1_340_000_000 -> "$1.3B"
        45_000_000    -> "$45.0M"
        12_500        -> "$12.5K"
        800           -> "$800"
        -2_000_000    -> "-$2.0M"
    """
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value >= 1_000_000_000:
        return f"{sign}${value / 1_000_000_000:.1f}B"
    if value >= 1_000_000:
        return f"{sign}${value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{sign}${value / 1_000:.1f}K"
    return f"{sign}${value:,.0f}"


def format_percent(ratio: float, decimals: int = 1) -> str:
    """0.153 -> "15.3%"."""
    return f"{ratio * 100:.{decimals}f}%"


def format_multiple(multiple: float, decimals: int = 1) -> str:
    """8.0 -> "8.0x"."""
    return f"{multiple:.{decimals}f}x"


def format_thousands(amount: float) -> str:
    """1234567 -> "1,234,567"."""
    return f"{round(amount):,}"
