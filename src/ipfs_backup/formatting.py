"""Human-readable formatting for sizes, durations and atomic amounts."""

import math

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: float) -> str:
    """Format a byte count using binary (1024) steps."""
    if not math.isfinite(num_bytes):
        return "unknown"
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_BYTE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Format seconds as ``Xh Ym Zs``; non-finite values render as unknown."""
    if not math.isfinite(seconds):
        return "unknown"
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


def format_atomic(amount: int, decimals: int, symbol: str) -> str:
    """Format an integer atomic amount with exact integer arithmetic."""
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10**decimals)
    if decimals == 0:
        return f"{sign}{whole} {symbol}"
    return f"{sign}{whole}.{fraction:0{decimals}d} {symbol}"
