"""Fixed-width checked arithmetic for counters that represent identity or money."""

from __future__ import annotations

from .errors import MathOverflow

U8_MAX = 2**8 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1


def checked_add(value: int, amount: int, limit: int = U64_MAX) -> int:
    result = value + amount
    if result > limit:
        raise MathOverflow(f"{value} + {amount} exceeds {limit}")
    return result


def checked_sub(value: int, amount: int) -> int:
    result = value - amount
    if result < 0:
        raise MathOverflow(f"{value} - {amount} underflows")
    return result


def checked_mul(value: int, factor: int, limit: int = U64_MAX) -> int:
    result = value * factor
    if result > limit:
        raise MathOverflow(f"{value} * {factor} exceeds {limit}")
    return result


def saturating_sub(value: int, amount: int) -> int:
    """Clamp at zero; only for display values such as attempts remaining."""
    return max(0, value - amount)
