"""Checked integer arithmetic. Amounts are u64, counters u32; nothing ever wraps or truncates."""

from __future__ import annotations

from scorepool.errors import CalculationError

U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1


def checked_add(a: int, b: int, limit: int = U64_MAX) -> int:
    result = a + b
    if result > limit or result < 0:
        raise CalculationError(f"overflow: {a} + {b} exceeds {limit}", op="add", a=a, b=b)
    return result


def checked_sub(a: int, b: int) -> int:
    result = a - b
    if result < 0:
        raise CalculationError(f"underflow: {a} - {b}", op="sub", a=a, b=b)
    return result


def checked_mul(a: int, b: int, limit: int = U64_MAX) -> int:
    result = a * b
    if result > limit or result < 0:
        raise CalculationError(f"overflow: {a} * {b} exceeds {limit}", op="mul", a=a, b=b)
    return result


def checked_div(a: int, b: int) -> int:
    """Floor division of non-negative integers."""
    if b == 0:
        raise CalculationError(f"division by zero: {a} / 0", op="div", a=a, b=b)
    if a < 0 or b < 0:
        raise CalculationError(f"negative operand: {a} / {b}", op="div", a=a, b=b)
    return a // b
