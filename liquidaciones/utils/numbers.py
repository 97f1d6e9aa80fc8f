from __future__ import annotations
from decimal import Decimal, ROUND_FLOOR, localcontext

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce an input figure to Decimal; None counts as zero.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean is not a monetary amount")
    return Decimal(str(value))


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator
    return ZERO


def floor_percent(ratio: Decimal) -> Decimal:
    """Ratio expressed as a percentage truncated (toward -inf) to two decimals.

    Equivalent to ``floor(ratio * 10000) / 100``.
    """
    value = ratio * HUNDRED
    with localcontext() as ctx:
        # room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_FLOOR)
