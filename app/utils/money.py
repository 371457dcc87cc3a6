"""
Currency helpers.

Monetary values are carried as ``Decimal`` quantized to centavos everywhere a
value crosses a persistence or API boundary, so that budget sums never drift.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.utils.constants import CENTAVOS


def to_money(value: Any) -> Decimal:
    """Convert *value* to a ``Decimal`` rounded half-up to two places.

    ``None`` becomes ``Decimal("0.00")``.  Floats go through ``str`` first so
    that ``0.1`` stays ``0.10`` instead of its binary expansion.

    Raises:
        ValueError: If *value* cannot be read as a number.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENTAVOS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Valor monetário inválido: {value!r}") from exc


def safe_pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Return numerator / denominator × 100 rounded to 2 dp, or 0 when denominator is zero.

    The result is not capped at 100: an
    over-distributed budget must report e.g. ``108.33``.
    """
    if denominator == 0:
        return Decimal("0.00")
    return (numerator / denominator * 100).quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def format_brl(value: Decimal) -> str:
    """Format a value as ``R$ 1.234,56``."""
    quantized = to_money(value)
    inteiro, _, centavos = f"{quantized:,.2f}".partition(".")
    return f"R$ {inteiro.replace(',', '.')},{centavos}"
