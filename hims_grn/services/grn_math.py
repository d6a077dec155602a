# FILE: hims_grn/services/grn_math.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

Q2 = Decimal("0.01")
UNIT_Q = Decimal("0.000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def D(x: Any) -> Decimal:
    """
    Lenient numeric coercion.
    None / "" / garbage / NaN / Infinity -> 0. Never raises.
    """
    if x is None or isinstance(x, bool):
        return ZERO
    if isinstance(x, Decimal):
        return x if x.is_finite() else ZERO
    if isinstance(x, str):
        x = x.strip()
        if not x:
            return ZERO
    try:
        v = Decimal(str(x))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return v if v.is_finite() else ZERO


def money2(x: Any) -> Decimal:
    return D(x).quantize(Q2, rounding=ROUND_HALF_UP)


def unit6(x: Any) -> Decimal:
    # per-unit rates keep more precision than currency
    return D(x).quantize(UNIT_Q, rounding=ROUND_HALF_UP)


def pct_of(base: Any, pct: Any) -> Decimal:
    return D(base) * D(pct) / HUNDRED


def fmt_money(x: Any, symbol: str = "") -> str:
    v = money2(x)
    return f"{symbol}{v:,.2f}" if symbol else f"{v:.2f}"


def to_int(x: Any) -> int:
    """Whole-number fields (packs, strips, units). Fractions are truncated."""
    v = D(x)
    if v <= 0:
        return 0
    return int(v)
