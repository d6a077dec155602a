# FILE: hims_grn/services/grn_pack.py
"""
Pack / strip / unit conversion for GRN lines.

Suppliers bill in packs (box of 10 strips x 10 tablets) while stock is kept in
the canonical unit (tablet). When the three pack numbers are all positive the
line is "configured": quantity is locked to packs x strips x units and rates
flow between the pack side and the unit side.

Direction of the rate flow is decided by `source`, the field the user is
editing in this cycle:

    pack side  (packs, strips_per_pack, units_per_strip, pack_cost, pack_mrp)
        -> unit_cost / mrp are re-derived
    unit side  (unit_cost, mrp)
        -> pack_cost / pack_mrp are re-derived

Anything else leaves both sides untouched.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Mapping, Optional

from hims_grn.services.grn_math import D, ZERO, money2, to_int, unit6
from hims_grn.services.grn_types import LINE_FIELDS, PACK_FIELDS, ReceiptLine

PACK_SOURCES = frozenset({"packs", "strips_per_pack", "units_per_strip", "pack_cost", "pack_mrp"})
UNIT_SOURCES = frozenset({"unit_cost", "mrp"})


@dataclass(frozen=True)
class PackResolution:
    is_configured: bool
    is_partial: bool
    total_units: Decimal
    total_strips: Decimal
    denominator: Decimal
    per_unit_cost: Decimal
    per_unit_mrp: Decimal
    per_strip_cost: Decimal
    per_strip_mrp: Decimal
    pack_cost: Decimal
    pack_mrp: Decimal


def _per(amount: Decimal, divisor: int) -> Decimal:
    if divisor <= 0 or amount <= 0:
        return ZERO
    return unit6(amount / Decimal(divisor))


def resolve_pack(line: ReceiptLine, source: Optional[str] = None) -> PackResolution:
    packs = to_int(line.packs)
    strips = to_int(line.strips_per_pack)
    units = to_int(line.units_per_strip)

    pack_cost = D(line.pack_cost)
    pack_mrp = D(line.pack_mrp)
    unit_cost = D(line.unit_cost)
    mrp = D(line.mrp)

    configured = packs > 0 and strips > 0 and units > 0
    touched = any(D(getattr(line, f)) != 0 for f in PACK_FIELDS)

    denominator = strips * units if (strips > 0 and units > 0) else 0

    per_unit_cost = unit_cost
    per_unit_mrp = mrp

    if denominator > 0 and source in PACK_SOURCES:
        if pack_cost > 0:
            per_unit_cost = _per(pack_cost, denominator)
        if pack_mrp > 0:
            per_unit_mrp = _per(pack_mrp, denominator)
    elif denominator > 0 and source in UNIT_SOURCES:
        if unit_cost > 0:
            pack_cost = money2(unit_cost * denominator)
        if mrp > 0:
            pack_mrp = money2(mrp * denominator)

    return PackResolution(
        is_configured=configured,
        is_partial=touched and not configured,
        total_units=Decimal(packs * strips * units) if configured else ZERO,
        total_strips=Decimal(packs * strips) if configured else ZERO,
        denominator=Decimal(denominator),
        per_unit_cost=per_unit_cost,
        per_unit_mrp=per_unit_mrp,
        per_strip_cost=_per(pack_cost, strips),
        per_strip_mrp=_per(pack_mrp, strips),
        pack_cost=pack_cost,
        pack_mrp=pack_mrp,
    )


def apply_line_patch(
    line: ReceiptLine,
    patch: Optional[Mapping[str, Any]] = None,
    source: Optional[str] = None,
) -> ReceiptLine:
    """
    Merge `patch` into the line and recompute the derived pack/unit fields.

    With no explicit `source`, a single-field patch counts as an edit of that
    field. Only the side opposite to `source` is rewritten, and quantity is
    overwritten with the pack total while the pack config is complete.
    """
    patch = dict(patch or {})
    unknown = sorted(set(patch) - LINE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown GRN line field(s): {', '.join(unknown)}")

    if source is None and len(patch) == 1:
        source = next(iter(patch))

    merged = replace(line, **patch) if patch else line
    res = resolve_pack(merged, source)

    updates = {}
    if res.denominator > 0:
        if source in PACK_SOURCES:
            if D(merged.pack_cost) > 0:
                updates["unit_cost"] = res.per_unit_cost
            if D(merged.pack_mrp) > 0:
                updates["mrp"] = res.per_unit_mrp
        elif source in UNIT_SOURCES:
            if D(merged.unit_cost) > 0:
                updates["pack_cost"] = res.pack_cost
            if D(merged.mrp) > 0:
                updates["pack_mrp"] = res.pack_mrp

    if res.is_configured:
        updates["quantity"] = res.total_units

    return replace(merged, **updates) if updates else merged


def recompute_line(line: ReceiptLine) -> ReceiptLine:
    return apply_line_patch(line, None, None)


def clear_pack(line: ReceiptLine) -> ReceiptLine:
    """Drop the presentation-only pack config (what storage round-trips)."""
    return replace(line, packs=0, strips_per_pack=0, units_per_strip=0, pack_cost=ZERO, pack_mrp=ZERO)
