# FILE: hims_grn/services/grn_lines.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Mapping, Optional, Sequence

from hims_grn.services.grn_math import D, ZERO
from hims_grn.services.grn_pack import clear_pack
from hims_grn.services.grn_types import ReceiptLine


def _first(*vals: Any) -> Any:
    for v in vals:
        if v is not None:
            return v
    return None


def _item(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    item = raw.get("item")
    return item if isinstance(item, Mapping) else {}


def _pos_int(v: Any) -> Optional[int]:
    n = D(v)
    return int(n) if n > 0 else None


def _item_id(raw: Mapping[str, Any]) -> Optional[int]:
    item = _item(raw)
    return _pos_int(_first(raw.get("item_id"), item.get("id"), item.get("item_id")))


def line_from_po_pending(pending: Mapping[str, Any]) -> ReceiptLine:
    """
    PO pending item -> GRN line.

    Pending qty is already in the canonical unit, so the line is usable as-is
    with no pack config; pricing falls back to the item master defaults.
    """
    item = _item(pending)
    item_id = _item_id(pending)
    return ReceiptLine(
        item_id=item_id,
        po_item_id=_pos_int(pending.get("po_item_id")),
        item_name=_first(item.get("name"), pending.get("item_name")) or f"Item #{item_id}",
        quantity=D(_first(pending.get("remaining_qty"), pending.get("pending_qty"), 0)),
        unit_cost=D(_first(pending.get("unit_cost"), item.get("default_price"), 0)),
        mrp=D(_first(pending.get("mrp"), item.get("default_mrp"), 0)),
        tax_percent=D(_first(pending.get("tax_percent"), item.get("default_tax_percent"), 0)),
    )


def line_from_item(item: Mapping[str, Any]) -> ReceiptLine:
    """Direct receipt: an item picked from the master, one unit at master pricing."""
    return ReceiptLine(
        item_id=_item_id({"item_id": _first(item.get("id"), item.get("item_id"))}),
        item_name=_first(item.get("name"), item.get("item_name")) or "",
        quantity=D(1),
        unit_cost=D(_first(item.get("default_price"), item.get("unit_cost"), 0)),
        mrp=D(_first(item.get("default_mrp"), item.get("mrp"), 0)),
        tax_percent=D(_first(item.get("default_tax_percent"), item.get("tax_percent"), 0)),
    )


def split_line(lines: Sequence[ReceiptLine], index: int) -> List[ReceiptLine]:
    """
    Second batch of the same item: copy unit pricing, discount and tax, clear
    batch, expiry, quantities and the whole pack config. The new batch starts
    as a plain unit-quantity line.
    """
    out = list(lines)
    if index < 0 or index >= len(out):
        return out
    clone = replace(
        clear_pack(out[index]),
        batch_no="",
        expiry_date=None,
        quantity=ZERO,
        free_quantity=ZERO,
    )
    out.insert(index + 1, clone)
    return out


def remove_line(lines: Sequence[ReceiptLine], index: int) -> List[ReceiptLine]:
    return [ln for i, ln in enumerate(lines) if i != index]
