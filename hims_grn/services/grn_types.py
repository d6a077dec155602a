# FILE: hims_grn/services/grn_types.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional, Tuple

from hims_grn.models.grn import GRNStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class ReceiptLine:
    """
    One batch line on a GRN.

    Numeric fields may still hold raw user input ("", "12", "abc"); the engine
    coerces through grn_math.D and never raises on them.
    pack fields (packs .. pack_mrp) are presentation-only and never stored.
    """
    item_id: Optional[int] = None
    po_item_id: Optional[int] = None
    item_name: str = ""

    batch_no: str = ""
    expiry_date: Optional[date] = None

    quantity: Any = ZERO
    free_quantity: Any = ZERO

    unit_cost: Any = ZERO
    mrp: Any = ZERO

    packs: Any = 0
    strips_per_pack: Any = 0
    units_per_strip: Any = 0
    pack_cost: Any = ZERO
    pack_mrp: Any = ZERO

    discount_percent: Any = ZERO
    discount_amount: Any = ZERO

    tax_percent: Any = ZERO
    cgst_percent: Any = ZERO
    sgst_percent: Any = ZERO
    igst_percent: Any = ZERO

    scheme: str = ""
    remarks: str = ""


LINE_FIELDS = frozenset(f.name for f in fields(ReceiptLine))
PACK_FIELDS = ("packs", "strips_per_pack", "units_per_strip", "pack_cost", "pack_mrp")


@dataclass(frozen=True)
class ReceiptHeader:
    id: Optional[int] = None
    grn_number: str = ""

    po_id: Optional[int] = None
    supplier_id: Optional[int] = None
    location_id: Optional[int] = None

    received_date: Optional[date] = None
    invoice_number: str = ""
    invoice_date: Optional[date] = None

    supplier_invoice_amount: Any = ZERO
    freight_amount: Any = ZERO
    other_charges: Any = ZERO
    round_off: Any = ZERO

    notes: str = ""
    difference_reason: str = ""

    status: GRNStatus = GRNStatus.DRAFT

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    @property
    def is_editable(self) -> bool:
        return self.status == GRNStatus.DRAFT


@dataclass(frozen=True)
class GrnSnapshot:
    header: ReceiptHeader
    lines: Tuple[ReceiptLine, ...] = field(default_factory=tuple)

    @property
    def status(self) -> GRNStatus:
        return self.header.status


@dataclass(frozen=True)
class DraftRef:
    id: int
    grn_number: str
    status: GRNStatus


# CANCELLED is only reached through GrnStore.cancel (outside the draft/post flow)
TRANSITIONS: Dict[GRNStatus, FrozenSet[GRNStatus]] = {
    GRNStatus.DRAFT: frozenset({GRNStatus.DRAFT, GRNStatus.POSTED, GRNStatus.CANCELLED}),
    GRNStatus.POSTED: frozenset(),
    GRNStatus.CANCELLED: frozenset(),
}


def can_transition(current: Any, target: Any) -> bool:
    return GRNStatus(target) in TRANSITIONS[GRNStatus(current)]
