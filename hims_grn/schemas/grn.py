# FILE: hims_grn/schemas/grn.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hims_grn.models.grn import GRNStatus
from hims_grn.services.grn_math import D
from hims_grn.services.grn_types import ReceiptHeader, ReceiptLine

LINE_NUMERIC = (
    "quantity", "free_quantity", "unit_cost", "mrp",
    "packs", "strips_per_pack", "units_per_strip", "pack_cost", "pack_mrp",
    "discount_percent", "discount_amount",
    "tax_percent", "cgst_percent", "sgst_percent", "igst_percent",
)
HEADER_NUMERIC = ("supplier_invoice_amount", "freight_amount", "other_charges", "round_off")


def _opt_id(v: Any) -> Optional[int]:
    n = D(v)
    return int(n) if n > 0 else None


def _opt_date(v: Any) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    return v


# ---------------------------
# Inputs
# ---------------------------
class GRNItemIn(BaseModel):
    """
    One line as typed by the user. Numbers are lenient: blanks and garbage
    become 0 and show up as issues instead of a 422.
    """
    model_config = ConfigDict(extra="ignore", from_attributes=True)

    item_id: Optional[int] = None
    po_item_id: Optional[int] = None
    item_name: str = ""

    batch_no: str = ""
    expiry_date: Optional[date] = None

    quantity: Decimal = Decimal("0")
    free_quantity: Decimal = Decimal("0")

    unit_cost: Decimal = Decimal("0")
    mrp: Decimal = Decimal("0")

    # presentation only, never stored
    packs: Decimal = Decimal("0")
    strips_per_pack: Decimal = Decimal("0")
    units_per_strip: Decimal = Decimal("0")
    pack_cost: Decimal = Decimal("0")
    pack_mrp: Decimal = Decimal("0")

    discount_percent: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")

    tax_percent: Decimal = Decimal("0")
    cgst_percent: Decimal = Decimal("0")
    sgst_percent: Decimal = Decimal("0")
    igst_percent: Decimal = Decimal("0")

    scheme: str = Field(default="", max_length=100)
    remarks: str = Field(default="", max_length=255)

    @field_validator(*LINE_NUMERIC, mode="before")
    @classmethod
    def _num(cls, v: Any) -> Decimal:
        return D(v)

    @field_validator("item_id", "po_item_id", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> Optional[int]:
        return _opt_id(v)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Any:
        return _opt_date(v)

    @field_validator("batch_no", "scheme", "remarks", "item_name", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return str(v or "").strip()

    def to_line(self) -> ReceiptLine:
        return ReceiptLine(**self.model_dump())


class GRNBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    po_id: Optional[int] = None
    supplier_id: Optional[int] = None
    location_id: Optional[int] = None

    received_date: Optional[date] = None

    invoice_number: str = Field(default="", max_length=100)
    invoice_date: Optional[date] = None

    supplier_invoice_amount: Decimal = Decimal("0")
    freight_amount: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")

    # negative round_off allowed
    round_off: Decimal = Decimal("0")

    difference_reason: str = Field(default="", max_length=255)
    notes: str = Field(default="", max_length=1000)

    @field_validator(*HEADER_NUMERIC, mode="before")
    @classmethod
    def _num(cls, v: Any) -> Decimal:
        return D(v)

    @field_validator("po_id", "supplier_id", "location_id", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> Optional[int]:
        return _opt_id(v)

    @field_validator("received_date", "invoice_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Any:
        return _opt_date(v)

    @field_validator("invoice_number", "difference_reason", "notes", mode="before")
    @classmethod
    def _trim_str(cls, v: Any) -> str:
        return str(v or "").strip()


class GRNCreate(GRNBase):
    items: List[GRNItemIn] = Field(default_factory=list)

    def to_header(self, grn_id: Optional[int] = None) -> ReceiptHeader:
        data = self.model_dump(exclude={"items", "id"})
        return ReceiptHeader(id=grn_id, **data)

    def to_lines(self) -> List[ReceiptLine]:
        return [it.to_line() for it in self.items]


class GRNPreviewIn(GRNCreate):
    # set when previewing an already saved draft (post eligibility)
    id: Optional[int] = None


class GRNPostIn(BaseModel):
    difference_reason: str = Field(default="", max_length=255)

    @field_validator("difference_reason", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return str(v or "").strip()


class GRNCancelIn(BaseModel):
    cancel_reason: str = Field(..., min_length=3, max_length=255)


class LineResolveIn(BaseModel):
    line: GRNItemIn = Field(default_factory=GRNItemIn)
    patch: Dict[str, Any] = Field(default_factory=dict)
    source: Optional[str] = None

    def coerced_patch(self) -> Dict[str, Any]:
        """
        Patch values put through the same coercion as a whole line, so a bad
        date is rejected here instead of after the merge.
        """
        unknown = sorted(set(self.patch) - set(GRNItemIn.model_fields))
        if unknown:
            raise ValueError(f"Unknown GRN line field(s): {', '.join(unknown)}")
        merged = GRNItemIn.model_validate({**self.line.model_dump(), **self.patch})
        return {k: getattr(merged, k) for k in self.patch}


class LinesFromPoIn(BaseModel):
    # PO pending items as returned by the purchase-order lookup
    pending: List[Dict[str, Any]] = Field(default_factory=list)


class LineFromItemIn(BaseModel):
    item: Dict[str, Any]


class LineIndexIn(BaseModel):
    lines: List[GRNItemIn] = Field(default_factory=list)
    index: int


# ---------------------------
# Outputs
# ---------------------------
class IssueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    line_index: Optional[int] = None
    field: Optional[str] = None


class IssueSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    missing_batch: int = 0
    qty_issues: int = 0
    item_missing: int = 0
    pack_incomplete: int = 0


class PackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class LineCalcOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    effective_quantity: Decimal
    gross: Decimal
    discount: Decimal
    taxable_base: Decimal
    tax_rate: Decimal
    tax: Decimal
    net: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal


class TotalsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subtotal: Decimal
    discount: Decimal
    taxable: Decimal
    tax: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    net_lines: Decimal
    extras: Decimal
    calculated: Decimal
    invoice: Decimal
    variance: Decimal
    mismatch: bool
    lines: List[LineCalcOut] = Field(default_factory=list)


class PreviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    totals: TotalsOut
    issues: List[IssueOut] = Field(default_factory=list)
    summary: IssueSummaryOut
    save_eligible: bool
    post_eligible: bool


class ResolvedLineOut(BaseModel):
    line: GRNItemIn
    pack: PackOut
    calc: LineCalcOut
    issues: List[IssueOut] = Field(default_factory=list)


class GRNItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    line_no: int
    po_item_id: Optional[int] = None
    item_id: Optional[int] = None

    batch_no: str
    expiry_date: Optional[date] = None

    quantity: Decimal
    free_quantity: Decimal
    unit_cost: Decimal
    mrp: Decimal

    discount_percent: Decimal
    discount_amount: Decimal

    tax_percent: Decimal
    cgst_percent: Decimal
    sgst_percent: Decimal
    igst_percent: Decimal

    gross_amount: Decimal
    discount_applied: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    line_total: Decimal

    scheme: str
    remarks: str


class GRNListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    grn_number: str
    status: GRNStatus

    po_id: Optional[int] = None
    supplier_id: int
    location_id: int

    received_date: date
    invoice_number: str
    invoice_date: Optional[date] = None

    supplier_invoice_amount: Decimal
    calculated_grn_amount: Decimal
    amount_difference: Decimal


class GRNOut(GRNListOut):
    sub_total: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal

    freight_amount: Decimal
    other_charges: Decimal
    round_off: Decimal

    difference_reason: str
    notes: str

    created_by_id: Optional[int] = None
    posted_by_id: Optional[int] = None
    posted_at: Optional[datetime] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    items: List[GRNItemOut] = Field(default_factory=list)
