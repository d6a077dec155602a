# FILE: hims_grn/services/grn_validation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from hims_grn.services.grn_calc import DocumentTotals, LineCalc, aggregate_document, calculate_line
from hims_grn.services.grn_math import D
from hims_grn.services.grn_pack import PackResolution, resolve_pack
from hims_grn.services.grn_types import ReceiptHeader, ReceiptLine

# line level
ITEM_MISSING = "ITEM_MISSING"
PACK_INCOMPLETE = "PACK_INCOMPLETE"
BATCH_REQUIRED = "BATCH_REQUIRED"
QTY_REQUIRED = "QTY_REQUIRED"
QTY_NEGATIVE = "QTY_NEGATIVE"
RATE_INVALID = "RATE_INVALID"
MRP_INVALID = "MRP_INVALID"

# document level
SUPPLIER_REQUIRED = "SUPPLIER_REQUIRED"
LOCATION_REQUIRED = "LOCATION_REQUIRED"
LINES_REQUIRED = "LINES_REQUIRED"
DIFFERENCE_REASON_REQUIRED = "DIFFERENCE_REASON_REQUIRED"
INVOICE_REQUIRED = "INVOICE_REQUIRED"


@dataclass(frozen=True)
class Issue:
    code: str
    message: str
    line_index: Optional[int] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "message": self.message,
            "line_index": self.line_index,
            "field": self.field,
        }


@dataclass(frozen=True)
class IssueSummary:
    missing_batch: int = 0
    qty_issues: int = 0
    item_missing: int = 0
    pack_incomplete: int = 0


@dataclass(frozen=True)
class ValidationReport:
    totals: DocumentTotals
    issues: Tuple[Issue, ...]
    summary: IssueSummary
    save_eligible: bool
    post_eligible: bool

    @property
    def first_message(self) -> Optional[str]:
        return self.issues[0].message if self.issues else None


def _blank(v) -> bool:
    return not str(v or "").strip()


def detect_line_issues(
    line: ReceiptLine,
    index: Optional[int] = None,
    pack: Optional[PackResolution] = None,
    calc: Optional[LineCalc] = None,
) -> List[Issue]:
    pack = pack or resolve_pack(line)
    calc = calc or calculate_line(line, pack)
    issues: List[Issue] = []

    if not D(line.item_id) > 0:
        issues.append(Issue(ITEM_MISSING, "Item missing", index, "item_id"))
    if pack.is_partial:
        issues.append(Issue(PACK_INCOMPLETE, "Pack config incomplete (packs, strips, units)", index, "packs"))
    if _blank(line.batch_no):
        issues.append(Issue(BATCH_REQUIRED, "Batch required", index, "batch_no"))

    free = D(line.free_quantity)
    if calc.effective_quantity < 0 or free < 0:
        issues.append(Issue(QTY_NEGATIVE, "Qty/Free cannot be negative", index, "quantity"))
    elif calc.effective_quantity <= 0 and free <= 0:
        issues.append(Issue(QTY_REQUIRED, "Qty/Free required", index, "quantity"))

    if D(line.unit_cost) < 0:
        issues.append(Issue(RATE_INVALID, "Rate invalid", index, "unit_cost"))
    if D(line.mrp) < 0:
        issues.append(Issue(MRP_INVALID, "MRP invalid", index, "mrp"))
    return issues


def detect_document_issues(
    header: ReceiptHeader,
    lines: Sequence[ReceiptLine],
    totals: Optional[DocumentTotals] = None,
    require_invoice_number: bool = False,
) -> List[Issue]:
    issues: List[Issue] = []

    if not D(header.supplier_id) > 0:
        issues.append(Issue(SUPPLIER_REQUIRED, "Select supplier", field="supplier_id"))
    if not D(header.location_id) > 0:
        issues.append(Issue(LOCATION_REQUIRED, "Select location", field="location_id"))
    if not lines:
        issues.append(Issue(LINES_REQUIRED, "Add at least 1 batch line", field="items"))

    packs = [resolve_pack(ln) for ln in lines]
    calcs = [calculate_line(ln, p) for ln, p in zip(lines, packs)]
    for i, ln in enumerate(lines):
        issues.extend(detect_line_issues(ln, i, packs[i], calcs[i]))

    totals = totals or aggregate_document(header, lines, calcs)
    if totals.mismatch and _blank(header.difference_reason):
        issues.append(Issue(
            DIFFERENCE_REASON_REQUIRED,
            "Difference Reason required (invoice mismatch)",
            field="difference_reason",
        ))

    if require_invoice_number and _blank(header.invoice_number):
        issues.append(Issue(INVOICE_REQUIRED, "Invoice number is required to POST GRN", field="invoice_number"))
    return issues


def summarize_issues(issues: Sequence[Issue]) -> IssueSummary:
    def lines_with(*codes: str) -> int:
        return len({i.line_index for i in issues if i.code in codes and i.line_index is not None})

    return IssueSummary(
        missing_batch=lines_with(BATCH_REQUIRED),
        qty_issues=lines_with(QTY_REQUIRED, QTY_NEGATIVE),
        item_missing=lines_with(ITEM_MISSING),
        pack_incomplete=lines_with(PACK_INCOMPLETE),
    )


def is_save_eligible(header: ReceiptHeader, lines: Sequence[ReceiptLine]) -> bool:
    return not detect_document_issues(header, lines)


def is_post_eligible(
    header: ReceiptHeader,
    lines: Sequence[ReceiptLine],
    require_invoice_number: bool = False,
) -> bool:
    if not header.is_persisted:
        return False
    return not detect_document_issues(header, lines, require_invoice_number=require_invoice_number)


def evaluate(
    header: ReceiptHeader,
    lines: Sequence[ReceiptLine],
    require_invoice_number: bool = False,
) -> ValidationReport:
    """One recompute pass: pack -> line amounts -> totals -> issues."""
    calcs = [calculate_line(ln) for ln in lines]
    totals = aggregate_document(header, lines, calcs)

    save_issues = detect_document_issues(header, lines, totals)
    post_issues = save_issues
    if require_invoice_number:
        post_issues = detect_document_issues(header, lines, totals, require_invoice_number=True)

    return ValidationReport(
        totals=totals,
        issues=tuple(post_issues),
        summary=summarize_issues(post_issues),
        save_eligible=not save_issues,
        post_eligible=header.is_persisted and not post_issues,
    )
