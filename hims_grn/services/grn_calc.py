# FILE: hims_grn/services/grn_calc.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from hims_grn.services.grn_math import D, ZERO, money2, pct_of
from hims_grn.services.grn_pack import PackResolution, resolve_pack
from hims_grn.services.grn_types import ReceiptHeader, ReceiptLine

MISMATCH_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class LineCalc:
    effective_quantity: Decimal
    gross: Decimal
    discount: Decimal
    taxable_base: Decimal
    tax_rate: Decimal
    tax: Decimal
    net: Decimal
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO


@dataclass(frozen=True)
class DocumentTotals:
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
    lines: Tuple[LineCalc, ...] = ()


def discount_mode(line: ReceiptLine) -> str:
    # amount wins over percent when both are filled in
    if D(line.discount_amount) > 0:
        return "AMOUNT"
    if D(line.discount_percent) > 0:
        return "PERCENT"
    return "NONE"


def tax_mode(line: ReceiptLine) -> str:
    # CGST/SGST/IGST split wins over the flat tax_percent
    if split_rate(line) > 0:
        return "SPLIT"
    if D(line.tax_percent) > 0:
        return "FLAT"
    return "NONE"


def split_rate(line: ReceiptLine) -> Decimal:
    return D(line.cgst_percent) + D(line.sgst_percent) + D(line.igst_percent)


def _tax_components(line: ReceiptLine, base: Decimal, tax: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """Break `tax` into CGST/SGST/IGST so the parts always add back to `tax`."""
    if tax <= 0:
        return ZERO, ZERO, ZERO

    cgst_p = D(line.cgst_percent)
    sgst_p = D(line.sgst_percent)
    igst_p = D(line.igst_percent)

    if cgst_p + sgst_p + igst_p <= 0:
        # flat rate: intra-state, half each
        cgst = money2(tax / 2)
        return cgst, tax - cgst, ZERO

    cgst = money2(pct_of(base, cgst_p)) if cgst_p > 0 else ZERO
    sgst = money2(pct_of(base, sgst_p)) if sgst_p > 0 else ZERO
    rest = tax - cgst - sgst
    if igst_p > 0:
        return cgst, sgst, rest
    if sgst_p > 0:
        return cgst, sgst + rest, ZERO
    return cgst + rest, sgst, ZERO


def calculate_line(line: ReceiptLine, pack: Optional[PackResolution] = None) -> LineCalc:
    pack = pack or resolve_pack(line)

    qty = pack.total_units if pack.is_configured else D(line.quantity)
    gross = money2(qty * D(line.unit_cost))

    disc_amt = D(line.discount_amount)
    disc_pct = D(line.discount_percent)
    if disc_amt > 0:
        discount = money2(disc_amt)
    elif disc_pct > 0:
        discount = money2(pct_of(gross, disc_pct))
    else:
        discount = money2(ZERO)

    base = money2(max(ZERO, gross - discount))

    split = split_rate(line)
    rate = split if split > 0 else D(line.tax_percent)
    tax = money2(pct_of(base, rate))

    net = money2(base + tax)
    cgst, sgst, igst = _tax_components(line, base, tax)

    return LineCalc(
        effective_quantity=qty,
        gross=gross,
        discount=discount,
        taxable_base=base,
        tax_rate=rate,
        tax=tax,
        net=net,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
    )


def _sum(values: Iterable[Decimal]) -> Decimal:
    return money2(sum(values, ZERO))


def aggregate_document(
    header: ReceiptHeader,
    lines: Sequence[ReceiptLine],
    calcs: Optional[Sequence[LineCalc]] = None,
) -> DocumentTotals:
    rows = tuple(calcs) if calcs is not None else tuple(calculate_line(ln) for ln in lines)

    net_lines = _sum(r.net for r in rows)
    extras = money2(D(header.freight_amount) + D(header.other_charges) + D(header.round_off))
    calculated = money2(net_lines + extras)

    # decided on the same rounded invoice that gets stored
    invoice = money2(header.supplier_invoice_amount)
    variance = money2(invoice - calculated)
    mismatch = invoice > 0 and abs(variance) >= MISMATCH_EPSILON

    return DocumentTotals(
        subtotal=_sum(r.gross for r in rows),
        discount=_sum(r.discount for r in rows),
        taxable=_sum(r.taxable_base for r in rows),
        tax=_sum(r.tax for r in rows),
        cgst=_sum(r.cgst for r in rows),
        sgst=_sum(r.sgst for r in rows),
        igst=_sum(r.igst for r in rows),
        net_lines=net_lines,
        extras=extras,
        calculated=calculated,
        invoice=invoice,
        variance=variance,
        mismatch=mismatch,
        lines=rows,
    )
