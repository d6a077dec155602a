# FILE: hims_grn/services/grn_store.py
"""
Persistence boundary for GRN drafts.

Only canonical-unit fields are stored; pack configuration is presentation
state and comes back empty on hydration. Status checks that guard a write are
always made on a row read FOR UPDATE so two users cannot post the same draft.
Stock / batch / supplier-ledger effects of a posted GRN belong to the
inventory service and are not written here.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from hims_grn.core.config import settings
from hims_grn.models.grn import GRN, GRNItem, GRNStatus, InvNumberSeries
from hims_grn.services.grn_calc import DocumentTotals
from hims_grn.services.grn_errors import GrnError, GrnNotFound, NotEditable
from hims_grn.services.grn_math import D, money2, unit6
from hims_grn.services.grn_types import GrnSnapshot, ReceiptHeader, ReceiptLine, can_transition
from hims_grn.utils.timezone import now_local, today_local

logger = logging.getLogger(__name__)


def _id_or_none(v) -> Optional[int]:
    n = D(v)
    return int(n) if n > 0 else None


def _s(v) -> str:
    return str(v or "").strip()


class GrnStore:
    def __init__(self, db: Session):
        self.db = db

    # -------------------------
    # Numbering
    # -------------------------
    def _next_grn_number(self, doc_date: date) -> str:
        """GRN20251214 + zero padded per-day sequence, e.g. GRN202512140001."""
        dk = int(doc_date.strftime("%Y%m%d"))

        def locked_row():
            return (
                self.db.query(InvNumberSeries)
                .filter(InvNumberSeries.key == "GRN", InvNumberSeries.date_key == dk)
                .with_for_update()
                .first()
            )

        row = locked_row()
        if not row:
            # two users opening the day's series at once: one of them hits the unique key
            try:
                with self.db.begin_nested():
                    row = InvNumberSeries(key="GRN", date_key=dk, next_seq=1)
                    self.db.add(row)
            except IntegrityError:
                row = locked_row()
                if not row:
                    raise

        seq = int(row.next_seq or 1)
        row.next_seq = seq + 1
        self.db.flush()
        return f"GRN{doc_date.strftime('%Y%m%d')}{seq:0{settings.GRN_NUMBER_PAD}d}"

    # -------------------------
    # Reads
    # -------------------------
    def get(self, grn_id: int, lock: bool = False) -> GRN:
        q = self.db.query(GRN).options(selectinload(GRN.items)).filter(GRN.id == grn_id)
        if lock:
            q = q.with_for_update()
        grn = q.one_or_none()
        if not grn:
            raise GrnNotFound(grn_id)
        return grn

    def list(self, q: Optional[str] = None, status: Optional[str] = None, limit: int = 50) -> List[GRN]:
        query = self.db.query(GRN).order_by(GRN.id.desc())

        if status and status != "ALL":
            query = query.filter(GRN.status == GRNStatus(status))

        if q and q.strip():
            like = f"%{q.strip()}%"
            query = query.filter(or_(GRN.grn_number.ilike(like), GRN.invoice_number.ilike(like)))

        return query.limit(limit).all()

    @staticmethod
    def to_snapshot(grn: GRN) -> GrnSnapshot:
        header = ReceiptHeader(
            id=grn.id,
            grn_number=grn.grn_number,
            po_id=grn.po_id,
            supplier_id=grn.supplier_id,
            location_id=grn.location_id,
            received_date=grn.received_date,
            invoice_number=grn.invoice_number or "",
            invoice_date=grn.invoice_date,
            supplier_invoice_amount=D(grn.supplier_invoice_amount),
            freight_amount=D(grn.freight_amount),
            other_charges=D(grn.other_charges),
            round_off=D(grn.round_off),
            notes=grn.notes or "",
            difference_reason=grn.difference_reason or "",
            status=GRNStatus(grn.status),
        )
        lines = tuple(
            ReceiptLine(
                item_id=it.item_id,
                po_item_id=it.po_item_id,
                batch_no=it.batch_no or "",
                expiry_date=it.expiry_date,
                quantity=D(it.quantity),
                free_quantity=D(it.free_quantity),
                unit_cost=D(it.unit_cost),
                mrp=D(it.mrp),
                discount_percent=D(it.discount_percent),
                discount_amount=D(it.discount_amount),
                tax_percent=D(it.tax_percent),
                cgst_percent=D(it.cgst_percent),
                sgst_percent=D(it.sgst_percent),
                igst_percent=D(it.igst_percent),
                scheme=it.scheme or "",
                remarks=it.remarks or "",
            )
            for it in sorted(grn.items or [], key=lambda x: (x.line_no, x.id or 0))
        )
        return GrnSnapshot(header=header, lines=lines)

    # -------------------------
    # Writes
    # -------------------------
    def _write_header(self, grn: GRN, header: ReceiptHeader, totals: DocumentTotals) -> None:
        grn.po_id = _id_or_none(header.po_id)
        grn.supplier_id = _id_or_none(header.supplier_id)
        grn.location_id = _id_or_none(header.location_id)
        grn.received_date = header.received_date or grn.received_date or today_local()
        grn.invoice_number = _s(header.invoice_number)
        grn.invoice_date = header.invoice_date
        grn.supplier_invoice_amount = money2(header.supplier_invoice_amount)
        grn.freight_amount = money2(header.freight_amount)
        grn.other_charges = money2(header.other_charges)
        grn.round_off = money2(header.round_off)
        grn.notes = _s(header.notes)
        grn.difference_reason = _s(header.difference_reason)
        self._write_totals(grn, totals)

    @staticmethod
    def _write_totals(grn: GRN, totals: DocumentTotals) -> None:
        grn.sub_total = totals.subtotal
        grn.discount_amount = totals.discount
        grn.taxable_amount = totals.taxable
        grn.tax_amount = totals.tax
        grn.cgst_amount = totals.cgst
        grn.sgst_amount = totals.sgst
        grn.igst_amount = totals.igst
        grn.calculated_grn_amount = totals.calculated
        grn.amount_difference = totals.variance

    def _replace_items(self, grn: GRN, lines: Sequence[ReceiptLine], totals: DocumentTotals) -> None:
        grn.items.clear()
        self.db.flush()

        for no, (ln, am) in enumerate(zip(lines, totals.lines), start=1):
            grn.items.append(
                GRNItem(
                    line_no=no,
                    po_item_id=_id_or_none(ln.po_item_id),
                    item_id=_id_or_none(ln.item_id),
                    batch_no=_s(ln.batch_no),
                    expiry_date=ln.expiry_date,
                    quantity=am.effective_quantity,
                    free_quantity=D(ln.free_quantity),
                    unit_cost=unit6(ln.unit_cost),
                    mrp=unit6(ln.mrp),
                    discount_percent=D(ln.discount_percent),
                    discount_amount=money2(ln.discount_amount),
                    tax_percent=D(ln.tax_percent),
                    cgst_percent=D(ln.cgst_percent),
                    sgst_percent=D(ln.sgst_percent),
                    igst_percent=D(ln.igst_percent),
                    gross_amount=am.gross,
                    discount_applied=am.discount,
                    taxable_amount=am.taxable_base,
                    cgst_amount=am.cgst,
                    sgst_amount=am.sgst,
                    igst_amount=am.igst,
                    line_total=am.net,
                    scheme=_s(ln.scheme),
                    remarks=_s(ln.remarks),
                )
            )

    def insert_draft(
        self,
        header: ReceiptHeader,
        lines: Sequence[ReceiptLine],
        totals: DocumentTotals,
        created_by_id: Optional[int] = None,
    ) -> GRN:
        rcv_date = header.received_date or today_local()
        grn = GRN(
            grn_number=self._next_grn_number(rcv_date),
            received_date=rcv_date,
            status=GRNStatus.DRAFT,
            created_by_id=created_by_id,
        )
        self._write_header(grn, header, totals)
        self.db.add(grn)
        self.db.flush()

        self._replace_items(grn, lines, totals)
        self.db.flush()
        logger.info("GRN draft %s created (%d lines)", grn.grn_number, len(lines))
        return grn

    def replace_draft(
        self,
        grn: GRN,
        header: ReceiptHeader,
        lines: Sequence[ReceiptLine],
        totals: DocumentTotals,
    ) -> GRN:
        self._write_header(grn, header, totals)
        self._replace_items(grn, lines, totals)
        self.db.flush()
        logger.info("GRN draft %s updated (%d lines)", grn.grn_number, len(lines))
        return grn

    def commit_post(
        self,
        grn: GRN,
        totals: DocumentTotals,
        difference_reason: str = "",
        posted_by_id: Optional[int] = None,
    ) -> GRN:
        self._write_totals(grn, totals)
        grn.difference_reason = _s(difference_reason)
        grn.status = GRNStatus.POSTED
        grn.posted_by_id = posted_by_id
        grn.posted_at = now_local()
        self.db.flush()
        logger.info(
            "GRN %s posted: calculated=%s invoice=%s diff=%s",
            grn.grn_number, totals.calculated, totals.invoice, totals.variance,
        )
        return grn

    def cancel(self, grn_id: int, reason: str, cancelled_by_id: Optional[int] = None) -> GRN:
        grn = self.get(grn_id, lock=True)
        if not can_transition(grn.status, GRNStatus.CANCELLED):
            logger.warning("Cancel rejected for GRN %s in status %s", grn.grn_number, grn.status)
            raise NotEditable(grn.status, "cancelled")

        reason = _s(reason)
        if not reason:
            raise GrnError("cancel_reason is required")

        grn.status = GRNStatus.CANCELLED
        grn.cancel_reason = reason
        grn.cancelled_by_id = cancelled_by_id
        grn.cancelled_at = now_local()
        self.db.flush()
        logger.info("GRN %s cancelled", grn.grn_number)
        return grn
