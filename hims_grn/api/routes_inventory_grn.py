# FILE: hims_grn/api/routes_inventory_grn.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from hims_grn.api.deps import current_user_id, get_db
from hims_grn.core.config import settings
from hims_grn.schemas.grn import (
    GRNCancelIn,
    GRNCreate,
    GRNItemIn,
    GRNListOut,
    GRNOut,
    GRNPostIn,
    GRNPreviewIn,
    IssueOut,
    LineCalcOut,
    LineFromItemIn,
    LineResolveIn,
    LineIndexIn,
    LinesFromPoIn,
    PackOut,
    PreviewOut,
    ResolvedLineOut,
)
from hims_grn.services.grn_calc import calculate_line
from hims_grn.services.grn_errors import GrnError
from hims_grn.services.grn_lines import line_from_item, line_from_po_pending, remove_line, split_line
from hims_grn.services.grn_pack import apply_line_patch, recompute_line, resolve_pack
from hims_grn.services.grn_store import GrnStore
from hims_grn.services.grn_types import ReceiptLine
from hims_grn.services.grn_validation import detect_line_issues, evaluate
from hims_grn.services.grn_workflow import GrnWorkflow
from hims_grn.utils.resp import err, ok

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/inventory/grn", tags=["Inventory - GRN"])


def _workflow(db: Session) -> GrnWorkflow:
    return GrnWorkflow(GrnStore(db))


def _grn_detail(db: Session, grn_id: int) -> dict:
    store = GrnStore(db)
    grn = store.get(grn_id)
    snap = store.to_snapshot(grn)
    report = evaluate(snap.header, snap.lines, require_invoice_number=settings.GRN_REQUIRE_INVOICE_ON_POST)

    out = GRNOut.model_validate(grn).model_dump()
    out["preview"] = PreviewOut.model_validate(report).model_dump()
    return out


def _grn_err(db: Session, e: GrnError):
    db.rollback()
    return err(str(e), e.status_code, e.details())


def _resolved(line: ReceiptLine, index: Optional[int] = None) -> dict:
    pack = resolve_pack(line)
    calc = calculate_line(line, pack)
    out = ResolvedLineOut(
        line=GRNItemIn.model_validate(line),
        pack=PackOut.model_validate(pack),
        calc=LineCalcOut.model_validate(calc),
        issues=[IssueOut.model_validate(i) for i in detect_line_issues(line, index, pack, calc)],
    )
    return out.model_dump()


# =========================
# LIVE RECOMPUTE (no writes)
# =========================
@router.post("/lines/resolve")
def resolve_line(payload: LineResolveIn):
    """One edit cycle on a single line: pack <-> unit rates, quantity lock, amounts."""
    try:
        line = apply_line_patch(payload.line.to_line(), payload.coerced_patch(), payload.source)
    except ValidationError as e:
        details = [{"loc": list(x.get("loc", ())), "msg": x.get("msg"), "type": x.get("type")} for x in e.errors()]
        return err("Invalid line value", 400, details)
    except ValueError as e:
        return err(str(e), 400)
    return ok(_resolved(line))


@router.post("/lines/from-po")
def lines_from_po(payload: LinesFromPoIn):
    """PO pending items -> ready-to-edit GRN lines (batch still to be filled in)."""
    lines = [line_from_po_pending(p) for p in payload.pending]
    return ok([_resolved(ln, i) for i, ln in enumerate(lines)])


@router.post("/lines/from-item")
def line_from_master_item(payload: LineFromItemIn):
    return ok(_resolved(line_from_item(payload.item)))


@router.post("/lines/split")
def split_lines(payload: LineIndexIn):
    lines = split_line([recompute_line(it.to_line()) for it in payload.lines], payload.index)
    return ok([_resolved(ln, i) for i, ln in enumerate(lines)])


@router.post("/lines/remove")
def remove_lines(payload: LineIndexIn):
    lines = remove_line([recompute_line(it.to_line()) for it in payload.lines], payload.index)
    return ok([_resolved(ln, i) for i, ln in enumerate(lines)])


@router.post("/preview")
def preview_grn(payload: GRNPreviewIn):
    report = evaluate(
        payload.to_header(payload.id),
        payload.to_lines(),
        require_invoice_number=settings.GRN_REQUIRE_INVOICE_ON_POST,
    )
    return ok(PreviewOut.model_validate(report).model_dump())


# =========================
# DRAFTS
# =========================
@router.get("")
def list_grns(
    db: Session = Depends(get_db),
    q: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
):
    if status and status != "ALL" and status not in ("DRAFT", "POSTED", "CANCELLED"):
        return err(f"Invalid status: {status}", 400)
    rows = GrnStore(db).list(q=q, status=status, limit=limit)
    return ok([GRNListOut.model_validate(g).model_dump() for g in rows])


@router.get("/{grn_id:int}")
def get_grn(grn_id: int, db: Session = Depends(get_db)):
    return ok(_grn_detail(db, grn_id))


@router.post("")
def create_grn(
    payload: GRNCreate,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(current_user_id),
):
    try:
        ref = _workflow(db).create(payload.to_header(), payload.to_lines(), created_by_id=user_id)
        db.commit()
    except GrnError as e:
        return _grn_err(db, e)
    return ok(_grn_detail(db, ref.id), status_code=201)


@router.put("/{grn_id:int}")
def update_grn(grn_id: int, payload: GRNCreate, db: Session = Depends(get_db)):
    try:
        ref = _workflow(db).update(grn_id, payload.to_header(grn_id), payload.to_lines())
        db.commit()
    except GrnError as e:
        return _grn_err(db, e)
    return ok(_grn_detail(db, ref.id))


@router.post("/{grn_id:int}/post")
def post_grn(
    grn_id: int,
    body: GRNPostIn = Body(default_factory=GRNPostIn),
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(current_user_id),
):
    try:
        ref = _workflow(db).post(grn_id, body.difference_reason, posted_by_id=user_id)
        db.commit()
    except GrnError as e:
        return _grn_err(db, e)
    return ok(_grn_detail(db, ref.id))


@router.post("/{grn_id:int}/cancel")
def cancel_grn(
    grn_id: int,
    body: GRNCancelIn,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(current_user_id),
):
    try:
        grn = GrnStore(db).cancel(grn_id, body.cancel_reason, cancelled_by_id=user_id)
        db.commit()
    except GrnError as e:
        return _grn_err(db, e)
    return ok(_grn_detail(db, grn.id))
