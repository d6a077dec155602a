# FILE: hims_grn/services/grn_workflow.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from hims_grn.core.config import settings
from hims_grn.models.grn import GRN, GRNStatus
from hims_grn.services.grn_calc import DocumentTotals, aggregate_document
from hims_grn.services.grn_errors import NotEditable, NotPersisted, raise_for_issues
from hims_grn.services.grn_pack import recompute_line
from hims_grn.services.grn_store import GrnStore
from hims_grn.services.grn_types import (
    DraftRef,
    GrnSnapshot,
    ReceiptHeader,
    ReceiptLine,
    can_transition,
)
from hims_grn.services.grn_validation import detect_document_issues

logger = logging.getLogger(__name__)


def assert_transition(status, target: GRNStatus, action: str = "edited") -> None:
    if not can_transition(status, target):
        raise NotEditable(status, action)


def _ref(grn: GRN) -> DraftRef:
    return DraftRef(id=grn.id, grn_number=grn.grn_number, status=GRNStatus(grn.status))


class GrnWorkflow:
    """
    DRAFT -> POSTED state machine over a GrnStore.

    Every call re-runs the pure pipeline (pack -> line -> totals -> issues) on
    the values it is about to store and raises with the complete issue list.
    """

    def __init__(self, store: GrnStore, require_invoice_on_post: Optional[bool] = None):
        self.store = store
        if require_invoice_on_post is None:
            require_invoice_on_post = settings.GRN_REQUIRE_INVOICE_ON_POST
        self.require_invoice_on_post = require_invoice_on_post

    def _prepare(
        self,
        header: ReceiptHeader,
        lines: Sequence[ReceiptLine],
        require_invoice_number: bool = False,
    ) -> Tuple[Tuple[ReceiptLine, ...], DocumentTotals]:
        lines = tuple(recompute_line(ln) for ln in lines)
        totals = aggregate_document(header, lines)
        issues = detect_document_issues(header, lines, totals, require_invoice_number=require_invoice_number)
        if issues:
            logger.warning("GRN validation failed: %s", ", ".join(i.code for i in issues))
        raise_for_issues(issues)
        return lines, totals

    def create(
        self,
        header: ReceiptHeader,
        lines: Sequence[ReceiptLine],
        created_by_id: Optional[int] = None,
    ) -> DraftRef:
        header = replace(header, id=None, status=GRNStatus.DRAFT)
        lines, totals = self._prepare(header, lines)
        grn = self.store.insert_draft(header, lines, totals, created_by_id=created_by_id)
        return _ref(grn)

    def update(self, grn_id: int, header: ReceiptHeader, lines: Sequence[ReceiptLine]) -> DraftRef:
        grn = self.store.get(grn_id, lock=True)
        try:
            assert_transition(grn.status, GRNStatus.DRAFT, "edited")
        except NotEditable:
            logger.warning("Update rejected for GRN %s in status %s", grn.grn_number, grn.status)
            raise

        header = replace(header, id=grn.id, status=GRNStatus.DRAFT)
        lines, totals = self._prepare(header, lines)
        self.store.replace_draft(grn, header, lines, totals)
        return _ref(grn)

    def post(
        self,
        grn_id: Optional[int],
        difference_reason: Optional[str] = None,
        posted_by_id: Optional[int] = None,
    ) -> DraftRef:
        if not grn_id:
            raise NotPersisted()

        grn = self.store.get(grn_id, lock=True)
        try:
            assert_transition(grn.status, GRNStatus.POSTED, "posted")
        except NotEditable:
            logger.warning("Post rejected for GRN %s in status %s", grn.grn_number, grn.status)
            raise

        snap = self.store.to_snapshot(grn)
        header = snap.header
        reason = (difference_reason or "").strip()
        if reason:
            header = replace(header, difference_reason=reason)

        lines, totals = self._prepare(header, snap.lines, require_invoice_number=self.require_invoice_on_post)
        self.store.commit_post(
            grn,
            totals,
            difference_reason=header.difference_reason,
            posted_by_id=posted_by_id,
        )
        return _ref(grn)

    def fetch(self, grn_id: int) -> GrnSnapshot:
        return self.store.to_snapshot(self.store.get(grn_id))
