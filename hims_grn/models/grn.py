# FILE: hims_grn/models/grn.py
from __future__ import annotations

import enum
from datetime import datetime, date

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric,
    ForeignKey, Enum, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from hims_grn.db.base import Base

Money = Numeric(14, 2)
Qty = Numeric(14, 4)
Rate = Numeric(18, 6)
Pct = Numeric(5, 2)


# -------------------------
# Enums
# -------------------------
class GRNStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    CANCELLED = "CANCELLED"


# -------------------------
# Number series
# -------------------------
class InvNumberSeries(Base):
    __tablename__ = "inv_number_series"
    __table_args__ = (
        UniqueConstraint("key", "date_key", name="uq_inv_number_series_key_date"),
    )

    id = Column(Integer, primary_key=True)
    key = Column(String(30), nullable=False)         # GRN
    date_key = Column(Integer, nullable=False)      # YYYYMMDD
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# -------------------------
# GRN
# -------------------------
# supplier / location / item / user ids point at masters owned by other services,
# so they are plain indexed integers here.
class GRN(Base):
    __tablename__ = "inv_grns"
    __table_args__ = (
        Index("ix_inv_grns_supplier_invoice", "supplier_id", "invoice_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    grn_number = Column(String(50), unique=True, nullable=False, index=True)

    po_id = Column(Integer, nullable=True, index=True)
    supplier_id = Column(Integer, nullable=False, index=True)
    location_id = Column(Integer, nullable=False, index=True)

    received_date = Column(Date, nullable=False, default=date.today)

    invoice_number = Column(String(100), nullable=False, default="")
    invoice_date = Column(Date, nullable=True)

    supplier_invoice_amount = Column(Money, nullable=False, default=0)

    sub_total = Column(Money, nullable=False, default=0)
    discount_amount = Column(Money, nullable=False, default=0)
    taxable_amount = Column(Money, nullable=False, default=0)
    tax_amount = Column(Money, nullable=False, default=0)
    cgst_amount = Column(Money, nullable=False, default=0)
    sgst_amount = Column(Money, nullable=False, default=0)
    igst_amount = Column(Money, nullable=False, default=0)

    freight_amount = Column(Money, nullable=False, default=0)
    other_charges = Column(Money, nullable=False, default=0)
    round_off = Column(Money, nullable=False, default=0)

    calculated_grn_amount = Column(Money, nullable=False, default=0)
    amount_difference = Column(Money, nullable=False, default=0)
    difference_reason = Column(String(255), nullable=False, default="")

    status = Column(Enum(GRNStatus, name="inv_grn_status"), nullable=False, default=GRNStatus.DRAFT)
    notes = Column(String(1000), nullable=False, default="")

    created_by_id = Column(Integer, nullable=True, index=True)
    posted_by_id = Column(Integer, nullable=True, index=True)
    posted_at = Column(DateTime, nullable=True)

    cancelled_by_id = Column(Integer, nullable=True, index=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    items = relationship(
        "GRNItem",
        back_populates="grn",
        cascade="all, delete-orphan",
        order_by="GRNItem.line_no",
    )


class GRNItem(Base):
    __tablename__ = "inv_grn_items"
    __table_args__ = (
        Index("ix_inv_grn_items_grn_item_batch", "grn_id", "item_id", "batch_no"),
        CheckConstraint("quantity >= 0", name="ck_grn_item_qty_nonneg"),
        CheckConstraint("free_quantity >= 0", name="ck_grn_item_free_qty_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    grn_id = Column(Integer, ForeignKey("inv_grns.id"), nullable=False, index=True)
    line_no = Column(Integer, nullable=False, default=0)

    po_item_id = Column(Integer, nullable=True, index=True)
    item_id = Column(Integer, nullable=True, index=True)

    batch_no = Column(String(100), nullable=False, default="", index=True)
    expiry_date = Column(Date, nullable=True, index=True)

    # canonical stock unit (tablet / ml / piece)
    quantity = Column(Qty, nullable=False, default=0)
    free_quantity = Column(Qty, nullable=False, default=0)

    unit_cost = Column(Rate, nullable=False, default=0)
    mrp = Column(Rate, nullable=False, default=0)

    discount_percent = Column(Pct, nullable=False, default=0)
    discount_amount = Column(Money, nullable=False, default=0)

    tax_percent = Column(Pct, nullable=False, default=0)
    cgst_percent = Column(Pct, nullable=False, default=0)
    sgst_percent = Column(Pct, nullable=False, default=0)
    igst_percent = Column(Pct, nullable=False, default=0)

    # computed on save; discount_amount above stays the user-entered value
    gross_amount = Column(Money, nullable=False, default=0)
    discount_applied = Column(Money, nullable=False, default=0)
    taxable_amount = Column(Money, nullable=False, default=0)
    cgst_amount = Column(Money, nullable=False, default=0)
    sgst_amount = Column(Money, nullable=False, default=0)
    igst_amount = Column(Money, nullable=False, default=0)

    line_total = Column(Money, nullable=False, default=0)

    scheme = Column(String(100), nullable=False, default="")
    remarks = Column(String(255), nullable=False, default="")

    grn = relationship("GRN", back_populates="items")
