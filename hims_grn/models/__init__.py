# FILE: hims_grn/models/__init__.py
from .grn import GRN, GRNItem, GRNStatus, InvNumberSeries

__all__ = [
    "GRN",
    "GRNItem",
    "GRNStatus",
    "InvNumberSeries",
]
