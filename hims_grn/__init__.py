"""Goods receipt (GRN) line pricing and reconciliation engine."""

__version__ = "0.1.0"
