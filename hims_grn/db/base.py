# FILE: hims_grn/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All receiving tables (GRN header, GRN lines, number series) inherit from this."""
    pass
