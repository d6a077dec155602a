# hims_grn/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from hims_grn.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(x_user_id: Optional[int] = Header(None)) -> Optional[int]:
    """
    Acting user for the audit columns (created_by / posted_by / cancelled_by).
    Authentication happens upstream; the gateway forwards the user id.
    """
    return x_user_id
