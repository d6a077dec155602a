# hims_grn/db/init_db.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from hims_grn.db.base import Base
from hims_grn.db.session import engine as default_engine

# Import all models so metadata is complete
from hims_grn.models import grn  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create missing receiving tables; safe to run multiple times."""
    eng = bind or default_engine
    Base.metadata.create_all(bind=eng)
    logger.info("GRN tables ready: %s", ", ".join(sorted(Base.metadata.tables)))
