# FILE: hims_grn/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from hims_grn.core.config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE or "Asia/Kolkata")


def now_local() -> datetime:
    """
    Naive wall-clock time in the hospital's timezone.
    DateTime columns are naive, so tzinfo is dropped before storing.
    """
    return datetime.now(local_tz()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
