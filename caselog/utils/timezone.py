# FILE: caselog/utils/timezone.py
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from caselog.core.config import settings


def practice_tz() -> ZoneInfo:
    # put TIMEZONE="Asia/Kolkata" in your .env
    return ZoneInfo(settings.TIMEZONE or "Asia/Kolkata")


def today_local() -> date:
    return datetime.now(timezone.utc).astimezone(practice_tz()).date()
