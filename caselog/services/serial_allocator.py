from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from caselog.models.case import CaseEntry

logger = logging.getLogger(__name__)


def max_serial_for_date(db: Session, *, owner_id: str, date: str) -> int:
    """
    Highest serial already used by `owner_id` on `date` (0 when the day is empty).
    Exact string match on date, not a range.
    """
    val: Optional[int] = (db.query(func.max(CaseEntry.serial_number)).filter(
        CaseEntry.owner_id == owner_id,
        CaseEntry.date == date,
    ).scalar())
    return int(val or 0)


def next_serial(db: Session, *, owner_id: str, date: str) -> int:
    """
    Next daily serial for (owner_id, date).

    Must run inside the same transaction as the insert / update that uses it.
    The (owner_id, date, serial_number) unique constraint rejects a racing
    writer; the caller rolls back and allocates again.
    """
    n = max_serial_for_date(db, owner_id=owner_id, date=date) + 1
    logger.debug("allocated serial owner=%s date=%s serial=%s", owner_id, date, n)
    return n
