from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from caselog.core.config import settings
from caselog.core.errors import (
    NotFoundOrForbidden,
    StoreUnavailable,
    ValidationError,
)
from caselog.models.case import CaseEntry
from caselog.schemas.case import REQUIRED_FIELDS, CaseCreate, CaseUpdate
from caselog.services.serial_allocator import next_serial

logger = logging.getLogger(__name__)

CreateIn = Union[CaseCreate, Mapping[str, Any]]
UpdateIn = Union[CaseUpdate, Mapping[str, Any]]


# ---------- payload validation ----------


def _validation_error(exc: PydanticValidationError) -> ValidationError:
    errors = exc.errors()
    missing = [
        ".".join(str(p) for p in e["loc"]) for e in errors
        if e.get("type") == "missing"
    ]
    details = [{
        "loc": [str(p) for p in e["loc"]],
        "msg": e["msg"]
    } for e in errors]
    if missing:
        msg = "Missing required field(s): " + ", ".join(missing)
    else:
        msg = "Invalid case fields"
    return ValidationError(msg, details=details)


def parse_create(payload: CreateIn) -> CaseCreate:
    if isinstance(payload, CaseCreate):
        return payload
    try:
        return CaseCreate.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise _validation_error(e) from e


def parse_update(payload: UpdateIn) -> CaseUpdate:
    if isinstance(payload, CaseUpdate):
        return payload
    try:
        return CaseUpdate.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise _validation_error(e) from e


# ---------- store error translation ----------


def _rollback(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("rollback failed")


@contextmanager
def _store_guard(db: Session, op: str) -> Iterator[None]:
    """Connection-level failures become StoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        _rollback(db)
        logger.exception("case store unavailable during %s", op)
        raise StoreUnavailable(f"Case store unavailable ({op})") from e


def _owned(db: Session, owner_id: str, case_id: str) -> CaseEntry:
    row = (db.query(CaseEntry).filter(
        CaseEntry.id == case_id,
        CaseEntry.owner_id == owner_id,
    ).first())
    if not row:
        raise NotFoundOrForbidden(case_id)
    return row


SERIAL_CONSTRAINT = "uq_cases_owner_date_serial"


def _is_serial_collision(exc: IntegrityError) -> bool:
    # MySQL and PostgreSQL name the key; SQLite lists the columns
    text = str(exc.orig)
    return (SERIAL_CONSTRAINT in text
            or "cases.serial_number" in text)


def _attempts() -> int:
    return max(1, int(settings.SERIAL_RETRY_ATTEMPTS or 1))


# ---------- operations ----------


def list_cases(
    db: Session,
    *,
    owner_id: str,
    limit: Optional[int] = None,
    q: Optional[str] = None,
    status: Optional[str] = None,
) -> List[CaseEntry]:
    """Owner's cases, newest day first, highest serial first within a day."""
    limit = limit or settings.CASE_LIST_LIMIT
    with _store_guard(db, "list"):
        qry = db.query(CaseEntry).filter(CaseEntry.owner_id == owner_id)
        if q and q.strip():
            like = f"%{q.strip()}%"
            qry = qry.filter(
                or_(
                    CaseEntry.patient_name.ilike(like),
                    CaseEntry.hospital.ilike(like),
                    CaseEntry.diagnosis.ilike(like),
                ))
        if status and status.upper() != "ALL":
            qry = qry.filter(CaseEntry.payment_status == status.upper())
        return (qry.order_by(CaseEntry.date.desc(),
                             CaseEntry.serial_number.desc()).limit(limit).all())


def get_case(db: Session, *, owner_id: str, case_id: str) -> CaseEntry:
    with _store_guard(db, "get"):
        return _owned(db, owner_id, case_id)


def create_case(db: Session, *, owner_id: str, payload: CreateIn) -> CaseEntry:
    data = parse_create(payload).model_dump()

    with _store_guard(db, "create"):
        for attempt in range(1, _attempts() + 1):
            row = CaseEntry(owner_id=owner_id, **data)
            row.serial_number = next_serial(db,
                                            owner_id=owner_id,
                                            date=data["date"])
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                _rollback(db)
                if not _is_serial_collision(e):
                    raise
                logger.warning(
                    "serial collision on create owner=%s date=%s attempt=%s",
                    owner_id, data["date"], attempt)
                continue
            db.refresh(row)
            logger.info("case created id=%s owner=%s date=%s serial=%s",
                        row.id, owner_id, row.date, row.serial_number)
            return row

    raise StoreUnavailable("Could not allocate a daily serial number",
                           details={"date": data["date"]})


def update_case(
    db: Session,
    *,
    owner_id: str,
    case_id: str,
    payload: UpdateIn,
) -> CaseEntry:
    """
    Apply the set fields of `payload` to the owner's case.
    A changed date moves the case to the end of the new day's sequence;
    the old day keeps its gap.
    """
    data = parse_update(payload).model_dump(exclude_unset=True)

    blanked = [f for f in REQUIRED_FIELDS if f in data and data[f] is None]
    if blanked:
        raise ValidationError("Required field(s) cannot be cleared: " +
                              ", ".join(blanked),
                              details={"fields": blanked})

    with _store_guard(db, "update"):
        for attempt in range(1, _attempts() + 1):
            row = _owned(db, owner_id, case_id)
            new_date = data.get("date")
            date_changed = new_date is not None and new_date != row.date

            for k, v in data.items():
                setattr(row, k, v)
            if date_changed:
                row.serial_number = next_serial(db,
                                                owner_id=owner_id,
                                                date=new_date)
            try:
                db.commit()
            except IntegrityError as e:
                _rollback(db)
                if not _is_serial_collision(e):
                    raise
                logger.warning(
                    "serial collision on update id=%s date=%s attempt=%s",
                    case_id, new_date, attempt)
                continue
            db.refresh(row)
            if date_changed:
                logger.info("case %s moved to %s as serial %s", row.id,
                            row.date, row.serial_number)
            return row

    raise StoreUnavailable("Could not allocate a daily serial number",
                           details={"id": case_id})


def delete_case(db: Session, *, owner_id: str, case_id: str) -> None:
    with _store_guard(db, "delete"):
        row = _owned(db, owner_id, case_id)
        db.delete(row)
        db.commit()
        logger.info("case deleted id=%s owner=%s", case_id, owner_id)
