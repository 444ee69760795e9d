# FILE: caselog/models/case.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
    Numeric,
    Index,
    UniqueConstraint,
)

from caselog.db.base import Base


def _new_case_id() -> str:
    return uuid.uuid4().hex


class CaseEntry(Base):
    """
    One surgical / procedure record.

    - date / start_time / end_time are kept as plain text (YYYY-MM-DD, HH:MM)
      so they never shift across a timezone on round-trip
    - serial_number is per (owner_id, date) and is always computed by
      services.serial_allocator, never taken from the client
    """
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "date",
            "serial_number",
            name="uq_cases_owner_date_serial",
        ),
        Index("ix_cases_owner_date", "owner_id", "date"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(String(32), primary_key=True, default=_new_case_id)
    owner_id = Column(String(128), nullable=False, index=True)

    serial_number = Column(Integer, nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD

    hospital = Column(String(255), nullable=False)
    patient_name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    sex = Column(String(10), nullable=True)  # Male / Female / Other
    diagnosis = Column(String(500), nullable=False)
    anesthesia = Column(String(100), nullable=True)
    procedure = Column(String(500), nullable=True)

    start_time = Column(String(5), nullable=True)  # HH:MM
    end_time = Column(String(5), nullable=True)
    duration = Column(Integer, nullable=True)  # minutes

    payment_mode = Column(String(20), nullable=False, default="UPI")
    payment_status = Column(String(20), nullable=False, default="PENDING")
    surgeon_name = Column(String(255), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CaseEntry {self.date} #{self.serial_number} {self.id}>"
