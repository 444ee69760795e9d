# FILE: caselog/schemas/case.py
from __future__ import annotations

import re
from datetime import date as _date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# fields a new case cannot be created without
REQUIRED_FIELDS = ("date", "hospital", "patient_name", "diagnosis", "amount")


class Sex(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class PaymentMode(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT = "Credit"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


def check_case_date(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not DATE_RE.match(v):
        raise ValueError("date must be YYYY-MM-DD")
    try:
        _date.fromisoformat(v)
    except ValueError:
        raise ValueError("date is not a valid calendar date")
    return v


def check_clock_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if not TIME_RE.match(v):
        raise ValueError("time must be HH:MM (24h)")
    return v


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class _CaseWriteMixin(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    @field_validator("date", check_fields=False)
    @classmethod
    def _v_date(cls, v):
        return check_case_date(v)

    @field_validator("start_time", "end_time", check_fields=False)
    @classmethod
    def _v_time(cls, v):
        return check_clock_time(v)

    @field_validator("hospital", "patient_name", "diagnosis", check_fields=False)
    @classmethod
    def _v_required_text(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    # remarks / optional text: blank -> None, never ""
    @field_validator(
        "anesthesia",
        "procedure",
        "surgeon_name",
        "remarks",
        check_fields=False,
    )
    @classmethod
    def _v_optional_text(cls, v):
        return _strip_or_none(v)


class CaseCreate(_CaseWriteMixin):
    """
    Payload for a new case. id and serial_number are never accepted here;
    the store assigns both.
    """
    date: str
    hospital: str = Field(..., max_length=255)
    patient_name: str = Field(..., max_length=255)
    age: Optional[int] = Field(None, ge=0)
    sex: Optional[Sex] = None
    diagnosis: str = Field(..., max_length=500)
    anesthesia: Optional[str] = Field(None, max_length=100)
    procedure: Optional[str] = Field(None, max_length=500)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    payment_mode: PaymentMode = PaymentMode.UPI
    payment_status: PaymentStatus = PaymentStatus.PENDING
    surgeon_name: Optional[str] = Field(None, max_length=255)
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    remarks: Optional[str] = None


class CaseUpdate(_CaseWriteMixin):
    """
    Used for PATCH /cases/{id} and CaseRepository.update().
    All fields optional; the store applies exclude_unset=True.
    """
    date: Optional[str] = None
    hospital: Optional[str] = Field(None, max_length=255)
    patient_name: Optional[str] = Field(None, max_length=255)
    age: Optional[int] = Field(None, ge=0)
    sex: Optional[Sex] = None
    diagnosis: Optional[str] = Field(None, max_length=500)
    anesthesia: Optional[str] = Field(None, max_length=100)
    procedure: Optional[str] = Field(None, max_length=500)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    payment_mode: Optional[PaymentMode] = None
    payment_status: Optional[PaymentStatus] = None
    surgeon_name: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    remarks: Optional[str] = None


class CaseOut(BaseModel):
    """
    Read model. payment_mode / status / sex are plain strings so rows written
    before a mode was retired still load.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    serial_number: int
    date: str
    hospital: str
    patient_name: str
    age: Optional[int] = None
    sex: Optional[str] = None
    diagnosis: str
    anesthesia: Optional[str] = None
    procedure: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    payment_mode: str
    payment_status: str
    surgeon_name: Optional[str] = None
    amount: Decimal
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def update_fields(self) -> Dict[str, Any]:
        """Full-entry update payload for this case (id / serial excluded)."""
        return self.model_dump(
            exclude={"id", "serial_number", "created_at", "updated_at"})
