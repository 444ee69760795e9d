# FILE: caselog/schemas/report.py
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Granularity(str, Enum):
    MONTH = "month"
    YEAR = "year"


class HospitalTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: Decimal = Decimal("0")


class HospitalShare(HospitalTotal):
    """Hospital total with its percentage of all earnings (0-100, 2 dp)."""
    share: Decimal = Decimal("0")


class SummaryRecord(BaseModel):
    """
    One period bucket of the financial summary.
    `period` is display only; ordering always uses `sort_key`.
    """
    model_config = ConfigDict(frozen=True)

    period: str
    sort_key: int
    cash_total: Decimal = Decimal("0")
    digital_total: Decimal = Decimal("0")
    total_cases: int = 0
    total_amount: Decimal = Decimal("0")


class GrandTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    cash_total: Decimal = Decimal("0")
    digital_total: Decimal = Decimal("0")
    total_cases: int = 0
    total_amount: Decimal = Decimal("0")


class PeriodReport(BaseModel):
    granularity: Granularity
    records: List[SummaryRecord] = Field(default_factory=list)
    totals: GrandTotals = Field(default_factory=GrandTotals)


class DashboardOverview(BaseModel):
    total_earnings: Decimal = Decimal("0")
    total_cases: int = 0
    average_per_case: Decimal = Decimal("0")
    top_hospital: Optional[HospitalTotal] = None
    hospitals: List[HospitalShare] = Field(default_factory=list)
