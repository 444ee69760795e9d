# FILE: caselog/services/aggregation.py
"""
Financial views over a case collection.

Everything here is a pure function of its input: no store access, no
caching, safe to call from any thread. Inputs may be ORM rows, CaseOut
models or plain mappings with snake_case keys.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from caselog.core.errors import MalformedDate
from caselog.schemas.report import (
    DashboardOverview,
    GrandTotals,
    Granularity,
    HospitalShare,
    HospitalTotal,
    PeriodReport,
    SummaryRecord,
)
from caselog.utils.money import D, ZERO

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct",
    "Nov", "Dec"
]

CASH_MODES = {"cash"}
DIGITAL_MODES = {"bank transfer", "upi"}

CENT = Decimal("0.01")

_DATE_PARTS_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

# (year, month_index) for months, (year,) for years
PeriodKey = Tuple[int, ...]


def _get(case: Any, name: str, default: Any = None) -> Any:
    if isinstance(case, Mapping):
        return case.get(name, default)
    return getattr(case, name, default)


# ---------- per-hospital ----------


def hospital_totals(cases: Iterable[Any]) -> List[HospitalTotal]:
    """Amount per hospital in first-seen order (not ranked)."""
    stats: Dict[str, Decimal] = {}
    for c in cases:
        name = _get(c, "hospital") or ""
        stats[name] = stats.get(name, ZERO) + D(_get(c, "amount"))
    return [HospitalTotal(name=k, value=v) for k, v in stats.items()]


def _ranked_first(stats: List[HospitalTotal]) -> Optional[HospitalTotal]:
    if not stats:
        return None
    # sorted() is stable, so equal values keep first-seen order
    return sorted(stats, key=lambda h: h.value, reverse=True)[0]


def top_hospital(cases: Iterable[Any]) -> Optional[HospitalTotal]:
    """Highest-earning hospital; ties go to the one seen first."""
    return _ranked_first(hospital_totals(cases))


def total_earnings(cases: Iterable[Any]) -> Decimal:
    return sum((D(_get(c, "amount")) for c in cases), ZERO)


# ---------- period keys ----------


def parse_period_key(date_str: Any, granularity: Granularity) -> PeriodKey:
    """
    Period key straight from the YYYY-MM-DD text components.
    No calendar parsing, so no locale or timezone can move a case into a
    neighbouring month.
    """
    if not isinstance(date_str, str):
        raise MalformedDate(date_str)
    m = _DATE_PARTS_RE.match(date_str.strip())
    if not m:
        raise MalformedDate(date_str)
    year, month, day = (int(p) for p in m.groups())
    if not (1 <= month <= 12 and 1 <= day <= 31):
        raise MalformedDate(date_str)

    if granularity == Granularity.YEAR:
        return (year, )
    return (year, month - 1)


def sort_key_for(key: PeriodKey) -> int:
    if len(key) == 1:
        return key[0]
    year, month_index = key
    return year * 100 + month_index


def period_label(key: PeriodKey) -> str:
    if len(key) == 1:
        return str(key[0])
    year, month_index = key
    return f"{MONTH_NAMES[month_index]} {year}"


# ---------- summaries ----------


@dataclass
class _Bucket:
    key: PeriodKey
    cash_total: Decimal = field(default_factory=lambda: ZERO)
    digital_total: Decimal = field(default_factory=lambda: ZERO)
    total_cases: int = 0
    total_amount: Decimal = field(default_factory=lambda: ZERO)

    def add(self, amount: Decimal, mode: str) -> None:
        self.total_cases += 1
        self.total_amount += amount
        if mode in CASH_MODES:
            self.cash_total += amount
        elif mode in DIGITAL_MODES:
            self.digital_total += amount
        # credit and unknown modes only count towards the totals

    def to_record(self) -> SummaryRecord:
        return SummaryRecord(
            period=period_label(self.key),
            sort_key=sort_key_for(self.key),
            cash_total=self.cash_total,
            digital_total=self.digital_total,
            total_cases=self.total_cases,
            total_amount=self.total_amount,
        )


def period_summary(
    cases: Iterable[Any],
    granularity: Union[Granularity, str] = Granularity.MONTH,
) -> List[SummaryRecord]:
    """
    Group cases by month or year, most recent period first.
    Cases whose date cannot be read are logged and left out.
    """
    granularity = Granularity(granularity)
    buckets: Dict[PeriodKey, _Bucket] = {}
    skipped = 0

    for c in cases:
        try:
            key = parse_period_key(_get(c, "date"), granularity)
        except MalformedDate as e:
            skipped += 1
            logger.warning("skipping case %s in %s summary: %s",
                           _get(c, "id"), granularity.value, e.msg)
            continue

        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(key=key)
        mode = str(_get(c, "payment_mode") or "").strip().lower()
        bucket.add(D(_get(c, "amount")), mode)

    if skipped:
        logger.info("%s summary skipped %s case(s) with malformed dates",
                    granularity.value, skipped)

    records = [b.to_record() for b in buckets.values()]
    records.sort(key=lambda r: r.sort_key, reverse=True)
    return records


def monthly_summary(cases: Iterable[Any]) -> List[SummaryRecord]:
    return period_summary(cases, Granularity.MONTH)


def annual_summary(cases: Iterable[Any]) -> List[SummaryRecord]:
    return period_summary(cases, Granularity.YEAR)


def grand_totals(records: Iterable[SummaryRecord]) -> GrandTotals:
    """Column-wise sum of already-built summary records."""
    cash = digital = amount = ZERO
    count = 0
    for r in records:
        cash += r.cash_total
        digital += r.digital_total
        amount += r.total_amount
        count += r.total_cases
    return GrandTotals(
        cash_total=cash,
        digital_total=digital,
        total_cases=count,
        total_amount=amount,
    )


def build_report(
    cases: Iterable[Any],
    granularity: Union[Granularity, str] = Granularity.MONTH,
) -> PeriodReport:
    granularity = Granularity(granularity)
    records = period_summary(cases, granularity)
    return PeriodReport(
        granularity=granularity,
        records=records,
        totals=grand_totals(records),
    )


def _share(value: Decimal, total: Decimal) -> Decimal:
    if not total:
        return ZERO
    return (value * 100 / total).quantize(CENT, rounding=ROUND_HALF_UP)


def build_overview(cases: Iterable[Any]) -> DashboardOverview:
    rows = list(cases)
    earned = total_earnings(rows)
    hospitals = [
        HospitalShare(name=h.name, value=h.value, share=_share(h.value, earned))
        for h in hospital_totals(rows)
    ]
    average = (earned / max(len(rows), 1)).quantize(CENT,
                                                     rounding=ROUND_HALF_UP)
    return DashboardOverview(
        total_earnings=earned,
        total_cases=len(rows),
        average_per_case=average,
        top_hospital=_ranked_first(hospitals),
        hospitals=hospitals,
    )
