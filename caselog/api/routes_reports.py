# FILE: caselog/api/routes_reports.py
from __future__ import annotations

from io import BytesIO

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from caselog.api.deps import current_owner, get_db
from caselog.api.response import ok
from caselog.schemas.report import Granularity
from caselog.services import aggregation, case_crud
from caselog.services.report_export import build_period_summary_excel

router = APIRouter(prefix="/reports", tags=["Reports"])

XLSX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")


def _owner_cases(db: Session, owner_id: str):
    # same window the register shows
    return case_crud.list_cases(db, owner_id=owner_id)


@router.get("/hospitals")
def hospital_totals(
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    rows = _owner_cases(db, owner_id)
    return ok(aggregation.hospital_totals(rows))


@router.get("/overview")
def overview(
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    """Dashboard tiles: total earnings, case count, top hospital."""
    rows = _owner_cases(db, owner_id)
    return ok(aggregation.build_overview(rows))


@router.get("/summary")
def period_summary(
        granularity: Granularity = Query(Granularity.MONTH),
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    rows = _owner_cases(db, owner_id)
    report = aggregation.build_report(rows, granularity)
    return ok(report, meta={"periods": len(report.records)})


@router.get("/summary/export")
def export_period_summary(
        granularity: Granularity = Query(Granularity.MONTH),
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    rows = _owner_cases(db, owner_id)
    report = aggregation.build_report(rows, granularity)

    buf = BytesIO()
    build_period_summary_excel(buf, report)
    buf.seek(0)
    filename = f"{granularity.value}_summary.xlsx"
    return StreamingResponse(
        buf,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
