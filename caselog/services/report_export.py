from __future__ import annotations

from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from caselog.schemas.report import Granularity, PeriodReport


def _money(x) -> float:
    try:
        return float(Decimal(str(x or "0")))
    except Exception:
        return 0.0


def build_period_summary_excel(fp, report: PeriodReport) -> None:
    """
    Write `report` as a single-sheet workbook: one row per period, then a
    grand-total row. `fp` is a path or a binary file object.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = ("Monthly Summary" if report.granularity == Granularity.MONTH
                else "Annual Summary")

    headers = [
        "Month" if report.granularity == Granularity.MONTH else "Year",
        "Cases",
        "Cash Total",
        "Bank/UPI Total",
        "Total Amount",
    ]
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for r in report.records:
        ws.append([
            r.period,
            int(r.total_cases),
            _money(r.cash_total),
            _money(r.digital_total),
            _money(r.total_amount),
        ])

    t = report.totals
    ws.append([
        "Grand Total",
        int(t.total_cases),
        _money(t.cash_total),
        _money(t.digital_total),
        _money(t.total_amount),
    ])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for col in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 18

    wb.save(fp)
