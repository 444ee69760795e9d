from __future__ import annotations

from typing import Optional

from caselog.core.errors import ValidationError
from caselog.schemas.case import TIME_RE

MINUTES_PER_DAY = 1440


def clock_to_minutes(hhmm: str) -> int:
    v = (hhmm or "").strip()
    if not TIME_RE.match(v):
        raise ValidationError(f"Invalid time {hhmm!r}, expected HH:MM",
                              details={"time": hhmm})
    hh, mm = v.split(":")
    return int(hh) * 60 + int(mm)


def derive_duration(
    start_time: Optional[str],
    end_time: Optional[str],
    current: Optional[int] = None,
) -> Optional[int]:
    """
    Minutes between start and end; an end earlier than the start means the
    procedure ran past midnight (23:30 -> 00:15 is 45).
    Either time missing -> `current` is returned untouched.
    """
    if not start_time or not end_time:
        return current
    diff = clock_to_minutes(end_time) - clock_to_minutes(start_time)
    if diff < 0:
        diff += MINUTES_PER_DAY
    return diff


def format_duration(minutes: Optional[int]) -> str:
    mins = int(minutes or 0)
    if mins < 60:
        return f"{mins} mins"
    hrs, rem = divmod(mins, 60)
    hrs_label = "hour" if hrs == 1 else "hours"
    if rem == 0:
        return f"{hrs} {hrs_label}"
    return f"{hrs} {hrs_label} {rem} minutes"
