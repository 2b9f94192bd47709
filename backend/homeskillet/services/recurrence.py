# backend/homeskillet/services/recurrence.py
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..domain.vocab import FREQUENCIES

DAY_STEPS: dict[str, int] = {"daily": 1, "weekly": 7, "biweekly": 14}
MONTH_STEPS: dict[str, int] = {"monthly": 1, "quarterly": 3, "biannual": 6, "yearly": 12, "seasonal": 3}
# as_needed has no step: those schedules are only ever due when someone says so

DateLike = Union[date, datetime]


def add_months(d: date, months: int) -> date:
    """Calendar-month step, clamped to the last day of the target month."""
    m0 = d.month - 1 + months
    y, m = d.year + m0 // 12, m0 % 12 + 1
    last_day = calendar.monthrange(y, m)[1]
    return date(y, m, min(d.day, last_day))


def calculate_next_due_date(
    frequency: str,
    from_date: Optional[DateLike] = None,
    *,
    multiplier: int = 1,
) -> Optional[date]:
    """
    Next due date `multiplier` frequency steps after `from_date` (default: today).

    Month steps clamp to the end of the month (Jan 31 + 1 month = Feb 28/29).
    Returns None for as_needed. Unknown frequencies raise ValueError.
    """
    if frequency not in FREQUENCIES:
        raise ValueError(f"unknown frequency: {frequency}")

    base = from_date if from_date is not None else date.today()
    if isinstance(base, datetime):
        base = base.date()
    n = max(1, int(multiplier or 1))

    if frequency in DAY_STEPS:
        return base + timedelta(days=DAY_STEPS[frequency] * n)
    if frequency in MONTH_STEPS:
        return add_months(base, MONTH_STEPS[frequency] * n)
    return None
