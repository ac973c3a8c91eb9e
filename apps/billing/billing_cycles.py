"""
Billing cycle date arithmetic.

Dates move by calendar months, not fixed day counts. A start date on a day the
target month does not have lands on that month's last day, so a monthly cycle
from 31 January ends on 28 or 29 February.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Final

from dateutil.relativedelta import relativedelta
from django.utils import timezone

from apps.common.types import ValidationError

CYCLE_MONTHS: Final[dict[str, int]] = {
    "monthly": 1,
    "quarterly": 3,
    "semi-annually": 6,
    "yearly": 12,
}


def cycle_months(cycle: str) -> int:
    try:
        return CYCLE_MONTHS[cycle]
    except KeyError:
        raise ValidationError("billing_cycle", f"unknown billing cycle {cycle!r}") from None


def calculate_next_billing_date(from_date: date | datetime, cycle: str) -> date:
    """Date one billing cycle after ``from_date``"""
    months = cycle_months(cycle)
    if isinstance(from_date, datetime):
        from_date = local_date(from_date)
    return from_date + relativedelta(months=months)


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-aware month addition that keeps the time of day"""
    return moment + relativedelta(months=months)


def local_date(moment: datetime) -> date:
    """Calendar date of ``moment`` in the operator's time zone"""
    if timezone.is_aware(moment):
        return timezone.localtime(moment).date()
    return moment.date()
