"""Billing-cycle progress and reset-date calculation.

A cycle is anchored to a day of the month. When the anchor does not exist in
a given month (day 31 in April, day 30 in February) the cycle starts on that
month's last day instead, so every month has exactly one reset.
"""

from __future__ import annotations

import calendar
import math
from datetime import date

from usage_dashboard.models import BillingCycleInfo


def compute_billing_cycle(cycle_start_day: int, as_of: date) -> BillingCycleInfo:
    """Compute elapsed/remaining days and progress for the cycle containing ``as_of``.

    Args:
        cycle_start_day: Configured reset day of month, 1-31.
        as_of: Date to evaluate (normally the refresh date).

    Raises:
        ValueError: If ``cycle_start_day`` is outside 1-31.
    """
    if not 1 <= cycle_start_day <= 31:
        raise ValueError(f"Billing cycle start day must be between 1 and 31, got {cycle_start_day}.")

    this_month_start = _anchor_date(as_of.year, as_of.month, cycle_start_day)

    if as_of >= this_month_start:
        cycle_start = this_month_start
        next_year, next_month = _shift_month(as_of.year, as_of.month, 1)
        reset_date = _anchor_date(next_year, next_month, cycle_start_day)
    else:
        prev_year, prev_month = _shift_month(as_of.year, as_of.month, -1)
        cycle_start = _anchor_date(prev_year, prev_month, cycle_start_day)
        reset_date = this_month_start

    days_elapsed = (as_of - cycle_start).days
    days_remaining = (reset_date - as_of).days

    return BillingCycleInfo(
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        progress_percent=progress_percent(days_elapsed, days_remaining),
        reset_date=reset_date,
    )


def progress_percent(days_elapsed: int, days_remaining: int) -> int:
    """Round half up to a whole percent within [0, 100]; 0 for an empty cycle."""
    total = days_elapsed + days_remaining
    if total <= 0:
        return 0
    value = math.floor(100 * days_elapsed / total + 0.5)
    return max(0, min(100, value))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _anchor_date(year: int, month: int, cycle_start_day: int) -> date:
    return date(year, month, min(cycle_start_day, days_in_month(year, month)))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
