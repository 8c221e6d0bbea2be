"""
Date Filter
===========

Time window applied to resources and events before a snapshot is derived.

INVARIANTS:
- start_date <= end_date
- Both bounds are timezone-aware datetimes (compared in UTC)
- Overlap test is inclusive at both ends
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

from ..contracts.base import InvalidDateRange


@dataclass(frozen=True)
class DateFilter:
    """Immutable time window for a query view."""
    start_date: datetime
    end_date: datetime


def validate_date_filter(date_filter: object) -> DateFilter:
    """
    Check a date filter before the engine trusts it.

    Returns the filter unchanged so callers can validate inline.
    Raises InvalidDateRange on any violation.
    """
    if not isinstance(date_filter, DateFilter):
        raise InvalidDateRange("DateFilter validation failed: expected a DateFilter")

    start, end = date_filter.start_date, date_filter.end_date
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise InvalidDateRange("DateFilter validation failed: startDate and endDate must be datetimes")

    if start.tzinfo is None or end.tzinfo is None:
        raise InvalidDateRange("DateFilter validation failed: dates must be timezone-aware")

    if start > end:
        raise InvalidDateRange(
            "DateFilter validation failed: startDate must be before or equal to endDate",
            context=(("start_date", start.isoformat()), ("end_date", end.isoformat()))
        )

    return date_filter


def is_within_date_range(
    date_filter: DateFilter,
    first_seen_at: datetime,
    last_seen_at: datetime
) -> bool:
    """True when [first_seen_at, last_seen_at] overlaps the filter window."""
    if last_seen_at < date_filter.start_date:
        return False  # ended before the window
    if first_seen_at > date_filter.end_date:
        return False  # started after the window
    return True


# =============================================================================
# PRESETS
# =============================================================================

def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def last_days(days: int, now: Optional[datetime] = None) -> DateFilter:
    """Window from the start of the day ``days`` ago to the end of today."""
    today = now or datetime.now(timezone.utc)
    return DateFilter(
        start_date=_start_of_day(today - timedelta(days=days)),
        end_date=_end_of_day(today)
    )


def _last_months(months: int, now: Optional[datetime] = None) -> DateFilter:
    today = now or datetime.now(timezone.utc)
    return DateFilter(
        start_date=_start_of_day(today - relativedelta(months=months)),
        end_date=_end_of_day(today)
    )


def _month_to_date(now: Optional[datetime] = None) -> DateFilter:
    today = now or datetime.now(timezone.utc)
    return DateFilter(start_date=_start_of_day(today.replace(day=1)), end_date=_end_of_day(today))


def _year_to_date(now: Optional[datetime] = None) -> DateFilter:
    today = now or datetime.now(timezone.utc)
    return DateFilter(
        start_date=_start_of_day(today.replace(month=1, day=1)),
        end_date=_end_of_day(today)
    )


DATE_PRESETS: Dict[str, Tuple[str, Callable[[Optional[datetime]], DateFilter]]] = {
    "today": ("Today", lambda now=None: last_days(0, now)),
    "last7days": ("Last 7 days", lambda now=None: last_days(7, now)),
    "last30days": ("Last 30 days", lambda now=None: last_days(30, now)),
    "last3months": ("Last 3 months", lambda now=None: _last_months(3, now)),
    "last6months": ("Last 6 months", lambda now=None: _last_months(6, now)),
    "monthtodate": ("Month to date", _month_to_date),
    "yeartodate": ("Year to date", _year_to_date),
}


def date_filter_from_preset(preset_id: str, now: Optional[datetime] = None) -> DateFilter:
    if preset_id not in DATE_PRESETS:
        raise InvalidDateRange(f"Unknown date preset {preset_id}")
    _, factory = DATE_PRESETS[preset_id]
    return factory(now)
