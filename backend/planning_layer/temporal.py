"""
Temporal phrase resolution.

Calendar-based semantics relative to the request's "now":
    today / yesterday / tomorrow  -> one-day half-open range
    this  <week|month|year>       -> the current period as a range
    next  <week|month|year>       -> the following period as a range
    last  <week|month|year>       -> open-ended, on or after the first day
                                     of the previous period
Weeks start on Monday.
"""

from datetime import date, datetime, timedelta

from planning_layer.entity_types import TemporalRange


DAY_OFFSETS = {
    "today": 0,
    "yesterday": -1,
    "tomorrow": 1,
}

PERIODS = ("week", "month", "year")


def _midnight(d: date) -> datetime:
    return datetime(d.year, d.month, d.day)


def _period_start(d: date, period: str) -> date:
    if period == "week":
        return d - timedelta(days=d.weekday())
    if period == "month":
        return d.replace(day=1)
    return d.replace(month=1, day=1)


def _shift_period(start: date, period: str, n: int) -> date:
    """Move a period start by n whole periods."""
    if period == "week":
        return start + timedelta(weeks=n)
    if period == "month":
        month_index = start.year * 12 + (start.month - 1) + n
        return date(month_index // 12, month_index % 12 + 1, 1)
    return date(start.year + n, 1, 1)


def resolve_temporal(label: str, now: datetime) -> TemporalRange:
    """
    Resolve a canonical temporal label ("today", "last_month", ...).

    Raises:
        ValueError: unknown label
    """
    today = now.date()

    if label in DAY_OFFSETS:
        day = today + timedelta(days=DAY_OFFSETS[label])
        return TemporalRange(label, _midnight(day), _midnight(day + timedelta(days=1)))

    try:
        modifier, period = label.split("_", 1)
    except ValueError:
        raise ValueError(f"Unknown temporal label: {label}") from None
    if period not in PERIODS or modifier not in ("this", "last", "next"):
        raise ValueError(f"Unknown temporal label: {label}")

    current = _period_start(today, period)
    if modifier == "this":
        return TemporalRange(label, _midnight(current), _midnight(_shift_period(current, period, 1)))
    if modifier == "next":
        following = _shift_period(current, period, 1)
        return TemporalRange(label, _midnight(following), _midnight(_shift_period(following, period, 1)))
    return TemporalRange(label, _midnight(_shift_period(current, period, -1)))


def describe_temporal(label: str) -> str:
    return label.replace("_", " ")
