"""Billing calendar and clock helpers"""

import calendar
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    Avoids 'datetime.utcnow()' deprecation warnings.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing ``day``."""
    return day.replace(day=1), day.replace(day=days_in_month(day.year, day.month))


def clamp_due_date(year: int, month: int, due_day: int) -> date:
    """Due date for ``due_day`` in the given month, clamped to the month's last day.

    A due day of 31 lands on Feb 28 (or 29), Apr 30, and so on.
    """
    return date(year, month, min(due_day, days_in_month(year, month)))


def due_days_matching(today: date) -> tuple[int, Optional[int]]:
    """Which ``rent_due_day`` values fall due on ``today``.

    Returns ``(day, overflow_from)``: bindings with ``rent_due_day == day``
    are due, and when ``today`` is the month's last day so is every
    ``rent_due_day > day`` (``overflow_from`` is then ``day + 1``, else None).
    """
    last = days_in_month(today.year, today.month)
    if today.day == last and last < 31:
        return today.day, today.day + 1
    return today.day, None


def days_late(due_date: date, today: date) -> int:
    """Whole days elapsed since ``due_date``, never negative."""
    return max(0, (today - due_date).days)


def local_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of a stored timestamp in ``tz_name``. Naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).date()


class Clock:
    """Source of "today" for the billing services.

    Services receive a clock instead of reading the system time so sweeps can
    be replayed for a given day.
    """

    def today(self) -> date:
        raise NotImplementedError

    def now(self) -> datetime:
        return get_utc_now()

    def with_day(self, day: Optional[int]) -> "Clock":
        """Clock pinned to ``day`` of the current month (clamped), or self when None."""
        if day is None:
            return self
        current = self.today()
        return FixedClock(clamp_due_date(current.year, current.month, day))


class SystemClock(Clock):
    """Wall-clock date in the landlord's timezone"""

    def __init__(self, tz_name: str):
        self.tz = ZoneInfo(tz_name)

    def today(self) -> date:
        return datetime.now(self.tz).date()


class FixedClock(Clock):
    """Clock frozen at a given date (tests, replays)"""

    def __init__(self, fixed: date, now: Optional[datetime] = None):
        self.fixed = fixed
        self._now = now

    def today(self) -> date:
        return self.fixed

    def now(self) -> datetime:
        if self._now is not None:
            return self._now
        return datetime.combine(self.fixed, datetime.min.time()).replace(hour=12)

    def __repr__(self) -> str:
        return f"<FixedClock {self.fixed.isoformat()}>"
