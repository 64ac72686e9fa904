"""
Calendar-date helpers.

Every date the service stores or compares is a UTC calendar date. Datetime
inputs (e.g. ``2024-01-05T23:30:00-02:00``) are converted to UTC first and
then truncated, so the same instant always lands on the same day no matter
which timezone the client was in.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

from finance_tracker.core.errors import InvalidRange


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_date(value: Any) -> date:
    """Normalize a date, datetime or ISO string to a UTC calendar date.

    Raises ``ValueError`` for anything that cannot be read as a date.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty date")
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc_date(datetime.fromisoformat(text))
    raise ValueError(f"unsupported date value: {value!r}")


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days; either bound may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def days(self) -> int:
        # ceil((end_of_day(end) - start) / 1 day) for inclusive calendar days
        if not self.is_bounded:
            return 1
        return max(1, (self.end - self.start).days + 1)

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def parse_range(start: Optional[str], end: Optional[str]) -> DateRange:
    """Build a DateRange from raw query values, raising InvalidRange on bad input."""
    try:
        start_day = to_utc_date(start) if start else None
        end_day = to_utc_date(end) if end else None
    except ValueError:
        raise InvalidRange(f"Invalid date range: start_date={start!r}, end_date={end!r}")

    if start_day and end_day and start_day > end_day:
        raise InvalidRange("start_date must not be after end_date")
    return DateRange(start_day, end_day)


UtcDate = Annotated[date, BeforeValidator(to_utc_date)]
