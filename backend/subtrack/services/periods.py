"""Month-granularity calendar periods used for subscription billing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

PERIOD_PATTERN = re.compile(r"([0-9]{2})-([0-9]{4})")
PERIOD_FORMAT_HINT = "MM-YYYY"


class PeriodError(ValueError):
    """Raised when a period cannot be built from the provided value."""


class InvalidPeriodFormat(PeriodError):
    """The text does not follow the ``MM-YYYY`` shape."""


class InvalidPeriodMonth(PeriodError):
    """The month component is outside ``1..12``."""


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month, ordered by ``(year, month)``.

    Field order matters: the generated comparison methods compare the year
    first and the month second.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidPeriodMonth(f"Invalid month {self.month}, expected 01-12")
        if not 1 <= self.year <= 9999:
            raise InvalidPeriodFormat(f"Invalid year {self.year}, expected 4 digits")

    @classmethod
    def parse(cls, value: str) -> "Period":
        """Build a period from ``MM-YYYY`` text."""

        match = PERIOD_PATTERN.fullmatch(value) if isinstance(value, str) else None
        if match is None:
            raise InvalidPeriodFormat(
                f"Invalid date format {value!r}, expected '{PERIOD_FORMAT_HINT}'"
            )
        month, year = int(match.group(1)), int(match.group(2))
        return cls(year=year, month=month)

    @classmethod
    def from_date(cls, value: date) -> "Period":
        return cls(year=value.year, month=value.month)

    def to_date(self) -> date:
        """Return the first calendar day of the period."""

        return date(self.year, self.month, 1)

    def __str__(self) -> str:
        return f"{self.month:02d}-{self.year:04d}"


def compare(first: Period, second: Period) -> int:
    """Return -1, 0 or 1 when ``first`` is before, equal to or after ``second``."""

    if first < second:
        return -1
    if first > second:
        return 1
    return 0


def clip_lower(period: Period, bound: Period) -> Period:
    return bound if period < bound else period


def clip_upper(period: Period, bound: Period) -> Period:
    return bound if period > bound else period


def inclusive_month_span(start: Period, end: Period) -> int:
    """Count calendar months from ``start`` to ``end``, both included."""

    if end < start:
        raise ValueError(f"Period {end} is before {start}")
    return (end.year - start.year) * 12 + (end.month - start.month) + 1
