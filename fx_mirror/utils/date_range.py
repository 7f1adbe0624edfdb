"""Utility helpers for building feed date windows."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, timedelta

FEED_DATE_FORMAT = "%d.%m.%Y"
HISTORY_WINDOW_DAYS = 90


@dataclass(frozen=True)
class DateRange:
    """Container representing a closed date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("start date must not be after end date")

    @classmethod
    def single(cls, day: date) -> "DateRange":
        """Return a window that starts and ends on ``day``."""
        return cls(start=day, end=day)

    def __str__(self) -> str:
        if self.start == self.end:
            return format_feed_date(self.start)
        return f"{format_feed_date(self.start)} - {format_feed_date(self.end)}"


def format_feed_date(value: date) -> str:
    """Format ``value`` the way the rate feed expects it (``DD.MM.YYYY``)."""

    return value.strftime(FEED_DATE_FORMAT)


def random_historical_date(today: date, rng: random.Random | None = None) -> date:
    """Pick a uniformly random day from ``[today - 90, today - 1]``."""

    generator = rng if rng is not None else random.SystemRandom()
    anchor = today - timedelta(days=HISTORY_WINDOW_DAYS)
    return anchor + timedelta(days=generator.randint(0, HISTORY_WINDOW_DAYS - 1))


__all__ = [
    "DateRange",
    "FEED_DATE_FORMAT",
    "format_feed_date",
    "random_historical_date",
]
