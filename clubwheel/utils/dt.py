# clubwheel/utils/dt.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    # naive UTC, matches DateTime(timezone=False) columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


@dataclass(frozen=True, slots=True)
class Clock:
    timezone: str = "UTC"

    def now(self) -> datetime:
        return utcnow()

    def today(self) -> date:
        tz = ZoneInfo(self.timezone)
        return datetime.now(tz=tz).date()


@dataclass(slots=True)
class FixedClock:
    """Clock pinned to a given instant; `advance` moves it forward."""

    current: datetime = field(default_factory=lambda: datetime(2024, 1, 1, 12, 0, 0))

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current
