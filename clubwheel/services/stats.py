# clubwheel/services/stats.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.repo import spins as spins_repo
from clubwheel.database.repo.spins import ClubSpinStats
from clubwheel.utils.dt import Clock, day_bounds


@dataclass(frozen=True, slots=True)
class SpinsToday:
    day: date
    spins: int


class StatsService:
    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()

    async def club_stats(self, session: AsyncSession, *, club_id: int) -> ClubSpinStats:
        return await spins_repo.club_stats(session, club_id)

    async def spins_today(self, session: AsyncSession, *, club_id: int) -> SpinsToday:
        start, end = day_bounds(self.clock.now())
        n = await spins_repo.count_between(session, club_id, start, end)
        return SpinsToday(day=start.date(), spins=n)
