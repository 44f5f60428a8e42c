# clubwheel/database/repo/spins.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Spin


@dataclass(frozen=True, slots=True)
class ClubSpinStats:
    total_players: int
    total_spins: int
    total_spent: int


async def latest_for_club(session: AsyncSession, club_id: int) -> Spin | None:
    return await session.scalar(
        select(Spin)
        .where(Spin.club_id == club_id)
        .order_by(Spin.created_at.desc(), Spin.id.desc())
        .limit(1)
    )


async def count_paid_spins(session: AsyncSession, account_id: int) -> int:
    count = await session.scalar(
        select(func.count(Spin.id)).where(
            Spin.account_id == account_id,
            Spin.cost > 0,
        )
    )
    return int(count or 0)


async def club_stats(session: AsyncSession, club_id: int) -> ClubSpinStats:
    res = await session.execute(
        select(
            func.count(func.distinct(Spin.account_id)),
            func.count(Spin.id),
            func.coalesce(func.sum(Spin.cost), 0),
        ).where(Spin.club_id == club_id)
    )
    players, spins, spent = res.one()
    return ClubSpinStats(
        total_players=int(players or 0),
        total_spins=int(spins or 0),
        total_spent=int(spent or 0),
    )


async def count_between(session: AsyncSession, club_id: int, start: datetime, end: datetime) -> int:
    count = await session.scalar(
        select(func.count(Spin.id)).where(
            Spin.club_id == club_id,
            Spin.created_at >= start,
            Spin.created_at < end,
        )
    )
    return int(count or 0)
