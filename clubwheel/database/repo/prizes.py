# clubwheel/database/repo/prizes.py
from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Prize


async def list_active_ordered(session: AsyncSession) -> list[Prize]:
    res = await session.execute(
        select(Prize)
        .where(Prize.is_active.is_(True))
        .order_by(Prize.slot_index.asc(), Prize.id.asc())
    )
    return list(res.scalars().all())


async def active_slot_taken(session: AsyncSession, slot_index: int, *, exclude_id: int | None = None) -> bool:
    q = select(Prize.id).where(Prize.slot_index == slot_index, Prize.is_active.is_(True))
    if exclude_id is not None:
        q = q.where(Prize.id != exclude_id)
    res = await session.execute(q.limit(1))
    return res.scalar_one_or_none() is not None


async def decrement_remaining(session: AsyncSession, prize_id: int) -> int | None:
    """
    Atomic `remaining = remaining - 1` guarded by `remaining > 0`.
    Returns the new remaining count, or None when nothing was left
    (or the prize is unlimited).
    """
    res = await session.execute(
        update(Prize)
        .where(
            Prize.id == prize_id,
            Prize.total_quantity.is_not(None),
            Prize.remaining_quantity > 0,
        )
        .values(remaining_quantity=Prize.remaining_quantity - 1)
        .returning(Prize.remaining_quantity)
    )
    row = res.scalar_one_or_none()
    return int(row) if row is not None else None
