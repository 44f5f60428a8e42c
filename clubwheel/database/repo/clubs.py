# clubwheel/database/repo/clubs.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Club


async def get_by_id(session: AsyncSession, club_id: int) -> Club | None:
    return await session.get(Club, club_id)


async def get_by_slug(session: AsyncSession, slug: str) -> Club | None:
    return await session.scalar(select(Club).where(Club.slug == slug))


async def get_by_join_token(session: AsyncSession, token: str) -> Club | None:
    return await session.scalar(select(Club).where(Club.join_token == token))


async def get_by_pin(session: AsyncSession, pin: str) -> Club | None:
    return await session.scalar(select(Club).where(Club.pin_code == pin))


async def get_by_owner(session: AsyncSession, owner_id: int) -> Club | None:
    return await session.scalar(select(Club).where(Club.owner_id == owner_id))


async def pin_taken(session: AsyncSession, pin: str) -> bool:
    res = await session.execute(select(Club.id).where(Club.pin_code == pin).limit(1))
    return res.scalar_one_or_none() is not None


async def slug_taken(session: AsyncSession, slug: str) -> bool:
    res = await session.execute(select(Club.id).where(Club.slug == slug).limit(1))
    return res.scalar_one_or_none() is not None


async def list_active(session: AsyncSession) -> list[Club]:
    res = await session.execute(select(Club).where(Club.is_active.is_(True)).order_by(Club.id.asc()))
    return list(res.scalars().all())
