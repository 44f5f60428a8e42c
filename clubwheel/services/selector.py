# clubwheel/services/selector.py
from __future__ import annotations

import random
from typing import Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Prize
from clubwheel.database.repo import prizes as prizes_repo
from clubwheel.errors import NoPrizesAvailable


class WeightedPrize(Protocol):
    is_active: bool
    drop_chance: float
    slot_index: int
    total_quantity: int | None
    remaining_quantity: int | None


def _in_stock(prize: WeightedPrize) -> bool:
    return prize.total_quantity is None or int(prize.remaining_quantity or 0) > 0


def qualifying_pool(prizes: Sequence[WeightedPrize]) -> list[WeightedPrize]:
    """
    Active prizes ordered by slot. In-stock ones only, unless none are in
    stock: then every active prize stays in the pool so a spin never dead-ends.
    """
    active = sorted((p for p in prizes if p.is_active), key=lambda p: p.slot_index)
    if not active:
        raise NoPrizesAvailable()
    in_stock = [p for p in active if _in_stock(p)]
    return in_stock or active


def select_prize(prizes: Sequence[WeightedPrize], rng: random.Random | None = None) -> WeightedPrize:
    """
    Weighted pick: P(i) = weight_i / sum(weights).

    Draws r in [0, total) and returns the first prize whose cumulative
    weight exceeds r. Total weight <= 0 returns the first prize.
    """
    pool = qualifying_pool(prizes)

    total = sum(float(p.drop_chance or 0) for p in pool)
    if total <= 0:
        return pool[0]

    r = (rng or random).random() * total

    cumulative = 0.0
    for prize in pool:
        cumulative += float(prize.drop_chance or 0)
        if r < cumulative:
            return prize

    # float rounding on the last bucket
    return pool[-1]


class PrizeCatalog:
    """Read side of the prize table used by the wheel."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.SystemRandom()

    async def active(self, session: AsyncSession) -> list[Prize]:
        return await prizes_repo.list_active_ordered(session)

    async def pick(self, session: AsyncSession) -> Prize:
        prizes = await self.active(session)
        return select_prize(prizes, self.rng)  # type: ignore[return-value]
