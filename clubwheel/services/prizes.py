# clubwheel/services/prizes.py
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import MAX_SLOT, MIN_SLOT, Prize, PrizeCategory
from clubwheel.database.repo import prizes as prizes_repo
from clubwheel.errors import PrizeNotFound, ValidationError

log = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# distinguishes "not given" from an explicit None (= unlimited)
UNSET: Any = _Unset()


def _validate_quantity(value: int | None, field: str) -> int | None:
    if value is None:
        return None
    try:
        n = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be an integer") from e
    if n < 0:
        raise ValidationError(f"{field} cannot be negative")
    return n


def _validate_weight(drop_chance: float) -> float:
    try:
        w = float(drop_chance)
    except (TypeError, ValueError) as e:
        raise ValidationError("drop_chance must be a number") from e
    if w < 0 or w > 100:
        raise ValidationError("drop_chance must be within 0..100")
    return w


class PrizeService:
    @staticmethod
    async def get(session: AsyncSession, prize_id: int) -> Prize:
        prize = await session.get(Prize, prize_id)
        if prize is None:
            raise PrizeNotFound()
        return prize

    @staticmethod
    async def create_prize(
        session: AsyncSession,
        *,
        name: str,
        category: PrizeCategory | str,
        drop_chance: float,
        slot_index: int,
        value: int = 0,
        description: str | None = None,
        image_ref: str | None = None,
        total_quantity: int | None = None,
        is_active: bool = True,
    ) -> Prize:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Prize name is required")
        try:
            category = PrizeCategory(category)
        except ValueError as e:
            raise ValidationError(f"Unknown prize category: {category!r}") from e

        slot_index = int(slot_index)
        if slot_index < MIN_SLOT or slot_index > MAX_SLOT:
            raise ValidationError(f"slot_index must be within {MIN_SLOT}..{MAX_SLOT}")
        if is_active and await prizes_repo.active_slot_taken(session, slot_index):
            raise ValidationError(f"Slot {slot_index} is already used by an active prize")

        total = _validate_quantity(total_quantity, "total_quantity")

        prize = Prize(
            name=name,
            category=category,
            value=_validate_quantity(value or 0, "value"),
            description=description,
            image_ref=image_ref,
            drop_chance=_validate_weight(drop_chance),
            slot_index=slot_index,
            total_quantity=total,
            remaining_quantity=total,
            is_active=is_active,
        )
        session.add(prize)
        await session.flush()
        log.info("Prize created: id=%s slot=%s category=%s", prize.id, slot_index, category.value)
        return prize

    @staticmethod
    async def set_active(session: AsyncSession, prize_id: int, active: bool) -> Prize:
        prize = await PrizeService.get(session, prize_id)
        if active and not prize.is_active:
            if await prizes_repo.active_slot_taken(session, prize.slot_index, exclude_id=prize.id):
                raise ValidationError(f"Slot {prize.slot_index} is already used by an active prize")
        prize.is_active = active
        await session.flush()
        return prize

    @staticmethod
    async def adjust_fund(
        session: AsyncSession,
        prize_id: int,
        *,
        total_quantity: int | None = UNSET,
        remaining_quantity: int | None = UNSET,
    ) -> Prize:
        """
        Prize-fund adjustment.

        Setting total without remaining resets remaining to the new total.
        None means unlimited.
        """
        prize = await PrizeService.get(session, prize_id)

        if total_quantity is not UNSET:
            prize.total_quantity = _validate_quantity(total_quantity, "total_quantity")
            if remaining_quantity is UNSET:
                prize.remaining_quantity = prize.total_quantity

        if remaining_quantity is not UNSET:
            prize.remaining_quantity = _validate_quantity(remaining_quantity, "remaining_quantity")

        await session.flush()
        log.info(
            "Prize fund adjusted: id=%s total=%s remaining=%s",
            prize.id,
            prize.total_quantity,
            prize.remaining_quantity,
        )
        return prize
