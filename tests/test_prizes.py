from __future__ import annotations

import pytest

from clubwheel.database.models import PrizeCategory
from clubwheel.errors import PrizeNotFound, ValidationError
from clubwheel.services.prizes import PrizeService


async def _create(session, **overrides):
    kwargs = dict(name="Prize", category="points", drop_chance=10, slot_index=0, value=10)
    kwargs.update(overrides)
    return await PrizeService.create_prize(session, **kwargs)


async def test_create_prize(session):
    prize = await _create(session, category="club_time", value=60, total_quantity=5, slot_index=24)

    assert prize.category == PrizeCategory.CLUB_TIME
    assert prize.total_quantity == 5
    assert prize.remaining_quantity == 5
    assert prize.is_limited
    assert prize.in_stock


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "  "},
        {"category": "jackpot"},
        {"slot_index": -1},
        {"slot_index": 25},
        {"drop_chance": -0.5},
        {"drop_chance": 100.5},
        {"drop_chance": "often"},
        {"total_quantity": -1},
        {"value": -5},
        {"value": "lots"},
    ],
)
async def test_create_prize_validation(session, overrides):
    with pytest.raises(ValidationError):
        await _create(session, **overrides)


async def test_active_slot_must_be_unique(session):
    await _create(session, slot_index=3)
    with pytest.raises(ValidationError):
        await _create(session, slot_index=3)

    parked = await _create(session, slot_index=3, is_active=False)
    assert parked.is_active is False


async def test_reactivation_respects_slot(session):
    active = await _create(session, slot_index=5)
    parked = await _create(session, slot_index=5, is_active=False)

    with pytest.raises(ValidationError):
        await PrizeService.set_active(session, parked.id, True)

    await PrizeService.set_active(session, active.id, False)
    await PrizeService.set_active(session, parked.id, True)
    assert parked.is_active is True


async def test_adjust_fund(session):
    prize = await _create(session, total_quantity=10)

    await PrizeService.adjust_fund(session, prize.id, remaining_quantity=4)
    assert (prize.total_quantity, prize.remaining_quantity) == (10, 4)

    # new total without remaining restocks
    await PrizeService.adjust_fund(session, prize.id, total_quantity=20)
    assert (prize.total_quantity, prize.remaining_quantity) == (20, 20)

    await PrizeService.adjust_fund(session, prize.id, total_quantity=8, remaining_quantity=2)
    assert (prize.total_quantity, prize.remaining_quantity) == (8, 2)

    await PrizeService.adjust_fund(session, prize.id, total_quantity=None)
    assert prize.total_quantity is None
    assert prize.remaining_quantity is None
    assert not prize.is_limited
    assert prize.in_stock


async def test_adjust_fund_rejects_negative(session):
    prize = await _create(session, total_quantity=10)
    with pytest.raises(ValidationError):
        await PrizeService.adjust_fund(session, prize.id, remaining_quantity=-1)


async def test_unknown_prize(session):
    with pytest.raises(PrizeNotFound):
        await PrizeService.get(session, 12345)
