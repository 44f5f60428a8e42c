from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from clubwheel.errors import RouletteBusy
from clubwheel.services.cooldown import CooldownGate


def test_remaining_seconds_rounds_up():
    gate = CooldownGate(23)
    last = datetime(2024, 1, 1, 12, 0, 0)
    assert gate.remaining(None, last) == 0
    assert gate.remaining(last, last) == 23
    assert gate.remaining(last, last + timedelta(seconds=22, milliseconds=500)) == 1
    assert gate.remaining(last, last + timedelta(seconds=23)) == 0
    assert gate.remaining(last, last + timedelta(minutes=5)) == 0


async def test_second_spin_within_window_is_busy(session, make_player, make_club, make_prize, spin_service, clock):
    club = await make_club()
    await make_prize()
    first = await make_player(balance=100)
    second = await make_player(balance=100)

    await spin_service.execute_spin(session, account=first, club_identifier=club.id)

    clock.advance(seconds=10)
    with pytest.raises(RouletteBusy) as exc:
        await spin_service.execute_spin(session, account=second, club_identifier=club.id)
    assert exc.value.retry_after_seconds == 13
    assert exc.value.to_payload()["retryAfterSeconds"] == 13

    clock.advance(seconds=12.9)
    with pytest.raises(RouletteBusy):
        await spin_service.execute_spin(session, account=second, club_identifier=club.id)

    clock.advance(seconds=0.1)
    res = await spin_service.execute_spin(session, account=second, club_identifier=club.id)
    assert res.club_id == club.id


async def test_cooldown_is_club_scoped(session, make_player, make_club, make_prize, spin_service):
    club_a = await make_club()
    club_b = await make_club()
    await make_prize()
    player = await make_player(balance=100)

    await spin_service.execute_spin(session, account=player, club_identifier=club_a.id)
    res = await spin_service.execute_spin(session, account=player, club_identifier=club_b.id)
    assert res.club_id == club_b.id
