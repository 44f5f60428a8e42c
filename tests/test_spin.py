from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest
from aiogram.enums import ChatType
from sqlalchemy import func, select

from clubwheel.database.models import (
    ClaimStatus,
    LedgerCategory,
    LedgerEntry,
    PrizeCategory,
    PrizeClaim,
    Spin,
)
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.database.repo import prizes as prizes_repo
from clubwheel.errors import (
    AccountBanned,
    ClubInactive,
    ClubNotFound,
    InsufficientBalance,
    MissingLocation,
    PrizeExhausted,
    RoleForbidden,
    RouletteBusy,
    TooFarFromClub,
)
from clubwheel.handlers.user.spin import _spin_and_reply
from clubwheel.services.geofence import Location
from clubwheel.services.ledger import LedgerService
from clubwheel.services.recent_wins import RecentWinsFeed
from clubwheel.services.selector import PrizeCatalog
from clubwheel.services.spin import SpinService


async def _count(session, model, *where) -> int:
    return int(await session.scalar(select(func.count(model.id)).where(*where)) or 0)


async def test_points_prize_debits_then_credits(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    await make_prize(category=PrizeCategory.POINTS, value=50, drop_chance=100)
    player = await make_player(balance=25)

    res = await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    assert res.cost == 20
    assert res.new_balance == 25 - 20 + 50
    assert await accounts_repo.current_balance(session, player.id) == 55
    assert res.claim_id is None
    assert res.prize_transaction is not None
    assert res.prize_transaction.amount == 50

    entries = (
        await session.execute(
            select(LedgerEntry).where(LedgerEntry.spin_id == res.spin_id).order_by(LedgerEntry.id)
        )
    ).scalars().all()
    assert [(e.category, e.amount) for e in entries] == [
        (LedgerCategory.SPIN_COST, -20),
        (LedgerCategory.PRIZE_POINTS, 50),
    ]
    assert await _count(session, Spin, Spin.account_id == player.id) == 1
    assert await _count(session, PrizeClaim, PrizeClaim.account_id == player.id) == 0


async def test_fresh_account_cannot_cover_default_cost(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    await make_prize()
    player = await make_player()
    assert player.balance == 15

    with pytest.raises(InsufficientBalance):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)


async def test_insufficient_balance_leaves_no_trace(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=10)

    with pytest.raises(InsufficientBalance) as exc:
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    assert exc.value.to_payload()["code"] == "insufficient_balance"
    assert await _count(session, Spin) == 0
    assert await accounts_repo.current_balance(session, player.id) == 10


@pytest.mark.parametrize(
    "category, value, minutes",
    [
        (PrizeCategory.CLUB_TIME, 60, 60),
        (PrizeCategory.PHYSICAL, 1, 0),
        (PrizeCategory.OTHER, 0, 0),
    ],
)
async def test_non_points_prize_creates_completed_claim(
    session, make_player, make_club, make_prize, spin_service, category, value, minutes
):
    club = await make_club()
    prize = await make_prize(category=category, value=value)
    player = await make_player(balance=40)

    res = await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    assert res.prize_transaction is None
    assert res.new_balance == 20
    claim = await session.get(PrizeClaim, res.claim_id)
    assert claim is not None
    assert claim.status == ClaimStatus.COMPLETED
    assert claim.spin_id == res.spin_id
    assert claim.prize_id == prize.id
    assert claim.club_id == club.id
    assert claim.club_time_minutes == minutes

    entries = await LedgerService.history(session, account_id=player.id)
    assert [e.category for e in entries if e.spin_id == res.spin_id] == [LedgerCategory.SPIN_COST]


async def test_limited_prize_decrements_inventory(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    prize = await make_prize(total_quantity=3)
    player = await make_player(balance=100)

    await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    await session.refresh(prize)
    assert prize.total_quantity == 3
    assert prize.remaining_quantity == 2


async def test_exhausted_prize_is_skipped_while_others_remain(
    session, make_player, make_club, make_prize, spin_service, clock
):
    club = await make_club()
    limited = await make_prize(total_quantity=1, drop_chance=100)
    fallback = await make_prize(drop_chance=0)
    player = await make_player(balance=100)

    first = await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    assert first.prize.id == limited.id

    clock.advance(seconds=30)
    second = await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    assert second.prize.id == fallback.id


async def test_all_exhausted_raises_prize_exhausted(session, make_player, make_club, make_prize, spin_service, clock):
    club = await make_club()
    await make_prize(total_quantity=1)
    player = await make_player(balance=100)

    await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    clock.advance(seconds=30)

    with pytest.raises(PrizeExhausted):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    assert await _count(session, Spin) == 1
    assert await accounts_repo.current_balance(session, player.id) == 100 - 20 + 50


async def test_inventory_never_goes_below_zero(session, make_prize):
    prize = await make_prize(total_quantity=1)

    assert await prizes_repo.decrement_remaining(session, prize.id) == 0
    assert await prizes_repo.decrement_remaining(session, prize.id) is None
    await session.commit()

    await session.refresh(prize)
    assert prize.remaining_quantity == 0


async def test_unlimited_prize_has_no_inventory(session, make_prize):
    prize = await make_prize()
    assert await prizes_repo.decrement_remaining(session, prize.id) is None


async def test_club_can_be_referenced_by_slug_and_pin(session, make_player, make_club, make_prize, spin_service, clock):
    club = await make_club(name="Cyber Arena")
    await make_prize()
    player = await make_player(balance=100)

    res = await spin_service.execute_spin(session, account=player, club_identifier=club.slug)
    assert res.club_id == club.id

    clock.advance(seconds=30)
    res = await spin_service.execute_spin(session, account=player, club_identifier=club.pin_code)
    assert res.club_id == club.id


async def test_unknown_club(session, make_player, make_prize, spin_service):
    await make_prize()
    player = await make_player(balance=100)

    with pytest.raises(ClubNotFound):
        await spin_service.execute_spin(session, account=player, club_identifier="no-such-club")


async def test_inactive_club(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    club.is_active = False
    await session.commit()
    await make_prize()
    player = await make_player(balance=100)

    with pytest.raises(ClubInactive):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)


async def test_geofenced_club_requires_location(session, make_player, make_club, make_prize, spin_service):
    club = await make_club(geofenced=True)
    await make_prize()
    player = await make_player(balance=100)

    with pytest.raises(MissingLocation):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    far = Location(latitude=club.latitude + 0.01, longitude=club.longitude)  # ~1.1 km north
    with pytest.raises(TooFarFromClub):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id, location=far)

    assert await _count(session, Spin) == 0
    assert await accounts_repo.current_balance(session, player.id) == 100

    near = Location(latitude=club.latitude, longitude=club.longitude)
    res = await spin_service.execute_spin(session, account=player, club_identifier=club.id, location=near)
    assert res.club_id == club.id


async def test_cooldown_checked_before_balance(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    await make_prize()
    rich = await make_player(balance=100)
    poor = await make_player(balance=5)

    await spin_service.execute_spin(session, account=rich, club_identifier=club.id)

    with pytest.raises(RouletteBusy):
        await spin_service.execute_spin(session, account=poor, club_identifier=club.id)


async def test_banned_player_cannot_spin(session, make_player, make_club, make_prize, spin_service, accounts):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=100)
    await accounts.ban(session, player, reason="abuse")
    await session.commit()

    with pytest.raises(AccountBanned):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    assert await _count(session, Spin) == 0


async def test_expired_ban_is_lifted_on_spin(session, make_player, make_club, make_prize, spin_service, accounts, clock):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=100)
    await accounts.ban(session, player, until=clock.now() - timedelta(minutes=1))
    await session.commit()

    res = await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    assert res.club_id == club.id
    assert player.is_banned is False


async def test_club_account_cannot_spin(session, make_club, make_prize, spin_service):
    club = await make_club()
    await make_prize()
    owner = await accounts_repo.get_account(session, club.owner_id)

    with pytest.raises(RoleForbidden):
        await spin_service.execute_spin(session, account=owner, club_identifier=club.id)


async def test_spin_row_survives_failed_settlement(
    session, make_player, make_club, make_prize, spin_service, monkeypatch
):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=10)

    async def stale_balance(_session, _account_id):
        return 100

    # precondition sees a stale balance, the guarded debit refuses
    monkeypatch.setattr(accounts_repo, "current_balance", stale_balance)

    with pytest.raises(InsufficientBalance):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    monkeypatch.undo()
    # the caller's account stays loaded after the refusal
    assert player.id is not None
    assert player.phone.startswith("+7701")

    assert await _count(session, Spin, Spin.account_id == player.id) == 1
    spin_id = await session.scalar(select(Spin.id).where(Spin.account_id == player.id))
    assert await _count(session, LedgerEntry, LedgerEntry.spin_id == spin_id) == 0
    assert await accounts_repo.current_balance(session, player.id) == 10


async def test_refused_debit_is_reported_to_player(
    session, make_player, make_club, make_prize, spin_service, monkeypatch
):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=10)
    answers: list[str] = []

    async def answer(text, **_kwargs):
        answers.append(text)

    message = SimpleNamespace(chat=SimpleNamespace(type=ChatType.PRIVATE), answer=answer)

    async def stale_balance(_session, _account_id):
        return 100

    monkeypatch.setattr(accounts_repo, "current_balance", stale_balance)

    await _spin_and_reply(message, session, spin_service, player, str(club.id), None)

    assert len(answers) == 1
    assert answers[0].startswith("⚠️")
    assert "not enough" in answers[0].lower()


def test_injected_collaborators_are_kept(settings, clock, sink):
    shared = RecentWinsFeed(settings.recent_wins_capacity)
    catalog = PrizeCatalog()

    svc = SpinService(settings, clock=clock, catalog=catalog, notifier=sink, feed=shared)

    assert len(shared) == 0
    assert svc.feed is shared
    assert svc.catalog is catalog
    assert svc.notifier is sink
    assert svc.clock is clock


async def test_result_is_announced_and_fed(session, make_player, make_club, make_prize, spin_service, sink, feed):
    club = await make_club()
    await make_prize(name="Energy drink", category=PrizeCategory.PHYSICAL, value=1)
    player = await make_player(balance=100, name="Aida")

    await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    assert len(sink.published) == 1
    club_id, announcement = sink.published[0]
    assert club_id == club.id
    payload = announcement.to_payload()
    assert payload["prizeName"] == "Energy drink"
    assert payload["playerDisplay"] == "Aida"
    assert [w["prizeName"] for w in payload["recentWinsSnapshot"]] == ["Energy drink"]
    assert len(feed) == 1


async def test_anonymous_player_is_masked(session, make_player, make_club, make_prize, spin_service, sink):
    club = await make_club()
    await make_prize()
    player = await make_player(balance=100)

    await spin_service.execute_spin(session, account=player, club_identifier=club.id)

    _, announcement = sink.published[0]
    assert announcement.player_display == "+7 701 *** " + player.phone[-4:]


async def test_failing_notifier_does_not_fail_spin(session, make_player, make_club, make_prize, make_spin_service, feed):
    class Broken:
        async def publish(self, club, announcement):
            raise RuntimeError("socket closed")

    service = make_spin_service()
    service.notifier = Broken()

    club = await make_club()
    await make_prize()
    player = await make_player(balance=100)

    res = await service.execute_spin(session, account=player, club_identifier=club.id)
    assert res.new_balance == 130
    assert len(feed) == 1


async def test_balance_matches_ledger_after_spins(session, make_player, make_club, make_prize, spin_service, clock):
    club = await make_club()
    await make_prize(value=5, drop_chance=50)
    await make_prize(category=PrizeCategory.CLUB_TIME, value=30, drop_chance=50)
    player = await make_player(balance=200)

    for _ in range(5):
        await spin_service.execute_spin(session, account=player, club_identifier=club.id)
        clock.advance(seconds=30)

    balance = await accounts_repo.current_balance(session, player.id)
    assert balance == await LedgerService.balance_from_ledger(session, account_id=player.id)
    assert balance >= 0


async def test_result_payload(session, make_player, make_club, make_prize, spin_service):
    club = await make_club()
    prize = await make_prize(name="50 points", value=50, slot_index=4)
    player = await make_player(balance=20)

    res = await spin_service.execute_spin(session, account=player, club_identifier=club.id)
    payload = res.to_payload()

    assert payload == {
        "spinId": res.spin_id,
        "prizeName": "50 points",
        "prizeCategory": "points",
        "prizeValue": 50,
        "prizeImageRef": None,
        "slotIndex": prize.slot_index,
        "cost": 20,
        "newBalance": 50,
    }
