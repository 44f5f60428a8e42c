from __future__ import annotations

import random
from dataclasses import replace

import pytest

from clubwheel.config import Settings
from clubwheel.database import Database
from clubwheel.database.models import Account, Club, Prize, PrizeCategory
from clubwheel.services.accounts import AccountService
from clubwheel.services.clubs import create_club
from clubwheel.services.notifications import MemoryNotificationSink
from clubwheel.services.prizes import PrizeService
from clubwheel.services.recent_wins import RecentWinsFeed
from clubwheel.services.referral import ReferralDispatcher, ReferralService
from clubwheel.services.selector import PrizeCatalog
from clubwheel.services.spin import SpinService
from clubwheel.utils.dt import FixedClock

CLUB_LAT = 43.238949
CLUB_LON = 76.889709


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
async def session(db):
    async with db.session() as s:
        yield s


@pytest.fixture
def accounts(settings, clock) -> AccountService:
    return AccountService(settings, clock)


@pytest.fixture
def referral_service(settings, clock) -> ReferralService:
    return ReferralService(settings, clock)


@pytest.fixture
async def dispatcher(db, referral_service):
    d = ReferralDispatcher(db, referral_service, base_delay=0.01)
    yield d
    await d.drain()


@pytest.fixture
def sink() -> MemoryNotificationSink:
    return MemoryNotificationSink()


@pytest.fixture
def feed() -> RecentWinsFeed:
    return RecentWinsFeed(10)


@pytest.fixture
def make_spin_service(settings, clock, sink, feed, dispatcher):
    def _make(*, seed: int = 7, referrals: bool = True, **overrides) -> SpinService:
        s = replace(settings, **overrides) if overrides else settings
        return SpinService(
            s,
            clock=clock,
            catalog=PrizeCatalog(random.Random(seed)),
            notifier=sink,
            feed=feed,
            referrals=dispatcher if referrals else None,
        )

    return _make


@pytest.fixture
def spin_service(make_spin_service) -> SpinService:
    return make_spin_service()


@pytest.fixture
def make_player(session, accounts):
    counter = {"n": 0}

    async def _make(*, balance: int | None = None, name: str = "") -> Account:
        counter["n"] += 1
        phone = f"+7701000{counter['n']:04d}"
        account, _ = await accounts.login_or_register(session, phone=phone, name=name)
        if balance is not None and balance != account.balance:
            await accounts.adjust_balance(session, account, amount=balance - account.balance)
        await session.commit()
        return account

    return _make


@pytest.fixture
def make_club(session):
    counter = {"n": 0}

    async def _make(*, geofenced: bool = False, name: str | None = None) -> Club:
        counter["n"] += 1
        club = await create_club(
            session,
            name=name or f"Club {counter['n']}",
            owner_phone=f"+7702000{counter['n']:04d}",
            latitude=CLUB_LAT if geofenced else None,
            longitude=CLUB_LON if geofenced else None,
        )
        await session.commit()
        return club

    return _make


@pytest.fixture
def make_prize(session):
    counter = {"slot": 0}

    async def _make(
        *,
        category: PrizeCategory = PrizeCategory.POINTS,
        value: int = 50,
        drop_chance: float = 100,
        total_quantity: int | None = None,
        slot_index: int | None = None,
        name: str | None = None,
    ) -> Prize:
        slot = counter["slot"] if slot_index is None else slot_index
        counter["slot"] = slot + 1
        prize = await PrizeService.create_prize(
            session,
            name=name or f"Prize {slot}",
            category=category,
            value=value,
            drop_chance=drop_chance,
            slot_index=slot,
            total_quantity=total_quantity,
        )
        await session.commit()
        return prize

    return _make
