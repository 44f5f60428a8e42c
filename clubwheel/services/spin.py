# clubwheel/services/spin.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.config import Settings
from clubwheel.database.models import (
    Account,
    AccountRole,
    ClaimStatus,
    Club,
    LedgerCategory,
    LedgerEntry,
    Prize,
    PrizeCategory,
    PrizeClaim,
    Spin,
    SpinStatus,
)
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.database.repo import prizes as prizes_repo
from clubwheel.database.tx import commit_checkpoint, transactional
from clubwheel.errors import InsufficientBalance, PrizeExhausted
from clubwheel.services.accounts import AccountService
from clubwheel.services.clubs import resolve_club
from clubwheel.services.cooldown import CooldownGate
from clubwheel.services.geofence import GeofenceGate, Location
from clubwheel.services.ledger import LedgerService
from clubwheel.services.notifications import LoggingNotificationSink, NotificationSink, SpinAnnouncement
from clubwheel.services.recent_wins import RecentWin, RecentWinsFeed
from clubwheel.services.referral import ReferralDispatcher
from clubwheel.services.selector import PrizeCatalog
from clubwheel.utils.dt import Clock
from clubwheel.utils.phone import player_display

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PrizeDetail:
    id: int
    name: str
    description: str | None
    category: PrizeCategory
    value: int
    image_ref: str | None
    slot_index: int

    @classmethod
    def of(cls, prize: Prize) -> "PrizeDetail":
        return cls(
            id=prize.id,
            name=prize.name,
            description=prize.description,
            category=prize.category,
            value=int(prize.value or 0),
            image_ref=prize.image_ref,
            slot_index=prize.slot_index,
        )


@dataclass(frozen=True, slots=True)
class SpinResult:
    spin_id: int
    club_id: int
    prize: PrizeDetail
    cost: int
    new_balance: int
    prize_transaction: LedgerEntry | None = None
    claim_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "spinId": self.spin_id,
            "prizeName": self.prize.name,
            "prizeCategory": self.prize.category.value,
            "prizeValue": self.prize.value,
            "prizeImageRef": self.prize.image_ref,
            "slotIndex": self.prize.slot_index,
            "cost": self.cost,
            "newBalance": self.new_balance,
        }


class SpinService:
    """
    Spin workflow for one player at one club.

    Preconditions (first failure wins, nothing is written before it):
      club resolves and is active -> cooldown -> balance -> geofence.

    After the Spin row is committed nothing is rolled back: a failure in
    debit/payout/inventory leaves the Spin as the audit record.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Clock | None = None,
        catalog: PrizeCatalog | None = None,
        rng: random.Random | None = None,
        notifier: NotificationSink | None = None,
        feed: RecentWinsFeed | None = None,
        referrals: ReferralDispatcher | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock if clock is not None else Clock()
        self.catalog = catalog if catalog is not None else PrizeCatalog(rng)
        self.notifier: NotificationSink = notifier if notifier is not None else LoggingNotificationSink()
        # an empty feed is falsy
        self.feed = feed if feed is not None else RecentWinsFeed(settings.recent_wins_capacity)
        self.referrals = referrals

        self.cost = int(settings.spin_cost)
        self.accounts = AccountService(settings, self.clock)
        self.cooldown = CooldownGate(settings.spin_cooldown_seconds)
        self.geofence = GeofenceGate(settings)

    async def execute_spin(
        self,
        session: AsyncSession,
        *,
        account: Account,
        club_identifier: str | int,
        location: Location | None = None,
    ) -> SpinResult:
        # 1) Preconditions
        await self.accounts.ensure_can_act(session, account, role=AccountRole.PLAYER)
        account_id = account.id

        club = await resolve_club(session, club_identifier)
        now = self.clock.now()

        await self.cooldown.check(session, club_id=club.id, now=now)

        balance = await accounts_repo.current_balance(session, account_id)
        if balance < self.cost:
            raise InsufficientBalance()

        self.geofence.check(club, account, location)

        # 2) Resolve prize
        prize = await self.catalog.pick(session)
        if prize.is_limited and int(prize.remaining_quantity or 0) <= 0:
            raise PrizeExhausted()

        # 3) Durable audit record before any balance mutation
        spin = Spin(
            account_id=account_id,
            club_id=club.id,
            prize_id=prize.id,
            cost=self.cost,
            status=SpinStatus.CONFIRMED,
            created_at=now,
        )
        session.add(spin)
        await session.flush()
        await commit_checkpoint(session)

        log.info("Spin recorded: spin=%s account=%s club=%s prize=%s", spin.id, account_id, club.id, prize.id)

        # 4-6) Debit, payout, inventory
        prize_tx, claim_id, new_balance = await self._settle(session, account=account, club=club, prize=prize, spin=spin)

        # 7) Real-time feed (integration; never fails the spin)
        await self._announce(club, account, prize)

        # 8) Referral side effect, off the request path
        if self.referrals is not None:
            self.referrals.dispatch(account_id)

        return SpinResult(
            spin_id=spin.id,
            club_id=club.id,
            prize=PrizeDetail.of(prize),
            cost=self.cost,
            new_balance=new_balance,
            prize_transaction=prize_tx,
            claim_id=claim_id,
        )

    async def _settle(
        self,
        session: AsyncSession,
        *,
        account: Account,
        club: Club,
        prize: Prize,
        spin: Spin,
    ) -> tuple[LedgerEntry | None, int | None, int]:
        account_id = account.id
        spin_id = spin.id
        now = spin.created_at
        prize_tx: LedgerEntry | None = None
        claim_id: int | None = None

        # refusal is raised outside the block: a rollback expires the caller's account
        async with transactional(session):
            new_balance = await accounts_repo.debit_balance(session, account_id, self.cost)
            if new_balance is not None:
                await LedgerService.record(
                    session,
                    account_id=account_id,
                    category=LedgerCategory.SPIN_COST,
                    amount=-self.cost,
                    description="Wheel spin",
                    spin_id=spin_id,
                    created_at=now,
                )
                new_balance, prize_tx, claim_id = await self._pay_out(
                    session, account_id=account_id, club=club, prize=prize, spin_id=spin_id, now=now, balance=new_balance
                )

        if new_balance is None:
            # balance drained by a concurrent request after the precondition read
            log.warning("Spin debit refused: spin=%s account=%s", spin_id, account_id)
            raise InsufficientBalance()

        account.balance = new_balance
        return prize_tx, claim_id, new_balance

    async def _pay_out(
        self,
        session: AsyncSession,
        *,
        account_id: int,
        club: Club,
        prize: Prize,
        spin_id: int,
        now: datetime,
        balance: int,
    ) -> tuple[int, LedgerEntry | None, int | None]:
        prize_tx: LedgerEntry | None = None
        claim_id: int | None = None

        if prize.category == PrizeCategory.POINTS:
            value = int(prize.value or 0)
            if value > 0:
                balance = await accounts_repo.increment_balance(session, account_id, value)
                prize_tx = await LedgerService.record(
                    session,
                    account_id=account_id,
                    category=LedgerCategory.PRIZE_POINTS,
                    amount=value,
                    description=f"Won: {prize.name}",
                    spin_id=spin_id,
                    created_at=now,
                )
        else:
            # no staff confirmation step: non-points prizes are granted at once
            claim = PrizeClaim(
                account_id=account_id,
                spin_id=spin_id,
                prize_id=prize.id,
                club_id=club.id,
                status=ClaimStatus.COMPLETED,
                confirmed_at=now,
                club_time_minutes=int(prize.value or 0) if prize.category == PrizeCategory.CLUB_TIME else 0,
                created_at=now,
            )
            session.add(claim)
            await session.flush()
            claim_id = claim.id

        if prize.is_limited:
            remaining = await prizes_repo.decrement_remaining(session, prize.id)
            if remaining is None:
                log.warning("Inventory already at zero: prize=%s spin=%s", prize.id, spin_id)

        return balance, prize_tx, claim_id

    async def _announce(self, club: Club, account: Account, prize: Prize) -> None:
        display = player_display(account.name, account.phone)
        snapshot = self.feed.push(RecentWin(prize_name=prize.name, player_display=display, club_id=club.id))
        announcement = SpinAnnouncement(
            club_id=club.id,
            prize_name=prize.name,
            player_display=display,
            recent_wins=snapshot,
        )
        try:
            await self.notifier.publish(club, announcement)
        except Exception:
            log.exception("Spin notification failed: club=%s", club.id)
