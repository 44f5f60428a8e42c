# clubwheel/services/accounts.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.config import Settings
from clubwheel.database.models import Account, AccountRole, LedgerCategory
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.errors import AccountBanned, RoleForbidden, ValidationError
from clubwheel.services.ledger import LedgerService
from clubwheel.utils.dt import Clock
from clubwheel.utils.phone import normalize_phone

log = logging.getLogger(__name__)


class AccountService:
    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        self.settings = settings
        self.clock = clock or Clock()

    async def login_or_register(
        self,
        session: AsyncSession,
        *,
        phone: str,
        name: str | None = None,
        telegram_id: int | None = None,
    ) -> tuple[Account, bool]:
        """
        Returns (account, created). A new account is always a player and
        receives the registration bonus through the ledger.
        """
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValidationError("Phone number is required")

        account = await accounts_repo.get_by_phone(session, normalized)
        if account is not None:
            if telegram_id is not None and account.telegram_id is None:
                account.telegram_id = telegram_id
            if name and not account.name:
                account.name = name.strip()
            await session.flush()
            return account, False

        account = Account(
            phone=normalized,
            name=(name or "").strip(),
            telegram_id=telegram_id,
            role=AccountRole.PLAYER,
            balance=0,
        )
        session.add(account)
        await session.flush()  # account.id becomes available

        bonus = int(self.settings.registration_bonus)
        if bonus > 0:
            await LedgerService.record(
                session,
                account_id=account.id,
                category=LedgerCategory.REGISTRATION_BONUS,
                amount=bonus,
                description="Registration bonus",
                created_at=self.clock.now(),
            )
            account.balance = await accounts_repo.increment_balance(session, account.id, bonus)

        log.info("Account registered: id=%s phone=%s", account.id, normalized)
        return account, True

    async def ensure_can_act(
        self,
        session: AsyncSession,
        account: Account,
        *,
        role: AccountRole | None = None,
    ) -> Account:
        """
        Authorization gate. An expired ban is lifted on the spot.
        """
        if account.is_banned:
            now = self.clock.now()
            if account.ban_until is not None and account.ban_until <= now:
                account.is_banned = False
                account.ban_until = None
                account.ban_reason = ""
                await session.flush()
                log.info("Ban expired and lifted: account=%s", account.id)
            else:
                raise AccountBanned(until=account.ban_until, reason=account.ban_reason or None)

        if role is not None and account.role != role:
            raise RoleForbidden(f"Role {account.role.value} cannot do this")

        return account

    async def ban(
        self,
        session: AsyncSession,
        account: Account,
        *,
        until: datetime | None = None,
        reason: str = "",
    ) -> Account:
        if account.role == AccountRole.ADMIN:
            raise RoleForbidden("Admins cannot be banned")
        account.is_banned = True
        account.ban_until = until
        account.ban_reason = reason.strip()
        await session.flush()
        log.info("Account banned: id=%s until=%s", account.id, until)
        return account

    async def unban(self, session: AsyncSession, account: Account) -> Account:
        account.is_banned = False
        account.ban_until = None
        account.ban_reason = ""
        await session.flush()
        return account

    async def adjust_balance(
        self,
        session: AsyncSession,
        account: Account,
        *,
        amount: int,
        description: str = "Manual adjustment",
    ) -> int:
        """Admin correction, recorded as a manual_adjustment ledger entry."""
        amount = int(amount)
        if amount == 0:
            raise ValidationError("Adjustment amount must be non-zero")

        if amount < 0:
            new_balance = await accounts_repo.debit_balance(session, account.id, -amount)
            if new_balance is None:
                raise ValidationError("Adjustment would make the balance negative")
        else:
            new_balance = await accounts_repo.increment_balance(session, account.id, amount)

        await LedgerService.record(
            session,
            account_id=account.id,
            category=LedgerCategory.MANUAL_ADJUSTMENT,
            amount=amount,
            description=description,
            created_at=self.clock.now(),
        )
        account.balance = new_balance
        return new_balance
