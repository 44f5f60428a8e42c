# clubwheel/database/repo/accounts.py
from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account


async def get_account(session: AsyncSession, account_id: int) -> Account | None:
    return await session.get(Account, account_id)


async def get_by_phone(session: AsyncSession, phone: str) -> Account | None:
    return await session.scalar(select(Account).where(Account.phone == phone))


async def get_by_telegram(session: AsyncSession, telegram_id: int) -> Account | None:
    return await session.scalar(select(Account).where(Account.telegram_id == telegram_id))


async def get_by_public_id(session: AsyncSession, public_id: str) -> Account | None:
    return await session.scalar(select(Account).where(Account.public_id == public_id.lower()))


async def get_by_referral_code(session: AsyncSession, code: str) -> Account | None:
    return await session.scalar(select(Account).where(Account.referral_code == code.upper()))


async def referral_code_taken(session: AsyncSession, code: str) -> bool:
    res = await session.execute(select(Account.id).where(Account.referral_code == code).limit(1))
    return res.scalar_one_or_none() is not None


async def increment_balance(session: AsyncSession, account_id: int, amount: int) -> int:
    """
    Single atomic `balance = balance + amount`; returns the new balance.
    Safe under concurrent writers (no read-modify-write in Python).
    """
    res = await session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(balance=Account.balance + amount)
        .returning(Account.balance)
    )
    return int(res.scalar_one())


async def debit_balance(session: AsyncSession, account_id: int, amount: int) -> int | None:
    """
    Atomic conditional debit. Returns the new balance, or None when the
    account cannot cover `amount` at write time.
    """
    res = await session.execute(
        update(Account)
        .where(Account.id == account_id, Account.balance >= amount)
        .values(balance=Account.balance - amount)
        .returning(Account.balance)
    )
    row = res.scalar_one_or_none()
    return int(row) if row is not None else None


async def current_balance(session: AsyncSession, account_id: int) -> int:
    res = await session.execute(select(Account.balance).where(Account.id == account_id))
    return int(res.scalar_one())
