# clubwheel/services/ledger.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import LedgerCategory, LedgerEntry
from clubwheel.utils.dt import utcnow


class LedgerService:
    """
    Append-only per-account transaction log.

    No update or delete is exposed. Callers change
    accounts.balance in the same transaction as `record`.
    """

    @staticmethod
    async def record(
        session: AsyncSession,
        *,
        account_id: int,
        category: LedgerCategory,
        amount: int,
        description: str = "",
        spin_id: int | None = None,
        created_at: datetime | None = None,
    ) -> LedgerEntry:
        amount = int(amount)
        if amount == 0:
            raise ValueError("ledger entries must carry a non-zero amount")

        entry = LedgerEntry(
            account_id=account_id,
            category=category,
            amount=amount,
            description=description,
            spin_id=spin_id,
            created_at=created_at or utcnow(),
        )
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def history(
        session: AsyncSession,
        *,
        account_id: int,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[LedgerEntry]:
        """Entries for one account, newest first, optionally within [since, until]."""
        q = select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        if since is not None:
            q = q.where(LedgerEntry.created_at >= since)
        if until is not None:
            q = q.where(LedgerEntry.created_at <= until)
        q = q.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        if limit:
            q = q.limit(limit)

        res = await session.execute(q)
        return list(res.scalars().all())

    @staticmethod
    async def balance_from_ledger(session: AsyncSession, *, account_id: int) -> int:
        total = await session.scalar(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
                LedgerEntry.account_id == account_id
            )
        )
        return int(total or 0)
