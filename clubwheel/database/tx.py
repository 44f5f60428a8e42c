# clubwheel/database/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transactional(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Transaction scope for SQLAlchemy 2.x autobegin.

    - If a transaction is already active, use SAVEPOINT (begin_nested);
      the outer owner decides when to commit.
    - Otherwise, start a new transaction that commits on exit.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield session
    else:
        async with session.begin():
            yield session


async def commit_checkpoint(session: AsyncSession) -> None:
    """
    Commits whatever the session holds so far.

    Used where a row must survive even if later steps of the same
    workflow fail (the spin audit record).
    """
    if session.in_transaction():
        await session.commit()
