# clubwheel/utils/middleware.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from clubwheel.database.repo.accounts import get_by_telegram
from clubwheel.database.session import Database


def _tg_user_id(event: TelegramObject) -> int | None:
    u = getattr(event, "from_user", None)
    if u is None:
        for attr in ("message", "callback_query"):
            inner = getattr(event, attr, None)
            u = getattr(inner, "from_user", None) if inner is not None else None
            if u is not None:
                break
    return u.id if u is not None else None


class DbSessionMiddleware(BaseMiddleware):
    """
    Creates a DB session per update and injects it into handler data as `session`.

    Injects the linked Account (if the Telegram user shared a phone before)
    as `account`. Auto-commits on success and rolls back on error.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        async with self.db.SessionLocal() as session:
            data["session"] = session

            tg_id = _tg_user_id(event)
            data["account"] = await get_by_telegram(session, tg_id) if tg_id is not None else None

            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise
