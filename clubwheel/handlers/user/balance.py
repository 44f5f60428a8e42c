# clubwheel/handlers/user/balance.py
from __future__ import annotations

import html

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account
from clubwheel.keyboards.main import BTN_BALANCE, BTN_HISTORY, contact_request_kb
from clubwheel.services.ledger import LedgerService
from clubwheel.utils.reply import reply_safe

router = Router()

HISTORY_LIMIT = 10


@router.message(Command("balance"))
@router.message(F.text == BTN_BALANCE)
async def balance_cmd(message: Message, account: Account | None) -> None:
    if account is None:
        await message.answer("Share your phone number first:", reply_markup=contact_request_kb())
        return
    await reply_safe(message, f"💰 Balance: <b>{account.balance}</b> points", parse_mode="HTML")


@router.message(Command("history"))
@router.message(F.text == BTN_HISTORY)
async def history_cmd(message: Message, session: AsyncSession, account: Account | None) -> None:
    if account is None:
        await message.answer("Share your phone number first:", reply_markup=contact_request_kb())
        return

    entries = await LedgerService.history(session, account_id=account.id, limit=HISTORY_LIMIT)
    if not entries:
        await reply_safe(message, "📜 No transactions yet.")
        return

    lines = ["📜 <b>Latest transactions</b>"]
    for e in entries:
        sign = "+" if e.amount > 0 else ""
        lines.append(
            f"• {e.created_at:%d.%m %H:%M} <b>{sign}{e.amount}</b> {html.escape(e.description or e.category.value)}"
        )
    await reply_safe(message, "\n".join(lines), parse_mode="HTML")
