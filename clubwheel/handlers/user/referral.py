# clubwheel/handlers/user/referral.py
from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.config.settings import Settings
from clubwheel.database.models import Account
from clubwheel.keyboards.main import BTN_REFERRAL, contact_request_kb
from clubwheel.services.referral import ReferralService
from clubwheel.utils.reply import reply_safe

router = Router()


@router.message(Command("ref"))
@router.message(F.text == BTN_REFERRAL)
async def ref_cmd(
    message: Message,
    session: AsyncSession,
    settings: Settings,
    account: Account | None,
    referral_service: ReferralService,
) -> None:
    if account is None:
        await message.answer("Share your phone number first:", reply_markup=contact_request_kb())
        return

    code = await referral_service.ensure_referral_code(session, account)
    link = referral_service.referral_link(account)
    approved = await referral_service.approved_this_month(session, account.id)

    text = (
        "👥 <b>Invite friends</b>\n"
        f"Your code: <code>{code}</code>\n"
    )
    if link:
        text += f"{link}\n"
    text += (
        f"\nWhen a friend makes their first spin you get <b>+{settings.referral_points}</b> points.\n"
        f"This month: {approved}/{settings.referral_max_per_month}"
    )
    await reply_safe(message, text, parse_mode="HTML")
