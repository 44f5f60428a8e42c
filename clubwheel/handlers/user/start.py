# clubwheel/handlers/user/start.py
from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.filters import CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account
from clubwheel.errors import WheelError
from clubwheel.keyboards.main import contact_request_kb
from clubwheel.services.accounts import AccountService
from clubwheel.services.referral import ReferralService
from clubwheel.utils.reply import reply_error, reply_safe

log = logging.getLogger(__name__)
router = Router()

REF_PAYLOAD_KEY = "ref_payload"


@router.message(CommandStart())
async def start_cmd(
    message: Message,
    command: CommandObject,
    state: FSMContext,
    session: AsyncSession,
    account: Account | None,
    referral_service: ReferralService,
) -> None:
    payload = (command.args or "").strip()

    if account is None:
        # remember the invite until the phone is shared
        await state.update_data(**{REF_PAYLOAD_KEY: payload})
        await message.answer(
            "👋 Welcome to the club wheel!\nShare your phone number to sign in:",
            reply_markup=contact_request_kb(),
        )
        return

    if payload:
        await referral_service.attach_referrer(session, account, payload)

    await reply_safe(
        message,
        f"👋 Welcome back!\n💰 Balance: <b>{account.balance}</b> points",
        parse_mode="HTML",
    )


@router.message(F.contact)
async def contact_shared(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    account_service: AccountService,
    referral_service: ReferralService,
) -> None:
    contact = message.contact
    if contact is None or message.from_user is None:
        return

    # only the sender's own contact signs them in
    if contact.user_id != message.from_user.id:
        await message.answer("Please share your own phone number.", reply_markup=contact_request_kb())
        return

    try:
        account, created = await account_service.login_or_register(
            session,
            phone=contact.phone_number,
            name=contact.first_name,
            telegram_id=message.from_user.id,
        )
    except WheelError as e:
        await reply_error(message, e)
        return

    data = await state.get_data()
    payload = data.get(REF_PAYLOAD_KEY) or ""
    if created and payload:
        await referral_service.attach_referrer(session, account, payload)
    await state.update_data(**{REF_PAYLOAD_KEY: None})

    greeting = "🎉 You are registered!" if created else "✅ Signed in."
    await reply_safe(
        message,
        f"{greeting}\n💰 Balance: <b>{account.balance}</b> points\n\n"
        "Scan your club's QR code or send /spin &lt;PIN&gt; to play.",
        parse_mode="HTML",
    )
