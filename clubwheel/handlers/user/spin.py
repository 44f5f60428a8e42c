# clubwheel/handlers/user/spin.py
from __future__ import annotations

import html
import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account, PrizeCategory
from clubwheel.errors import WheelError
from clubwheel.keyboards.main import BTN_SPIN, contact_request_kb, location_request_kb
from clubwheel.services.clubs import resolve_club
from clubwheel.services.geofence import Location
from clubwheel.services.spin import SpinResult, SpinService
from clubwheel.utils.reply import reply_error, reply_safe

log = logging.getLogger(__name__)
router = Router()


class SpinStates(StatesGroup):
    waiting_location = State()


def _result_text(res: SpinResult) -> str:
    name = html.escape(res.prize.name)
    if res.prize.category == PrizeCategory.POINTS:
        head = f"🎉 You won <b>{name}</b> (+{res.prize.value} points)!"
    elif res.prize.category == PrizeCategory.CLUB_TIME:
        head = f"🎉 You won <b>{name}</b> ({res.prize.value} min of club time)!"
    else:
        head = f"🎉 You won <b>{name}</b>! Show this message at the desk."
    return f"{head}\n💰 Balance: <b>{res.new_balance}</b> points"


async def _spin_and_reply(
    message: Message,
    session: AsyncSession,
    spin_service: SpinService,
    account: Account,
    club_ref: str,
    location: Location | None,
) -> None:
    account_id = account.id
    try:
        res = await spin_service.execute_spin(
            session,
            account=account,
            club_identifier=club_ref,
            location=location,
        )
    except WheelError as e:
        log.info("Spin rejected: account=%s club=%s code=%s", account_id, club_ref, e.code)
        await reply_error(message, e)
        return

    await reply_safe(message, _result_text(res), parse_mode="HTML")


@router.message(Command("spin"))
@router.message(F.text == BTN_SPIN)
async def spin_cmd(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    account: Account | None,
    spin_service: SpinService,
    command: CommandObject | None = None,
) -> None:
    if account is None:
        await message.answer("Share your phone number first:", reply_markup=contact_request_kb())
        return

    club_ref = (command.args or "").strip() if command else ""
    if not club_ref:
        await reply_safe(message, "Send /spin &lt;club PIN or code&gt;", parse_mode="HTML")
        return

    try:
        club = await resolve_club(session, club_ref)
    except WheelError as e:
        await reply_error(message, e)
        return

    if club.has_coordinates and not spin_service.geofence.is_bypassed(account):
        await state.set_state(SpinStates.waiting_location)
        await state.update_data(club_ref=str(club.id))
        await message.answer(
            f"📍 <b>{html.escape(club.name)}</b> checks that you are inside the club.\n"
            "Share your location to spin:",
            reply_markup=location_request_kb(),
            parse_mode="HTML",
        )
        return

    await _spin_and_reply(message, session, spin_service, account, str(club.id), None)


@router.message(SpinStates.waiting_location, F.location)
async def spin_location(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    account: Account | None,
    spin_service: SpinService,
) -> None:
    data = await state.get_data()
    await state.clear()

    club_ref = data.get("club_ref")
    if account is None or not club_ref or message.location is None:
        await reply_safe(message, "Send /spin &lt;club&gt; again.", parse_mode="HTML")
        return

    location = Location(latitude=message.location.latitude, longitude=message.location.longitude)
    await _spin_and_reply(message, session, spin_service, account, club_ref, location)
