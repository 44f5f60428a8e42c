# clubwheel/utils/reply.py
from __future__ import annotations

import html

from aiogram.enums import ChatType
from aiogram.types import Message

from clubwheel.errors import WheelError
from clubwheel.keyboards.main import main_menu_kb


async def reply_safe(message: Message, text: str, **kwargs) -> None:
    """
    HTML reply; the main menu keyboard is attached in private chats only.
    """
    kwargs.setdefault("parse_mode", "HTML")
    if message.chat.type == ChatType.PRIVATE:
        kwargs.setdefault("reply_markup", main_menu_kb())
    else:
        kwargs.setdefault("reply_markup", None)

    await message.answer(text, **kwargs)


async def reply_error(message: Message, err: WheelError) -> None:
    await reply_safe(message, f"⚠️ {html.escape(err.message)}")
