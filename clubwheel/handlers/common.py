# clubwheel/handlers/common.py
from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

router = Router(name="common")


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "📌 Available commands:\n"
        "/start - sign in with your phone\n"
        "/spin &lt;club&gt; - spin the wheel (club link code or 6-digit PIN)\n"
        "/balance - your points\n"
        "/history - latest transactions\n"
        "/ref - your invite link\n"
        "/help - this help",
        parse_mode="HTML",
    )
