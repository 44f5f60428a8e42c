# clubwheel/keyboards/main.py
from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

BTN_SPIN = "🎰 Spin"
BTN_BALANCE = "💰 Balance"
BTN_HISTORY = "📜 History"
BTN_REFERRAL = "👥 Invite friends"
BTN_SHARE_PHONE = "📱 Share phone number"
BTN_SHARE_LOCATION = "📍 Share location"


def main_menu_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_SPIN), KeyboardButton(text=BTN_BALANCE)],
            [KeyboardButton(text=BTN_HISTORY), KeyboardButton(text=BTN_REFERRAL)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Choose an action…",
        one_time_keyboard=False,
    )


def contact_request_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=BTN_SHARE_PHONE, request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def location_request_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=BTN_SHARE_LOCATION, request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )
