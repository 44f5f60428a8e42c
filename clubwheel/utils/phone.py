# clubwheel/utils/phone.py
from __future__ import annotations

import re

_MASK_FALLBACK = "+7 *** *** **"


def normalize_phone(raw: str) -> str:
    """
    Keeps a leading '+' and digits only.
    "8 (771) 123-37-38" -> "+77711233738"
    """
    digits = re.sub(r"\D", "", raw or "")
    if not digits:
        return ""
    if len(digits) == 11 and digits.startswith("8"):
        digits = "7" + digits[1:]
    return f"+{digits}"


def mask_phone(phone: str | None) -> str:
    """
    "+77711233738" -> "+7 771 *** 3738"
    """
    if not phone or not isinstance(phone, str):
        return _MASK_FALLBACK
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 4:
        return _MASK_FALLBACK
    rest = digits[1:] if digits[0] in "78" else digits
    return f"+7 {rest[:3]} *** {rest[-4:]}"


def player_display(name: str | None, phone: str | None) -> str:
    name = (name or "").strip()
    return name or mask_phone(phone)
