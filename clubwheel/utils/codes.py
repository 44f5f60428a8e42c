# clubwheel/utils/codes.py
from __future__ import annotations

import re
import secrets
import string
import uuid

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LEN = 6


def generate_pin() -> str:
    return f"{secrets.randbelow(900_000) + 100_000}"


def generate_referral_code() -> str:
    return "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LEN))


def generate_join_token() -> str:
    return uuid.uuid4().hex


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug[:48] or "club"


def is_pin(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{6}", value or ""))
