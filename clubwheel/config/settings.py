# clubwheel/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e


def _to_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _int_env(env: dict[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    return _to_int(raw, key) if raw else default


def _parse_int_list(raw: str | None, key_name: str) -> list[int]:
    """
    Parses comma/space/newline separated ints.
    Accepts:
      "951258732"
      "951258732,123"
      "951258732 123"
      "[951258732, 123]"  (brackets ignored)
    """
    if not raw:
        return []

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return []

    parts = [p for p in re.split(r"[,\s]+", cleaned) if p]

    out: list[int] = []
    for p in parts:
        p2 = p.strip().strip("'\"")
        if not p2:
            continue
        out.append(_to_int(p2, key_name))
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # --- storage ---
    database_url: str = "sqlite+aiosqlite:///./clubwheel.db"

    # --- telegram front (only required by the bot runner) ---
    bot_token: Optional[str] = None
    bot_username: Optional[str] = None
    root_admin_ids: tuple[int, ...] = ()

    # --- wheel economy ---
    spin_cost: int = 20
    spin_cooldown_seconds: int = 23
    registration_bonus: int = 15
    recent_wins_capacity: int = 10

    # --- geofence ---
    geofence_radius_m: float = 200.0
    geofence_bypass_phone: Optional[str] = None
    geofence_bypass_enabled: bool = False

    # --- referrals ---
    referral_points: int = 50
    referral_max_per_month: int = 20

    # --- scheduler / time ---
    join_token_rotate_hours: int = 0
    timezone: str = "UTC"

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    def require_bot_token(self) -> str:
        if not self.bot_token:
            raise RuntimeError("Missing required environment variable: BOT_TOKEN")
        return self.bot_token

    @classmethod
    def load(cls) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast on malformed values.
        """
        load_dotenv()
        env = os.environ

        database_url = (env.get("DATABASE_URL") or "sqlite+aiosqlite:///./clubwheel.db").strip()

        bot_token = (env.get("BOT_TOKEN") or "").strip() or None
        bot_username = (env.get("BOT_USERNAME") or "").strip().lstrip("@") or None
        root_admin_ids = tuple(_parse_int_list(env.get("ROOT_ADMIN_IDS"), "ROOT_ADMIN_IDS"))

        radius_raw = (env.get("GEOFENCE_RADIUS_M") or "").strip()
        geofence_radius_m = _to_float(radius_raw, "GEOFENCE_RADIUS_M") if radius_raw else 200.0

        bypass_phone = (env.get("GEOFENCE_BYPASS_PHONE") or "").strip() or None

        timezone = (env.get("TIMEZONE") or "UTC").strip() or "UTC"
        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            database_url=database_url,
            bot_token=bot_token,
            bot_username=bot_username,
            root_admin_ids=root_admin_ids,
            spin_cost=_int_env(env, "SPIN_COST", 20),
            spin_cooldown_seconds=_int_env(env, "SPIN_COOLDOWN_SECONDS", 23),
            registration_bonus=_int_env(env, "REGISTRATION_BONUS", 15),
            recent_wins_capacity=_int_env(env, "RECENT_WINS_CAPACITY", 10),
            geofence_radius_m=geofence_radius_m,
            geofence_bypass_phone=bypass_phone,
            geofence_bypass_enabled=_to_bool(env.get("GEOFENCE_BYPASS_ENABLED")),
            referral_points=_int_env(env, "REFERRAL_POINTS", 50),
            referral_max_per_month=_int_env(env, "REFERRAL_MAX_PER_MONTH", 20),
            join_token_rotate_hours=_int_env(env, "JOIN_TOKEN_ROTATE_HOURS", 0),
            timezone=timezone,
            environment=environment,
        )
