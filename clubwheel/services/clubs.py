# clubwheel/services/clubs.py
from __future__ import annotations

import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account, AccountRole, Club
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.database.repo import clubs as clubs_repo
from clubwheel.errors import ClubInactive, ClubNotFound, ValidationError
from clubwheel.utils.codes import generate_join_token, generate_pin, is_pin, slugify
from clubwheel.utils.geo import coerce_coordinate
from clubwheel.utils.phone import normalize_phone

log = logging.getLogger(__name__)

PIN_ATTEMPTS = 20


async def resolve_club(session: AsyncSession, identifier: str | int | None) -> Club:
    """
    Resolves a club reference in preference order:
    database id -> slug -> join token -> 6-digit PIN.

    Raises ClubNotFound / ClubInactive.
    """
    if identifier is None or str(identifier).strip() == "":
        raise ClubNotFound("Club identifier is required")

    raw = str(identifier).strip()
    club: Club | None = None

    # ASCII digits within the 64-bit id range; str.isdigit also accepts "²"
    if re.fullmatch(r"[0-9]{1,18}", raw):
        club = await clubs_repo.get_by_id(session, int(raw))
    if club is None:
        club = await clubs_repo.get_by_slug(session, raw)
    if club is None:
        club = await clubs_repo.get_by_join_token(session, raw)
    if club is None and is_pin(raw):
        club = await clubs_repo.get_by_pin(session, raw)

    if club is None:
        raise ClubNotFound()
    if not club.is_active:
        raise ClubInactive()
    return club


async def _unique_pin(session: AsyncSession) -> str | None:
    for _ in range(PIN_ATTEMPTS):
        pin = generate_pin()
        if not await clubs_repo.pin_taken(session, pin):
            return pin
    return None


async def _unique_slug(session: AsyncSession, name: str) -> str:
    base = slugify(name)
    slug = base
    n = 2
    while await clubs_repo.slug_taken(session, slug):
        slug = f"{base}-{n}"
        n += 1
    return slug


async def ensure_pin(session: AsyncSession, club: Club) -> Club:
    """Legacy clubs get their PIN on first access."""
    if club.pin_code:
        return club
    pin = await _unique_pin(session)
    if pin is not None:
        club.pin_code = pin
        await session.flush()
        log.info("PIN backfilled: club=%s", club.id)
    else:
        log.warning("Could not allocate a free PIN: club=%s", club.id)
    return club


async def rotate_join_token(session: AsyncSession, club: Club) -> str:
    club.join_token = generate_join_token()
    await session.flush()
    return club.join_token


async def create_club(
    session: AsyncSession,
    *,
    name: str,
    owner_phone: str,
    latitude=None,
    longitude=None,
    address: str | None = None,
    city: str = "",
    broadcast_chat_id: int | None = None,
) -> Club:
    """
    Admin action. The owner account is created with the `club` role when
    missing; an owner can hold only one club.
    """
    name = (name or "").strip()
    phone = normalize_phone(owner_phone)
    if not name or not phone:
        raise ValidationError("Club name and owner phone are required")

    lat = coerce_coordinate(latitude, limit=90.0)
    lon = coerce_coordinate(longitude, limit=180.0)
    if (latitude is not None and lat is None) or (longitude is not None and lon is None):
        raise ValidationError("Club coordinates are invalid")
    if (lat is None) != (lon is None):
        raise ValidationError("Both latitude and longitude are required")

    owner = await accounts_repo.get_by_phone(session, phone)
    if owner is None:
        owner = Account(phone=phone, role=AccountRole.CLUB, balance=0)
        session.add(owner)
        await session.flush()
    elif owner.role != AccountRole.CLUB:
        raise ValidationError("This phone already belongs to an account with another role")

    if await clubs_repo.get_by_owner(session, owner.id) is not None:
        raise ValidationError("This owner already has a club")

    club = Club(
        name=name,
        slug=await _unique_slug(session, name),
        join_token=generate_join_token(),
        pin_code=await _unique_pin(session),
        latitude=lat,
        longitude=lon,
        address=address,
        city=city or "",
        owner_id=owner.id,
        broadcast_chat_id=broadcast_chat_id,
    )
    session.add(club)
    await session.flush()

    owner.club_id = club.id
    await session.flush()

    log.info("Club created: id=%s slug=%s owner=%s", club.id, club.slug, owner.id)
    return club
