# clubwheel/services/cooldown.py
from __future__ import annotations

import math
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.repo import spins as spins_repo
from clubwheel.errors import RouletteBusy


class CooldownGate:
    """
    One spin per club per window. The window outlasts the client's spin
    animation plus result reveal so two results never overlap on a shared
    screen.

    Read-then-decide: two requests racing inside the read window can both
    pass. Callers needing a hard guarantee must serialize per club.
    """

    def __init__(self, cooldown_seconds: int = 23) -> None:
        self.cooldown = timedelta(seconds=cooldown_seconds)

    def remaining(self, last_spin_at: datetime | None, now: datetime) -> int:
        if last_spin_at is None:
            return 0
        left = (last_spin_at + self.cooldown - now).total_seconds()
        if left <= 0:
            return 0
        return max(1, math.ceil(left))

    async def check(self, session: AsyncSession, *, club_id: int, now: datetime) -> None:
        last = await spins_repo.latest_for_club(session, club_id)
        left = self.remaining(last.created_at if last else None, now)
        if left > 0:
            raise RouletteBusy(retry_after_seconds=left)
