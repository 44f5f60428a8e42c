# clubwheel/services/claims.py
from __future__ import annotations

import math
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.database.models import Account, ClaimStatus, Club, PrizeCategory, PrizeClaim
from clubwheel.errors import ClaimNotFound, ValidationError
from clubwheel.utils.dt import Clock

MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class ClaimPage:
    items: list[PrizeClaim]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class ClaimService:
    """Club-facing handling of won non-points prizes."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()

    async def list_claims(self, session: AsyncSession, *, club_id: int, page: int = 1, limit: int = 20) -> ClaimPage:
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or 20)))

        total = await session.scalar(select(func.count(PrizeClaim.id)).where(PrizeClaim.club_id == club_id))
        res = await session.execute(
            select(PrizeClaim)
            .where(PrizeClaim.club_id == club_id)
            .order_by(PrizeClaim.created_at.desc(), PrizeClaim.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return ClaimPage(items=list(res.scalars().all()), page=page, limit=limit, total=int(total or 0))

    async def list_for_account(self, session: AsyncSession, *, account_id: int) -> list[PrizeClaim]:
        res = await session.execute(
            select(PrizeClaim)
            .where(PrizeClaim.account_id == account_id)
            .order_by(PrizeClaim.created_at.desc(), PrizeClaim.id.desc())
        )
        return list(res.scalars().all())

    async def _club_claim(self, session: AsyncSession, club: Club, claim_id: int) -> PrizeClaim:
        claim = await session.scalar(
            select(PrizeClaim).where(PrizeClaim.id == claim_id, PrizeClaim.club_id == club.id)
        )
        if claim is None:
            raise ClaimNotFound()
        return claim

    async def confirm_claim(
        self,
        session: AsyncSession,
        *,
        club: Club,
        claim_id: int,
        staff: Account,
        notes: str | None = None,
    ) -> PrizeClaim:
        claim = await self._club_claim(session, club, claim_id)
        if claim.status == ClaimStatus.CANCELLED:
            raise ValidationError("Cancelled claims cannot be confirmed")
        claim.status = ClaimStatus.CONFIRMED
        claim.confirmed_by_id = staff.id
        claim.confirmed_at = self.clock.now()
        if notes:
            claim.notes = notes
        await session.flush()
        return claim

    async def manage_club_time(
        self,
        session: AsyncSession,
        *,
        club: Club,
        claim_id: int,
        staff: Account,
        action: str,
    ) -> PrizeClaim:
        """`activate` marks the minutes as handed out, `complete` closes the claim."""
        claim = await self._club_claim(session, club, claim_id)
        if claim.prize.category != PrizeCategory.CLUB_TIME:
            raise ClaimNotFound("Club time claim not found")

        if action == "activate":
            claim.status = ClaimStatus.CONFIRMED
            claim.confirmed_by_id = staff.id
            claim.confirmed_at = self.clock.now()
        elif action == "complete":
            claim.status = ClaimStatus.COMPLETED
        else:
            raise ValidationError(f"Unknown club time action: {action!r}")

        await session.flush()
        return claim
