# clubwheel/services/referral.py
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clubwheel.config import Settings
from clubwheel.database.models import Account, LedgerCategory, Referral, ReferralStatus
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.database.repo import spins as spins_repo
from clubwheel.database.session import Database
from clubwheel.services.ledger import LedgerService
from clubwheel.utils.codes import generate_referral_code
from clubwheel.utils.dt import Clock, month_start

log = logging.getLogger(__name__)

_CODE_RE = re.compile(r"[A-Z0-9]{6}")
_LEGACY_RE = re.compile(r"[0-9a-f]{24}")
CODE_ATTEMPTS = 20


@dataclass(frozen=True, slots=True)
class ReferralPayload:
    kind: str  # "code" | "legacy"
    value: str


def parse_referral_payload(payload: str | None) -> ReferralPayload | None:
    """
    Accepts (case-insensitive):
      REF_AB12CD   -> code
      AB12CD       -> code
      REF_<24 hex> -> legacy account id
    """
    if not payload or not isinstance(payload, str):
        return None
    s = payload.strip()
    prefixed = s.upper().startswith("REF_")
    rest = s[4:] if prefixed else s

    if prefixed and _LEGACY_RE.fullmatch(rest.lower()):
        return ReferralPayload(kind="legacy", value=rest.lower())
    if _CODE_RE.fullmatch(rest.upper()):
        return ReferralPayload(kind="code", value=rest.upper())
    return None


class ReferralService:
    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        self.settings = settings
        self.clock = clock or Clock()

    # -------------------------------------------------
    # Codes / links
    # -------------------------------------------------

    async def ensure_referral_code(self, session: AsyncSession, account: Account) -> str:
        if account.referral_code:
            return account.referral_code
        for _ in range(CODE_ATTEMPTS):
            code = generate_referral_code()
            if not await accounts_repo.referral_code_taken(session, code):
                account.referral_code = code
                await session.flush()
                return code
        raise RuntimeError("Could not allocate a unique referral code")

    def referral_link(self, account: Account) -> str | None:
        if not self.settings.bot_username or not account.referral_code:
            return None
        return f"https://t.me/{self.settings.bot_username}?start=REF_{account.referral_code}"

    async def resolve_payload(self, session: AsyncSession, payload: str | None) -> Account | None:
        parsed = parse_referral_payload(payload)
        if parsed is None:
            return None
        if parsed.kind == "legacy":
            return await accounts_repo.get_by_public_id(session, parsed.value)
        return await accounts_repo.get_by_referral_code(session, parsed.value)

    # -------------------------------------------------
    # Linking
    # -------------------------------------------------

    async def attach_referrer(self, session: AsyncSession, account: Account, payload: str | None) -> bool:
        """
        Links `account` to the referrer named in `payload` and opens a
        pending Referral. The referrer is set at most once; self-referral
        is refused.
        """
        if account.referrer_id is not None:
            return False

        referrer = await self.resolve_payload(session, payload)
        if referrer is None or referrer.id == account.id:
            return False

        account.referrer_id = referrer.id
        await session.flush()

        # SAVEPOINT so a duplicate pair does not roll back the caller
        try:
            async with session.begin_nested():
                session.add(
                    Referral(
                        referrer_id=referrer.id,
                        referred_id=account.id,
                        status=ReferralStatus.PENDING,
                        created_at=self.clock.now(),
                    )
                )
                await session.flush()
        except IntegrityError:
            log.info("Referral pair already exists: referrer=%s referred=%s", referrer.id, account.id)

        log.info("Referrer attached: referrer=%s referred=%s", referrer.id, account.id)
        return True

    # -------------------------------------------------
    # Approval
    # -------------------------------------------------

    async def approved_this_month(self, session: AsyncSession, referrer_id: int) -> int:
        count = await session.scalar(
            select(func.count(Referral.id)).where(
                Referral.referrer_id == referrer_id,
                Referral.status == ReferralStatus.APPROVED,
                Referral.approved_at >= month_start(self.clock.now()),
            )
        )
        return int(count or 0)

    async def try_approve(self, session: AsyncSession, spender_id: int) -> bool:
        """
        Awards the referrer once the spender completes the first paid spin.

        Fires only when the spender's paid-spin count is exactly 1, so a
        second spin never re-triggers it. Over the monthly cap the referral
        stays pending and is not retried.
        """
        spender = await accounts_repo.get_account(session, spender_id)
        if spender is None or spender.referrer_id is None:
            return False

        paid = await spins_repo.count_paid_spins(session, spender_id)
        if paid != 1:
            return False

        referral = await session.scalar(
            select(Referral).where(
                Referral.referrer_id == spender.referrer_id,
                Referral.referred_id == spender_id,
                Referral.status == ReferralStatus.PENDING,
            )
        )
        if referral is None:
            return False

        approved = await self.approved_this_month(session, spender.referrer_id)
        if approved >= self.settings.referral_max_per_month:
            log.info(
                "Referral cap reached: referrer=%s approved=%s cap=%s",
                spender.referrer_id,
                approved,
                self.settings.referral_max_per_month,
            )
            return False

        points = int(self.settings.referral_points)
        now = self.clock.now()

        referral.status = ReferralStatus.APPROVED
        referral.approved_at = now
        referral.points_awarded = points
        await session.flush()

        if points > 0:
            await accounts_repo.increment_balance(session, spender.referrer_id, points)
            await LedgerService.record(
                session,
                account_id=spender.referrer_id,
                category=LedgerCategory.REFERRAL_BONUS,
                amount=points,
                description="Referral bonus (friend's first spin)",
                created_at=now,
            )

        log.info("Referral approved: referrer=%s referred=%s points=%s", spender.referrer_id, spender_id, points)
        return True


class ReferralDispatcher:
    """
    Runs referral approval off the spin request path.

    Each attempt uses its own session; database errors are retried with
    exponential backoff, everything else is logged and dropped.
    """

    def __init__(
        self,
        db: Database,
        service: ReferralService,
        *,
        max_attempts: int = 3,
        base_delay: float = 0.5,
    ) -> None:
        self.db = db
        self.service = service
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, spender_id: int) -> asyncio.Task:
        task = asyncio.create_task(self.run(spender_id), name=f"referral-approve-{spender_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, spender_id: int) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.db.session() as session:
                    approved = await self.service.try_approve(session, spender_id)
                    await session.commit()
                    return approved
            except SQLAlchemyError:
                if attempt >= self.max_attempts:
                    log.exception("Referral approval failed: spender=%s attempts=%s", spender_id, attempt)
                    return False
                delay = self.base_delay * (2 ** (attempt - 1))
                log.warning(
                    "Referral approval error, retrying: spender=%s attempt=%s delay=%.2fs",
                    spender_id,
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)
            except Exception:
                log.exception("Referral approval crashed: spender=%s", spender_id)
                return False
        return False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Waits for in-flight approvals (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
