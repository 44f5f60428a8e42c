# clubwheel/scheduler/jobs.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from clubwheel.config.settings import Settings
from clubwheel.database.repo.clubs import list_active
from clubwheel.database.session import Database
from clubwheel.services.clubs import ensure_pin, rotate_join_token

log = logging.getLogger(__name__)


# -------------------------------------------------
# Join token rotation
# -------------------------------------------------

async def rotate_join_tokens(db: Database) -> int:
    """
    Issues a fresh join token to every active club so printed/screenshotted
    QR links stop working after one rotation period. Also backfills missing
    PINs while it is there.
    """
    async with db.session() as session:
        clubs = await list_active(session)
        for club in clubs:
            await rotate_join_token(session, club)
            await ensure_pin(session, club)
        await session.commit()

    log.info("Join tokens rotated: clubs=%s", len(clubs))
    return len(clubs)


# -------------------------------------------------
# Scheduler setup
# -------------------------------------------------

def build_scheduler(db: Database, settings: Settings) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    if settings.join_token_rotate_hours > 0:
        scheduler.add_job(
            rotate_join_tokens,
            trigger=IntervalTrigger(hours=settings.join_token_rotate_hours, timezone="UTC"),
            kwargs={"db": db},
            id="rotate_join_tokens",
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=300,
        )
    else:
        log.info("Join token rotation disabled (JOIN_TOKEN_ROTATE_HOURS=0)")

    return scheduler
