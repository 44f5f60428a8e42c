import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from clubwheel.config import Settings
from clubwheel.database import Database
from clubwheel.handlers import router as handlers_router
from clubwheel.scheduler import setup_scheduler
from clubwheel.services.accounts import AccountService
from clubwheel.services.notifications import (
    FanoutNotificationSink,
    LoggingNotificationSink,
    TelegramNotificationSink,
)
from clubwheel.services.recent_wins import RecentWinsFeed
from clubwheel.services.referral import ReferralDispatcher, ReferralService
from clubwheel.services.spin import SpinService
from clubwheel.utils.dt import Clock
from clubwheel.utils.middleware import DbSessionMiddleware


def setup_logging(is_dev: bool) -> None:
    """
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy logs: WARNING+ (no query/pool spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "aiosqlite",
        "asyncpg",
        "apscheduler",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("clubwheel")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    bot = Bot(
        token=settings.require_bot_token(),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    clock = Clock(timezone=settings.timezone)
    referral_service = ReferralService(settings, clock)
    referrals = ReferralDispatcher(db, referral_service)

    # one feed per process, shared by every spin
    feed = RecentWinsFeed(settings.recent_wins_capacity)
    notifier = FanoutNotificationSink(LoggingNotificationSink(), TelegramNotificationSink(bot))

    spin_service = SpinService(
        settings,
        clock=clock,
        notifier=notifier,
        feed=feed,
        referrals=referrals,
    )

    dp = Dispatcher()

    dp.workflow_data["settings"] = settings
    dp.workflow_data["db"] = db
    dp.workflow_data["account_service"] = AccountService(settings, clock)
    dp.workflow_data["referral_service"] = referral_service
    dp.workflow_data["spin_service"] = spin_service

    # DB session per update
    dp.update.middleware(DbSessionMiddleware(db))

    dp.include_router(handlers_router)

    scheduler = setup_scheduler(db=db, settings=settings)
    log.info("Scheduler started")

    try:
        await dp.start_polling(bot)
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Bot crashed")
        raise
    finally:
        try:
            scheduler.shutdown(wait=False)
        except Exception:
            log.exception("Failed to shutdown scheduler")

        # let in-flight referral approvals finish
        await referrals.drain()

        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")

        try:
            await bot.session.close()
        except Exception:
            log.exception("Failed to close bot session")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
