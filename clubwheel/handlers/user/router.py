# clubwheel/handlers/user/router.py
from aiogram import Router

from clubwheel.handlers.user.start import router as start_router
from clubwheel.handlers.user.spin import router as spin_router
from clubwheel.handlers.user.balance import router as balance_router
from clubwheel.handlers.user.referral import router as referral_router

router = Router(name="user")

router.include_router(start_router)
router.include_router(spin_router)
router.include_router(balance_router)
router.include_router(referral_router)
