from .account import Account, AccountRole
from .club import Club
from .prize import MAX_SLOT, MIN_SLOT, Prize, PrizeCategory
from .spin import Spin, SpinStatus
from .prize_claim import ClaimStatus, PrizeClaim
from .ledger import LedgerCategory, LedgerEntry
from .referral import Referral, ReferralStatus

__all__ = [
    "Account",
    "AccountRole",
    "Club",
    "Prize",
    "PrizeCategory",
    "MIN_SLOT",
    "MAX_SLOT",
    "Spin",
    "SpinStatus",
    "PrizeClaim",
    "ClaimStatus",
    "LedgerEntry",
    "LedgerCategory",
    "Referral",
    "ReferralStatus",
]
