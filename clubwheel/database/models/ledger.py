# clubwheel/database/models/ledger.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base
from clubwheel.utils.dt import utcnow


class LedgerCategory(str, enum.Enum):
    REGISTRATION_BONUS = "registration_bonus"
    SPIN_COST = "spin_cost"
    PRIZE_POINTS = "prize_points"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    REFERRAL_BONUS = "referral_bonus"


class LedgerEntry(Base):
    """
    Immutable ledger of balance deltas.
    accounts.balance must always equal the sum of an account's entries.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_account_created", "account_id", "created_at"),
        CheckConstraint("amount != 0", name="amount_nonzero"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), index=True)
    category: Mapped[LedgerCategory] = mapped_column(Enum(LedgerCategory, native_enum=False), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(String(255), default="")

    spin_id: Mapped[int | None] = mapped_column(
        ForeignKey("spins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow)
