# clubwheel/database/models/spin.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base
from clubwheel.utils.dt import utcnow


class SpinStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Spin(Base):
    """
    Immutable record of one resolved wheel spin.
    Written before any balance mutation so the audit trail survives failures.
    """
    __tablename__ = "spins"
    __table_args__ = (
        Index("ix_spins_club_created", "club_id", "created_at"),
        Index("ix_spins_account_cost", "account_id", "cost"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), index=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True)
    prize_id: Mapped[int] = mapped_column(ForeignKey("prizes.id", ondelete="RESTRICT"), index=True)

    cost: Mapped[int] = mapped_column(Integer, default=20)
    status: Mapped[SpinStatus] = mapped_column(
        Enum(SpinStatus, native_enum=False),
        default=SpinStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, index=True)
