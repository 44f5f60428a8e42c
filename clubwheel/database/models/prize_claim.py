# clubwheel/database/models/prize_claim.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubwheel.database.base import Base
from clubwheel.database.models.prize import Prize
from clubwheel.utils.dt import utcnow


class ClaimStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PrizeClaim(Base):
    __tablename__ = "prize_claims"

    id: Mapped[int] = mapped_column(primary_key=True)

    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), index=True)
    spin_id: Mapped[int] = mapped_column(ForeignKey("spins.id", ondelete="CASCADE"), unique=True)
    prize_id: Mapped[int] = mapped_column(ForeignKey("prizes.id", ondelete="RESTRICT"), index=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True)

    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus, native_enum=False),
        default=ClaimStatus.PENDING,
        index=True,
    )
    club_time_minutes: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    confirmed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, index=True)

    prize: Mapped[Prize] = relationship(lazy="joined")
