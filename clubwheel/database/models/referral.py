# clubwheel/database/models/referral.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base
from clubwheel.utils.dt import utcnow


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("referrer_id", "referred_id", name="uq_referrals_pair"),
        Index("ix_referrals_referrer_status_approved", "referrer_id", "status", "approved_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    referrer_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), index=True)
    referred_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), index=True)

    status: Mapped[ReferralStatus] = mapped_column(
        Enum(ReferralStatus, native_enum=False),
        default=ReferralStatus.PENDING,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    points_awarded: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow)
