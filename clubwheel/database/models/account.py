# clubwheel/database/models/account.py
from __future__ import annotations

import enum
import secrets
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base


def new_public_id() -> str:
    # 24 hex chars, same shape as legacy referral links
    return secrets.token_hex(12)


class AccountRole(str, enum.Enum):
    PLAYER = "player"
    CLUB = "club"
    ADMIN = "admin"


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    public_id: Mapped[str] = mapped_column(String(24), unique=True, index=True, default=new_public_id)

    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128), default="")
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True, index=True)

    role: Mapped[AccountRole] = mapped_column(
        Enum(AccountRole, native_enum=False),
        default=AccountRole.PLAYER,
        index=True,
    )

    # cached sum of ledger_entries.amount
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    club_id: Mapped[int | None] = mapped_column(
        ForeignKey("clubs.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
        index=True,
    )

    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ban_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    ban_reason: Mapped[str] = mapped_column(String(255), default="")

    # set at most once
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    referral_code: Mapped[str | None] = mapped_column(String(6), unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

