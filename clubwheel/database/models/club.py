# clubwheel/database/models/club.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base


class Club(Base):
    """
    A physical club with its own wheel.

    Players reach a club by id, slug, the rotating join token (QR link) or a
    6-digit PIN typed on the phone. Coordinates are optional: a club without
    them is not geofenced.
    """
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128))

    slug: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    join_token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    # legacy rows may lack a PIN until first access
    pin_code: Mapped[str | None] = mapped_column(String(6), unique=True, nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(128), default="")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        unique=True,
        index=True,
    )

    # telegram chat where spin results are announced
    broadcast_chat_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
