# clubwheel/database/models/prize.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from clubwheel.database.base import Base

MIN_SLOT = 0
MAX_SLOT = 24


class PrizeCategory(str, enum.Enum):
    POINTS = "points"
    PHYSICAL = "physical"
    CLUB_TIME = "club_time"
    OTHER = "other"


class Prize(Base):
    """
    Wheel prize.

    `drop_chance` is a relative weight (0..100), not a percentage that must
    sum to 100. `value` is points for POINTS and minutes for CLUB_TIME.
    total/remaining quantity NULL means unlimited.
    """
    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_ref: Mapped[str | None] = mapped_column(String(512), nullable=True)

    category: Mapped[PrizeCategory] = mapped_column(
        Enum(PrizeCategory, native_enum=False),
        index=True,
    )
    value: Mapped[int] = mapped_column(Integer, default=0)

    drop_chance: Mapped[float] = mapped_column(Float, default=0.0)
    slot_index: Mapped[int] = mapped_column(Integer, index=True)

    total_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remaining_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    @property
    def is_limited(self) -> bool:
        return self.total_quantity is not None

    @property
    def in_stock(self) -> bool:
        return not self.is_limited or int(self.remaining_quantity or 0) > 0
