"""
Module: marketplace_kernel.models.rate_limit
Responsibility: Append-only log of rate-limited actions, one row per
    permitted occurrence.  RateLimitService counts rows in a sliding window.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import Base, UTCDateTime, UUIDString


class RateLimitLog(Base):
    __tablename__ = "rate_limit_log"

    __table_args__ = (
        Index("idx_rate_limit_window", "user_id", "action", "occurred_at"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[str] = mapped_column(String(64), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
