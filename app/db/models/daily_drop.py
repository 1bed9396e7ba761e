from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, new_id, utcnow


class DailyDrop(Base):
    __tablename__ = "daily_drops"
    __table_args__ = (
        UniqueConstraint("user_id", "content_id", "drop_date", name="uq_daily_drops_user_day"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    content_id: Mapped[str] = mapped_column(
        ForeignKey("content.id", ondelete="CASCADE"), index=True
    )
    drop_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    match_score: Mapped[float] = mapped_column(Float, default=0.0)
    was_viewed: Mapped[bool] = mapped_column(Boolean, default=False)
    was_bookmarked: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    content = relationship("Content")
