"""Persisted SM-2 progress, one row per (module, entry)."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.config import settings, utcnow
from backend.models.base import Base, TimestampMixin


class ProgressRecord(Base, TimestampMixin):
    __tablename__ = "progress"
    __table_args__ = (UniqueConstraint("module_id", "entry_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entry_id: Mapped[str] = mapped_column(String(100), nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Days
    ease_factor: Mapped[float] = mapped_column(
        Float, nullable=False, default=settings.default_ease_factor
    )
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_review: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mastered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
