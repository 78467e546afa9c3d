from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.config import utcnow
from backend.models.base import Base


class ReviewLog(Base):
    __tablename__ = "review_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entry_id: Mapped[str] = mapped_column(String(100), nullable=False)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)  # exact, alternate, fuzzy, partial, incorrect
    quality: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Again, 2=Hard, 3=Good, 5=Easy
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    time_ms: Mapped[int] = mapped_column(Integer, nullable=False)  # Response time in ms
    interval_before: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_after: Mapped[int] = mapped_column(Integer, nullable=False)
    ease_before: Mapped[float] = mapped_column(Float, nullable=False)
    ease_after: Mapped[float] = mapped_column(Float, nullable=False)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
