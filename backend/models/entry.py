"""Vocabulary entries: the prompt and the answers a learner may type."""

import json

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class VocabularyEntry(Base, TimestampMixin):
    __tablename__ = "vocabulary_entries"
    __table_args__ = (UniqueConstraint("module_id", "entry_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entry_id: Mapped[str] = mapped_column(String(100), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)  # What the card shows
    expected_answer: Mapped[str] = mapped_column(Text, nullable=False)
    alternate_answers: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array

    @property
    def alternates(self) -> list[str]:
        """Return the decoded alternate answers."""
        if not self.alternate_answers:
            return []
        return json.loads(self.alternate_answers)
