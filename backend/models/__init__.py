"""SQLAlchemy ORM models for the vocabulary trainer database."""

from backend.models.base import Base
from backend.models.entry import VocabularyEntry
from backend.models.progress import ProgressRecord
from backend.models.review_log import ReviewLog

__all__ = ["Base", "ProgressRecord", "ReviewLog", "VocabularyEntry"]
