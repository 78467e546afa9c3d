"""Persistence for vocabulary entries, progress records and review logs.

Scheduling and validation never touch the database; the session
orchestrator hands their results to this repository. Writes are retried
with exponential backoff on transient database errors (e.g. a locked
SQLite file); anything else propagates.
"""

import json
import logging
from dataclasses import fields

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from backend.config import settings
from backend.database import async_session
from backend.models.entry import VocabularyEntry
from backend.models.progress import ProgressRecord
from backend.models.review_log import ReviewLog
from backend.srs.sm2 import ReviewProgress

logger = logging.getLogger(__name__)

PROGRESS_FIELDS = [f.name for f in fields(ReviewProgress)]

transient_retry = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(settings.storage_max_retries),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def to_progress(record: ProgressRecord) -> ReviewProgress:
    """Convert a stored record into the scheduler's dataclass."""
    return ReviewProgress(**{name: getattr(record, name) for name in PROGRESS_FIELDS})


class Repository:
    """Async storage keyed by (module_id, entry_id)."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession] = async_session) -> None:
        self._sessionmaker = sessionmaker

    # --- Entries ---

    @transient_retry
    async def add_entry(
        self,
        module_id: str,
        entry_id: str,
        prompt: str,
        expected_answer: str,
        alternate_answers: list[str] | None = None,
    ) -> VocabularyEntry:
        """Store a new entry. Raises IntegrityError if the id is taken."""
        entry = VocabularyEntry(
            module_id=module_id,
            entry_id=entry_id,
            prompt=prompt,
            expected_answer=expected_answer,
            alternate_answers=json.dumps(alternate_answers, ensure_ascii=False)
            if alternate_answers
            else None,
        )
        async with self._sessionmaker() as db:
            db.add(entry)
            await db.commit()
        logger.info("Added entry %s/%s", module_id, entry_id)
        return entry

    async def get_entry(self, module_id: str, entry_id: str) -> VocabularyEntry | None:
        stmt = select(VocabularyEntry).where(
            and_(VocabularyEntry.module_id == module_id, VocabularyEntry.entry_id == entry_id)
        )
        async with self._sessionmaker() as db:
            return (await db.execute(stmt)).scalar_one_or_none()

    async def list_entries(self, module_id: str) -> list[VocabularyEntry]:
        stmt = (
            select(VocabularyEntry)
            .where(VocabularyEntry.module_id == module_id)
            .order_by(VocabularyEntry.id.asc())
        )
        async with self._sessionmaker() as db:
            return list((await db.execute(stmt)).scalars().all())

    @transient_retry
    async def delete_entry(self, module_id: str, entry_id: str) -> bool:
        """Delete an entry together with its progress. Returns False if it didn't exist."""
        async with self._sessionmaker() as db:
            result = await db.execute(
                delete(VocabularyEntry).where(
                    and_(
                        VocabularyEntry.module_id == module_id,
                        VocabularyEntry.entry_id == entry_id,
                    )
                )
            )
            await db.execute(
                delete(ProgressRecord).where(
                    and_(ProgressRecord.module_id == module_id, ProgressRecord.entry_id == entry_id)
                )
            )
            await db.commit()
        return result.rowcount > 0

    # --- Progress ---

    async def get_progress(self, module_id: str, entry_id: str) -> ReviewProgress | None:
        async with self._sessionmaker() as db:
            record = await self._find_progress(db, module_id, entry_id)
            return to_progress(record) if record else None

    async def list_progress(self, module_id: str) -> dict[str, ReviewProgress]:
        """Return progress for every reviewed entry in a module, keyed by entry id."""
        stmt = select(ProgressRecord).where(ProgressRecord.module_id == module_id)
        async with self._sessionmaker() as db:
            records = (await db.execute(stmt)).scalars().all()
        return {record.entry_id: to_progress(record) for record in records}

    @transient_retry
    async def save_progress(
        self,
        module_id: str,
        entry_id: str,
        progress: ReviewProgress,
        log: ReviewLog | None = None,
    ) -> None:
        """Insert or update an entry's progress, optionally logging the review in the same commit."""
        async with self._sessionmaker() as db:
            record = await self._find_progress(db, module_id, entry_id)
            if record is None:
                record = ProgressRecord(module_id=module_id, entry_id=entry_id)
                db.add(record)
            for name in PROGRESS_FIELDS:
                value = getattr(progress, name)
                if name == "next_review" and value is None:
                    continue  # Column default: due now
                setattr(record, name, value)
            if log is not None:
                db.add(log)
            await db.commit()
        logger.debug("Saved progress for %s/%s", module_id, entry_id)

    async def count_reviews(self, module_id: str) -> int:
        stmt = select(func.count(ReviewLog.id)).where(ReviewLog.module_id == module_id)
        async with self._sessionmaker() as db:
            return (await db.execute(stmt)).scalar() or 0

    async def list_modules(self) -> list[str]:
        stmt = select(VocabularyEntry.module_id).distinct().order_by(VocabularyEntry.module_id)
        async with self._sessionmaker() as db:
            return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def _find_progress(
        db: AsyncSession, module_id: str, entry_id: str
    ) -> ProgressRecord | None:
        stmt = select(ProgressRecord).where(
            and_(ProgressRecord.module_id == module_id, ProgressRecord.entry_id == entry_id)
        )
        return (await db.execute(stmt)).scalar_one_or_none()
