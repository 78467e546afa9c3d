"""Review session orchestrator.

Coordinates answer validation, quality mapping, SM-2 scheduling and
persistence into one validate -> rate -> schedule -> persist step per answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING

from backend.config import utcnow
from backend.models.review_log import ReviewLog
from backend.srs.assessment import (
    AnswerValidator,
    QualityPolicy,
    ValidationOptions,
    ValidationTier,
    ValidationVerdict,
)
from backend.srs.queue import QueueConfig, QueueItem, ReviewQueue, build_queue
from backend.srs.sm2 import SM2, QualityRating, ReviewProgress, ScheduleResult

if TYPE_CHECKING:
    from backend.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class AnswerOutcome:
    """Everything that came out of one submitted answer."""

    verdict: ValidationVerdict
    quality: QualityRating
    schedule: ScheduleResult
    progress: ReviewProgress  # Updated progress as persisted


@dataclass
class SessionStats:
    """Statistics for a review session."""

    cards_reviewed: int = 0
    correct: int = 0
    partial: int = 0
    incorrect: int = 0
    new_cards_seen: int = 0
    average_time_ms: float = 0.0
    total_time_ms: int = 0


def record_review(
    progress: ReviewProgress,
    schedule: ScheduleResult,
    quality: QualityRating,
    scheduler: SM2,
    now: datetime,
) -> ReviewProgress:
    """Write a schedule back into progress and bump the review counters."""
    success = quality != QualityRating.AGAIN
    return replace(
        progress,
        interval=schedule.interval,
        ease_factor=schedule.ease_factor,
        repetitions=schedule.repetitions,
        last_review=now,
        next_review=schedule.next_review,
        total_reviews=progress.total_reviews + 1,
        correct_count=progress.correct_count + (1 if success else 0),
        incorrect_count=progress.incorrect_count + (0 if success else 1),
        streak=progress.streak + 1 if success else 0,
        mastered=scheduler.is_mastered(schedule.interval),
    )


@dataclass
class ReviewSession:
    """Manages an active review session over one module."""

    module_id: str
    queue: ReviewQueue
    repository: Repository
    validator: AnswerValidator = field(default_factory=AnswerValidator)
    scheduler: SM2 = field(default_factory=SM2)
    policy: QualityPolicy = field(default_factory=QualityPolicy)
    base_options: ValidationOptions = field(default_factory=ValidationOptions)
    stats: SessionStats = field(default_factory=SessionStats)
    _card_index: int = 0
    _cards: list[QueueItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Initialize the card list from the queue."""
        self._cards = self.queue.interleaved()

    @property
    def remaining(self) -> int:
        """Return the number of cards left to review."""
        return max(0, len(self._cards) - self._card_index)

    @property
    def is_complete(self) -> bool:
        """Return True if all cards have been reviewed."""
        return self._card_index >= len(self._cards)

    @property
    def current_card(self) -> QueueItem | None:
        """Return the current card or None if session is complete."""
        if self._card_index < len(self._cards):
            return self._cards[self._card_index]
        return None

    def skip(self) -> None:
        """Move past the current card without reviewing it."""
        if not self.is_complete:
            self._card_index += 1

    async def submit_answer(
        self,
        response: str,
        time_ms: int = 0,
        quality_override: QualityRating | None = None,
        now: datetime | None = None,
    ) -> AnswerOutcome:
        """Submit an answer for the current card.

        Args:
            response: The learner's typed answer.
            time_ms: How long the response took in milliseconds.
            quality_override: Optional self-rating replacing the policy's rating.
            now: Review time (defaults to utcnow).

        Returns:
            AnswerOutcome with the verdict, applied quality and new progress.

        Raises:
            RuntimeError: If the session is already complete.
        """
        item = self.current_card
        if item is None:
            raise RuntimeError("Session is complete")
        now = now or utcnow()
        entry = item.entry

        options = replace(self.base_options, alternate_answers=tuple(entry.alternates))
        verdict = self.validator.validate(response, entry.expected_answer, options)
        quality = (
            QualityRating(quality_override)
            if quality_override is not None
            else self.policy.rating_for(verdict)
        )

        before = item.progress or self.scheduler.initial_progress(now)
        schedule = self.scheduler.schedule_next(before, quality, now)
        after = record_review(before, schedule, quality, self.scheduler, now)

        log = ReviewLog(
            module_id=self.module_id,
            entry_id=entry.entry_id,
            tier=verdict.tier.value,
            quality=int(quality),
            confidence=verdict.confidence,
            time_ms=time_ms,
            interval_before=before.interval,
            interval_after=after.interval,
            ease_before=before.ease_factor,
            ease_after=after.ease_factor,
            reviewed_at=now,
        )
        await self.repository.save_progress(self.module_id, entry.entry_id, after, log)
        item.progress = after

        self.stats.cards_reviewed += 1
        self.stats.total_time_ms += time_ms
        self.stats.average_time_ms = self.stats.total_time_ms / self.stats.cards_reviewed
        if before.total_reviews == 0:
            self.stats.new_cards_seen += 1
        if verdict.is_correct:
            self.stats.correct += 1
        elif verdict.tier == ValidationTier.PARTIAL:
            self.stats.partial += 1
        else:
            self.stats.incorrect += 1

        logger.debug(
            "Entry %s: %s -> %s, next review in %d days",
            entry.entry_id,
            verdict.tier.value,
            quality.name,
            schedule.interval,
        )

        # Advance to next card
        self._card_index += 1

        return AnswerOutcome(verdict=verdict, quality=quality, schedule=schedule, progress=after)


async def start_session(
    repository: Repository,
    module_id: str,
    validator: AnswerValidator | None = None,
    scheduler: SM2 | None = None,
    policy: QualityPolicy | None = None,
    options: ValidationOptions | None = None,
    config: QueueConfig | None = None,
    now: datetime | None = None,
) -> ReviewSession:
    """Start a new review session for a module.

    Args:
        repository: Storage for entries and progress.
        module_id: The module to review.
        validator: Answer validator (defaults to one without language rules).
        scheduler: SM-2 scheduler (defaults from settings).
        policy: Tier -> quality mapping (defaults from settings).
        options: Validation options applied to every answer (alternates come from each entry).
        config: Queue limits.
        now: Current time for due checks.

    Returns:
        A ReviewSession ready for use.
    """
    scheduler = scheduler or SM2()
    queue = await build_queue(repository, module_id, config, scheduler, now)

    session = ReviewSession(
        module_id=module_id,
        queue=queue,
        repository=repository,
        validator=validator or AnswerValidator(),
        scheduler=scheduler,
        policy=policy or QualityPolicy(),
        base_options=options or ValidationOptions(),
    )

    logger.info(
        "Started session for module %s: %d cards queued",
        module_id,
        queue.total,
    )
    return session
