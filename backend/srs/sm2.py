"""SM-2 (SuperMemo-2) spaced repetition scheduler.

Reference: https://www.supermemo.com/en/archives1990-2015/english/ol/sm2

Key concepts:
- Ease factor (EF): multiplier controlling how fast intervals grow. Starts at
  2.5 and never drops below 1.3.
- Interval: days until the next review. 1 after the first success, 6 after
  the second, then the previous interval times the ease factor.
- Repetitions: consecutive successful reviews, reset by a failure.
- Quality: 0=Again, 2=Hard, 3=Good, 5=Easy. The gaps are inherited from the
  0-5 SM-2 scale; only Again counts as a failure.

Ease factor update for a successful review:
    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
A failure costs a flat penalty instead.
"""

import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import IntEnum
from itertools import islice

from backend.config import settings, utcnow

logger = logging.getLogger(__name__)

FIRST_INTERVAL = 1
SECOND_INTERVAL = 6

# Guard for the reviews-to-mastery estimate
MAX_SIMULATED_REVIEWS = 100


class QualityRating(IntEnum):
    """How well the learner recalled an entry."""

    AGAIN = 0  # Forgotten: start over
    HARD = 2  # Recalled with serious difficulty
    GOOD = 3  # Recalled correctly
    EASY = 5  # Perfect recall


@dataclass
class ReviewProgress:
    """The learning state of one vocabulary entry."""

    interval: int = 0  # Days; 0 means never reviewed
    ease_factor: float = settings.default_ease_factor
    repetitions: int = 0  # Consecutive successful reviews
    last_review: datetime | None = None
    next_review: datetime | None = None  # None means due immediately
    total_reviews: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    streak: int = 0
    mastered: bool = False


@dataclass
class ScheduleResult:
    """The scheduling fields produced by one review."""

    interval: int
    ease_factor: float
    repetitions: int
    next_review: datetime


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class SM2:
    """Stateless SM-2 scheduler; all state lives in ReviewProgress."""

    def __init__(
        self,
        default_ease_factor: float = settings.default_ease_factor,
        min_ease_factor: float = settings.min_ease_factor,
        failure_penalty: float = settings.failure_ease_penalty,
        mastery_threshold_days: int = settings.mastery_threshold_days,
        max_interval_days: int = settings.max_interval_days,
    ) -> None:
        self.default_ease_factor = default_ease_factor
        self.min_ease_factor = min_ease_factor
        self.failure_penalty = failure_penalty
        self.mastery_threshold_days = mastery_threshold_days
        self.max_interval_days = max_interval_days

    def initial_progress(self, now: datetime | None = None) -> ReviewProgress:
        """Create the progress record for an entry that is scheduled for the first time.

        The entry is due immediately.
        """
        return ReviewProgress(
            interval=0,
            ease_factor=self.default_ease_factor,
            next_review=now or utcnow(),
        )

    def schedule_next(
        self,
        progress: ReviewProgress,
        quality: QualityRating | int,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """Compute the next interval, ease factor and due date after a review.

        Args:
            progress: Current state; only interval, ease_factor and repetitions are read.
            quality: The review quality. Anything that isn't a QualityRating
                value raises ValueError, since guessing a quality would corrupt
                the schedule.
            now: Review time (defaults to utcnow).

        Returns:
            ScheduleResult with the updated scheduling fields.
        """
        quality = QualityRating(quality)
        now = now or utcnow()

        if quality == QualityRating.AGAIN:
            repetitions = 0
            interval = FIRST_INTERVAL
            ease_factor = max(self.min_ease_factor, progress.ease_factor - self.failure_penalty)
        else:
            ease_factor = max(
                self.min_ease_factor,
                progress.ease_factor + self.ease_adjustment(quality),
            )
            repetitions = progress.repetitions + 1
            if repetitions == 1:
                interval = FIRST_INTERVAL
            elif repetitions == 2:
                interval = SECOND_INTERVAL
            else:
                interval = max(FIRST_INTERVAL, _round_half_up(progress.interval * ease_factor))
            interval = min(interval, self.max_interval_days)

        result = ScheduleResult(
            interval=interval,
            ease_factor=ease_factor,
            repetitions=repetitions,
            next_review=now + timedelta(days=interval),
        )
        logger.debug(
            "Scheduled %s: interval %d -> %d days, EF %.2f -> %.2f, reps %d",
            quality.name,
            progress.interval,
            interval,
            progress.ease_factor,
            ease_factor,
            repetitions,
        )
        return result

    @staticmethod
    def ease_adjustment(quality: QualityRating | int) -> float:
        """Return the SM-2 ease factor delta for a successful review of ``quality``.

        +0.10 for Easy, -0.14 for Good, -0.32 for Hard.
        """
        delta = 5 - QualityRating(quality)
        return 0.1 - delta * (0.08 + delta * 0.02)

    def is_mastered(self, interval: int) -> bool:
        return interval >= self.mastery_threshold_days

    def is_due(self, progress: ReviewProgress, now: datetime | None = None) -> bool:
        """Return True if ``now`` is at or after the entry's next review."""
        if progress.next_review is None:
            return True
        return (now or utcnow()) >= progress.next_review

    def days_until_review(self, progress: ReviewProgress, now: datetime | None = None) -> int:
        """Return calendar days until the next review (negative when overdue)."""
        now = now or utcnow()
        if progress.next_review is None:
            return 0
        return (progress.next_review.date() - now.date()).days

    def simulate_interval_progression(
        self,
        number_of_reviews: int,
        initial_ease: float | None = None,
        quality: QualityRating = QualityRating.GOOD,
    ) -> list[int]:
        """Return the interval after each of ``number_of_reviews`` identical reviews."""
        return list(islice(self._progression(initial_ease, quality), number_of_reviews))

    def estimate_reviews_to_mastery(
        self,
        quality: QualityRating = QualityRating.GOOD,
        initial_ease: float | None = None,
    ) -> int:
        """Return how many consistent reviews it takes to reach the mastery interval.

        Capped at MAX_SIMULATED_REVIEWS (an Again-only learner never masters).
        """
        intervals = islice(self._progression(initial_ease, quality), MAX_SIMULATED_REVIEWS)
        for count, interval in enumerate(intervals, 1):
            if self.is_mastered(interval):
                return count
        return MAX_SIMULATED_REVIEWS

    def _progression(
        self,
        initial_ease: float | None,
        quality: QualityRating,
    ) -> Iterator[int]:
        """Yield intervals for an endless run of identical reviews."""
        progress = replace(
            self.initial_progress(),
            ease_factor=initial_ease if initial_ease is not None else self.default_ease_factor,
        )
        while True:
            result = self.schedule_next(progress, quality, progress.next_review)
            progress = replace(
                progress,
                interval=result.interval,
                ease_factor=result.ease_factor,
                repetitions=result.repetitions,
            )
            yield result.interval
