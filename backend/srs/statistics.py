"""Learning-progress statistics for a module."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from backend.config import utcnow
from backend.srs.sm2 import SM2, ReviewProgress


@dataclass
class ModuleStatistics:
    total_entries: int = 0
    new_entries: int = 0  # Never reviewed
    learning_entries: int = 0
    mastered_entries: int = 0
    due_today: int = 0  # Includes overdue
    overdue: int = 0
    average_ease_factor: float = 0.0  # Over reviewed entries only
    total_reviews: int = 0
    accuracy: float = 0.0  # Percent of correct answers


def module_statistics(
    progresses: Iterable[ReviewProgress | None],
    scheduler: SM2 | None = None,
    now: datetime | None = None,
) -> ModuleStatistics:
    """Summarize a module from its entries' progress (None for a new entry)."""
    scheduler = scheduler or SM2()
    now = now or utcnow()
    stats = ModuleStatistics()
    total_ease = 0.0
    correct = incorrect = 0

    for progress in progresses:
        stats.total_entries += 1
        if progress is None:
            stats.new_entries += 1
            continue

        total_ease += progress.ease_factor
        stats.total_reviews += progress.total_reviews
        correct += progress.correct_count
        incorrect += progress.incorrect_count

        if progress.mastered:
            stats.mastered_entries += 1
        else:
            stats.learning_entries += 1

        days = scheduler.days_until_review(progress, now)
        if days < 0:
            stats.overdue += 1
            stats.due_today += 1
        elif days == 0:
            stats.due_today += 1

    reviewed = stats.total_entries - stats.new_entries
    if reviewed:
        stats.average_ease_factor = total_ease / reviewed
    if correct + incorrect:
        stats.accuracy = correct / (correct + incorrect) * 100
    return stats


def forecast(
    progresses: Iterable[ReviewProgress | None],
    days: int = 7,
    scheduler: SM2 | None = None,
    now: datetime | None = None,
) -> list[int]:
    """Return how many reviews fall on each of the next ``days`` days.

    Index 0 is today; overdue and new entries are not counted.
    """
    scheduler = scheduler or SM2()
    now = now or utcnow()
    counts = [0] * days
    for progress in progresses:
        if progress is None:
            continue
        until = scheduler.days_until_review(progress, now)
        if 0 <= until < days:
            counts[until] += 1
    return counts
