"""Queue management for review sessions.

Handles card prioritization, mixing new cards with reviews,
and session limits to prevent overwhelm.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from backend.config import settings, utcnow
from backend.models.entry import VocabularyEntry
from backend.srs.sm2 import SM2, ReviewProgress

if TYPE_CHECKING:
    from backend.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class QueueItem:
    """An entry with its progress; ``progress`` is None for a new entry."""

    entry: VocabularyEntry
    progress: ReviewProgress | None = None

    @property
    def is_new(self) -> bool:
        return self.progress is None


@dataclass
class QueueConfig:
    """Configuration for queue building."""

    max_reviews: int = settings.max_reviews_per_session
    max_new: int = settings.max_new_cards_per_session
    prioritize_overdue: bool = True
    randomize: bool = False


@dataclass
class ReviewQueue:
    """A prepared queue of cards for a review session."""

    due_cards: list[QueueItem] = field(default_factory=list)
    new_cards: list[QueueItem] = field(default_factory=list)
    total: int = 0

    def interleaved(self) -> list[QueueItem]:
        """Return cards interleaved: mostly reviews with new cards mixed in.

        Strategy: Insert new cards at regular intervals within the review queue
        to maintain engagement without overwhelming with unfamiliar material.
        """
        if not self.new_cards:
            return list(self.due_cards)
        if not self.due_cards:
            return list(self.new_cards)

        result: list[QueueItem] = []
        new = list(self.new_cards)

        # Insert a new card every N reviews
        interval = max(1, len(self.due_cards) // (len(new) + 1))
        new_idx = 0

        for i, card in enumerate(self.due_cards):
            result.append(card)
            if new_idx < len(new) and (i + 1) % interval == 0:
                result.append(new[new_idx])
                new_idx += 1

        # Append any remaining new cards at the end
        result.extend(new[new_idx:])
        return result


def sort_by_priority(
    items: Iterable[QueueItem],
    scheduler: SM2,
    now: datetime,
) -> list[QueueItem]:
    """Order reviewed cards by urgency.

    1. Overdue (most overdue first)
    2. Due today (longest interval first: older, harder-won cards)
    3. Not yet due (soonest first)
    New cards keep their relative order after all of these.
    """

    def key(item: QueueItem) -> tuple[int, int]:
        if item.progress is None:
            return (3, 0)
        days = scheduler.days_until_review(item.progress, now)
        if days < 0:
            return (0, days)
        if days == 0:
            return (1, -item.progress.interval)
        return (2, days)

    return sorted(items, key=key)


def select_queue(
    items: Iterable[QueueItem],
    config: QueueConfig | None = None,
    scheduler: SM2 | None = None,
    now: datetime | None = None,
) -> ReviewQueue:
    """Split entries into due and new cards, ordered and capped by the config."""
    config = config or QueueConfig()
    scheduler = scheduler or SM2()
    now = now or utcnow()

    items = list(items)
    due = [i for i in items if i.progress is not None and scheduler.is_due(i.progress, now)]
    new = [i for i in items if i.is_new]

    if config.prioritize_overdue:
        due = sort_by_priority(due, scheduler, now)
    elif config.randomize:
        random.shuffle(due)

    due = due[: config.max_reviews]
    new = new[: config.max_new]
    if config.randomize:
        random.shuffle(new)

    return ReviewQueue(due_cards=due, new_cards=new, total=len(due) + len(new))


async def build_queue(
    repository: Repository,
    module_id: str,
    config: QueueConfig | None = None,
    scheduler: SM2 | None = None,
    now: datetime | None = None,
) -> ReviewQueue:
    """Build a review queue for a module.

    Fetches due cards (overdue first) and new cards (never reviewed),
    respecting session limits.

    Args:
        repository: Storage for entries and progress.
        module_id: The module to build the queue for.
        config: Queue configuration (limits, ordering).
        scheduler: Scheduler used for due-date checks.
        now: Current time (defaults to utcnow).

    Returns:
        A ReviewQueue with due and new cards.
    """
    entries = await repository.list_entries(module_id)
    progress = await repository.list_progress(module_id)
    items = [QueueItem(entry=e, progress=progress.get(e.entry_id)) for e in entries]

    queue = select_queue(items, config, scheduler, now)
    logger.info(
        "Built queue for module %s: %d due + %d new = %d total",
        module_id,
        len(queue.due_cards),
        len(queue.new_cards),
        queue.total,
    )
    return queue
