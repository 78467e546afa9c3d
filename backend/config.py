from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Vocab Trainer"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'vocab_trainer.db'}"
    storage_max_retries: int = 3

    # SM-2 scheduling
    default_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    failure_ease_penalty: float = 0.2
    mastery_threshold_days: int = 21
    max_interval_days: int = 36500  # Keeps next_review inside datetime range

    # Answer validation
    exact_threshold: float = 0.9
    partial_threshold: float = 0.7
    max_edit_distance: int = 2
    max_answer_length: int = 1000

    # Tier -> SM-2 quality (0=Again, 2=Hard, 3=Good, 5=Easy)
    quality_exact: int = 5
    quality_alternate: int = 3
    quality_fuzzy: int = 3
    quality_partial: int = 2
    quality_incorrect: int = 0

    max_new_cards_per_session: int = 10
    max_reviews_per_session: int = 20
    debug: bool = False

    model_config = {"env_prefix": "VOCAB_TRAINER_", "env_file": ".env"}


settings = Settings()
