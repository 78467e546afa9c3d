"""CLI interface for the vocabulary trainer.

Usage:
    python -m vocab_trainer check "parro" "perro"           Validate one answer
    python -m vocab_trainer add spanish "dog" "perro" -a "el perro"
                                                            Add an entry to a module
    python -m vocab_trainer remove spanish a1b2c3d4         Delete an entry
    python -m vocab_trainer modules                         List modules
    python -m vocab_trainer review spanish                  Start a review session
    python -m vocab_trainer due spanish                     Show how many cards are due
    python -m vocab_trainer stats spanish                   Show module statistics
    python -m vocab_trainer simulate -n 8 -q good           Show an interval progression
"""

import argparse
import asyncio
import logging
import time
import uuid
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError

from backend.config import settings, utcnow
from backend.database import create_tables
from backend.repository import Repository
from backend.srs.assessment import AnswerValidator, ValidationOptions
from backend.srs.language import LanguageRegistry
from backend.srs.queue import QueueConfig
from backend.srs.session import start_session
from backend.srs.sm2 import SM2, QualityRating
from backend.srs.statistics import forecast, module_statistics

QUALITY_CHOICES = {q.name.lower(): q for q in QualityRating}


async def ensure_db() -> None:
    """Create the data directory and tables if they don't exist."""
    database = make_url(settings.database_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    await create_tables()


def _options(args: argparse.Namespace, alternates: list[str] | None = None) -> ValidationOptions:
    return ValidationOptions(
        case_sensitive=args.case_sensitive,
        accent_sensitive=args.accent_sensitive,
        punctuation_sensitive=args.punctuation_sensitive,
        enable_fuzzy=not args.no_fuzzy,
        alternate_answers=tuple(alternates or ()),
    )


def _validator(args: argparse.Namespace) -> AnswerValidator:
    processor = LanguageRegistry().get(args.language) if args.language else None
    return AnswerValidator(processor=processor)


def cmd_check(args: argparse.Namespace) -> None:
    """Validate a single answer (sync, no DB needed)."""
    verdict = _validator(args).validate(args.answer, args.expected, _options(args, args.alternate))
    print(f"  {'Correct' if verdict.is_correct else 'Not accepted'} ({verdict.tier.value})")
    print(f"  {'Confidence:':<14} {verdict.confidence:.2f}")
    print(f"  {'Similarity:':<14} {verdict.similarity:.0f}%")
    print(f"  {'Edit distance:':<14} {verdict.edit_distance}")
    print(f"  {verdict.feedback}")
    if verdict.suggestion:
        print(f"  {verdict.suggestion}")


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a new entry to a module."""
    await ensure_db()
    repository = Repository()
    entry_id = args.id or uuid.uuid4().hex[:8]
    try:
        await repository.add_entry(
            args.module,
            entry_id,
            prompt=args.prompt,
            expected_answer=args.answer,
            alternate_answers=args.alternate,
        )
    except IntegrityError:
        print(f"  Entry '{entry_id}' already exists in module '{args.module}'.")
        return
    print(f"  Added {args.module}/{entry_id}: {args.prompt} -> {args.answer}")


async def cmd_remove(args: argparse.Namespace) -> None:
    """Delete an entry and its progress."""
    await ensure_db()
    repository = Repository()
    if not await repository.delete_entry(args.module, args.id):
        print(f"  No entry '{args.id}' in module '{args.module}'.")
        return
    print(f"  Removed {args.module}/{args.id}")


async def cmd_modules(args: argparse.Namespace) -> None:
    """List modules that have entries."""
    await ensure_db()
    repository = Repository()
    modules = await repository.list_modules()
    if not modules:
        print("  No modules yet. Add an entry with 'add'.")
        return
    for module_id in modules:
        entries = await repository.list_entries(module_id)
        print(f"  {module_id:<20} {len(entries)} entries")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive review session."""
    await ensure_db()
    repository = Repository()
    session = await start_session(
        repository,
        args.module,
        validator=_validator(args),
        config=QueueConfig(max_reviews=args.max_cards, max_new=args.new_cards),
        options=_options(args),
    )

    if session.queue.total == 0:
        print("\n  No cards due for review. You're all caught up!")
        return

    print("\n  Review Session")
    print(
        f"  {len(session.queue.due_cards)} due + {len(session.queue.new_cards)} new"
        f" = {session.queue.total} cards"
    )
    print("  Type 'q' to quit\n")

    position = 0
    while not session.is_complete:
        item = session.current_card
        position += 1
        label = f"  [{position}/{session.queue.total}]"
        if item.is_new:
            label += " (NEW)"
        print(label)
        print(f"  {item.entry.prompt}")

        start_time = time.time()
        response = input("\n  Your answer: ").strip()
        time_ms = int((time.time() - start_time) * 1000)

        if response.lower() == "q":
            print("\n  Session ended early.")
            break

        outcome = await session.submit_answer(response, time_ms)
        print(f"  {outcome.verdict.feedback}")
        if outcome.verdict.suggestion:
            print(f"  {outcome.verdict.suggestion}")
        print(f"  Rated {outcome.quality.name}. Next review in {outcome.schedule.interval} days\n")

    s = session.stats
    accuracy = s.correct / s.cards_reviewed * 100 if s.cards_reviewed else 0
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.cards_reviewed}  Correct: {s.correct}  Accuracy: {accuracy:.0f}%\n")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show module statistics."""
    await ensure_db()
    repository = Repository()
    entries = await repository.list_entries(args.module)
    progress = await repository.list_progress(args.module)
    progresses = [progress.get(e.entry_id) for e in entries]
    stats = module_statistics(progresses)
    upcoming = forecast(progresses, days=args.days)
    logged = await repository.count_reviews(args.module)

    print(f"\n  Statistics for '{args.module}'")
    print(f"  {'Total entries:':<20} {stats.total_entries}")
    print(f"  {'New (unseen):':<20} {stats.new_entries}")
    print(f"  {'Learning:':<20} {stats.learning_entries}")
    print(f"  {'Mastered:':<20} {stats.mastered_entries}")
    print(f"  {'Due today:':<20} {stats.due_today} ({stats.overdue} overdue)")
    print(f"  {'Average ease:':<20} {stats.average_ease_factor:.2f}")
    print(f"  {'Total reviews:':<20} {stats.total_reviews}")
    print(f"  {'Reviews logged:':<20} {logged}")
    print(f"  {'Accuracy:':<20} {stats.accuracy:.0f}%")
    print(f"  {'Forecast:':<20} {' '.join(str(n) for n in upcoming)}")
    print()


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due."""
    await ensure_db()
    repository = Repository()
    scheduler = SM2()
    now = utcnow()
    entries = await repository.list_entries(args.module)
    progress = await repository.list_progress(args.module)

    due = sum(1 for p in progress.values() if scheduler.is_due(p, now))
    new = sum(1 for e in entries if e.entry_id not in progress)
    print(f"  {due} cards due, {new} new cards available")


def cmd_simulate(args: argparse.Namespace) -> None:
    """Print the intervals produced by identical successive reviews."""
    scheduler = SM2()
    quality = QUALITY_CHOICES[args.quality]
    intervals = scheduler.simulate_interval_progression(args.reviews, args.ease, quality)
    print(f"  Intervals (days): {', '.join(str(i) for i in intervals)}")
    reviews = scheduler.estimate_reviews_to_mastery(quality, args.ease)
    print(f"  Reviews to mastery ({scheduler.mastery_threshold_days}+ days): {reviews}")


def _add_validation_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-l", "--language", help="Language code for extra rules (es, en)")
    parser.add_argument("--case-sensitive", action="store_true")
    parser.add_argument("--accent-sensitive", action="store_true")
    parser.add_argument("--punctuation-sensitive", action="store_true")
    parser.add_argument("--no-fuzzy", action="store_true", help="Disable typo tolerance")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vocab_trainer",
        description="Vocabulary trainer with SM-2 scheduling",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # check
    check_parser = subparsers.add_parser("check", help="Validate one answer")
    check_parser.add_argument("answer", help="The typed answer")
    check_parser.add_argument("expected", help="The expected answer")
    check_parser.add_argument("-a", "--alternate", action="append", help="Accepted alternate")
    _add_validation_flags(check_parser)

    # add
    add_parser = subparsers.add_parser("add", help="Add an entry to a module")
    add_parser.add_argument("module", help="Module id")
    add_parser.add_argument("prompt", help="What the card shows")
    add_parser.add_argument("answer", help="Expected answer")
    add_parser.add_argument("-a", "--alternate", action="append", help="Accepted alternate")
    add_parser.add_argument("--id", help="Entry id (random if omitted)")

    # remove
    remove_parser = subparsers.add_parser("remove", help="Delete an entry and its progress")
    remove_parser.add_argument("module", help="Module id")
    remove_parser.add_argument("id", help="Entry id")

    # modules
    subparsers.add_parser("modules", help="List modules")

    # review
    review_parser = subparsers.add_parser("review", help="Start a review session")
    review_parser.add_argument("module", help="Module id")
    review_parser.add_argument(
        "--max-cards", type=int, default=settings.max_reviews_per_session, help="Max reviews"
    )
    review_parser.add_argument(
        "--new-cards", type=int, default=settings.max_new_cards_per_session, help="Max new cards"
    )
    _add_validation_flags(review_parser)

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show module statistics")
    stats_parser.add_argument("module", help="Module id")
    stats_parser.add_argument("--days", type=int, default=7, help="Forecast length")

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("module", help="Module id")

    # simulate
    simulate_parser = subparsers.add_parser("simulate", help="Show an SM-2 interval progression")
    simulate_parser.add_argument("-n", "--reviews", type=int, default=10)
    simulate_parser.add_argument("-q", "--quality", choices=list(QUALITY_CHOICES), default="good")
    simulate_parser.add_argument("-e", "--ease", type=float, default=None, help="Initial ease")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the vocabulary trainer CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    # check and simulate are synchronous, all others are async.
    if args.command == "check":
        cmd_check(args)
        return
    if args.command == "simulate":
        cmd_simulate(args)
        return

    cmd_map = {
        "add": cmd_add,
        "remove": cmd_remove,
        "modules": cmd_modules,
        "review": cmd_review,
        "stats": cmd_stats,
        "due": cmd_due,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()
