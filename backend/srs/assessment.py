"""Assessment engine for evaluating typed answers.

Validation runs through tiers, first success wins:
1. exact: normalized input equals the expected answer
2. alternate: normalized input equals one of the accepted alternates
3. language rules: articles, contractions, etc. (when a processor is set)
4. fuzzy: small edit distance, accepted as a typo
5. partial: close, but not accepted
6. incorrect

The verdict's tier is then mapped to an SM-2 quality by a QualityPolicy.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from backend.config import settings
from backend.srs.distance import levenshtein_distance, similarity
from backend.srs.normalization import normalize
from backend.srs.sm2 import QualityRating

if TYPE_CHECKING:
    from backend.srs.language import LanguageProcessor

logger = logging.getLogger(__name__)

# Short words get a fixed high confidence for one- or two-letter slips,
# since a single typo in "perro" already drops similarity to 80%.
SHORT_WORD_LENGTH = 8
VERY_SHORT_WORD_LENGTH = 5
SHORT_WORD_MIN_SIMILARITY = 75.0
TWO_EDIT_MIN_SIMILARITY = 50.0
SHORT_WORD_TYPO_CONFIDENCE = 0.95

COMMON_PREFIX_LENGTH = 3


class ValidationTier(Enum):
    """Which tier decided the verdict, in descending order of confidence."""

    EXACT = "exact"
    ALTERNATE = "alternate"
    FUZZY = "fuzzy"
    PARTIAL = "partial"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class ValidationOptions:
    """Per-call validation settings."""

    case_sensitive: bool = False
    accent_sensitive: bool = False
    punctuation_sensitive: bool = False
    enable_fuzzy: bool = True
    exact_threshold: float = settings.exact_threshold  # Confidence needed to accept a near match
    partial_threshold: float = settings.partial_threshold  # Lower bound of the partial band
    max_edit_distance: int = settings.max_edit_distance
    alternate_answers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence from callers but keep the options hashable
        object.__setattr__(self, "alternate_answers", tuple(self.alternate_answers))

    def normalize(self, text: str) -> str:
        return normalize(
            text,
            case_sensitive=self.case_sensitive,
            accent_sensitive=self.accent_sensitive,
            punctuation_sensitive=self.punctuation_sensitive,
        )


@dataclass
class ValidationVerdict:
    """The result of checking one answer."""

    is_correct: bool
    tier: ValidationTier
    confidence: float  # 0-1
    feedback: str  # Message for the learner
    similarity: float = 0.0  # 0-100
    edit_distance: int = 0
    matched_answer: str | None = None  # The accepted variant that matched
    suggestion: str | None = None


@dataclass
class ValidationStatistics:
    """Aggregate figures over a set of verdicts."""

    total: int = 0
    correct: int = 0
    incorrect: int = 0
    accuracy: float = 0.0
    average_confidence: float = 0.0
    tier_breakdown: dict[str, int] = field(default_factory=dict)


class AnswerValidator:
    """Tiered answer checker.

    Holds no mutable state, so one instance can be shared freely; pass it to
    whoever needs it instead of reaching for a module-level default.
    """

    def __init__(
        self,
        processor: LanguageProcessor | None = None,
        max_answer_length: int = settings.max_answer_length,
    ) -> None:
        self.processor = processor
        self.max_answer_length = max_answer_length

    def validate(
        self,
        user_input: str,
        expected: str,
        options: ValidationOptions | None = None,
    ) -> ValidationVerdict:
        """Validate a learner's answer against the expected answer.

        Never raises for user input: empty, overlong or garbled answers all
        produce an incorrect verdict.

        Args:
            user_input: What the learner typed.
            expected: The primary correct answer.
            options: Validation options (alternates, sensitivity, thresholds).

        Returns:
            A ValidationVerdict describing the match.
        """
        options = options or ValidationOptions()
        user_input = user_input or ""
        expected = expected or ""

        if not user_input.strip():
            if not expected.strip():
                return self._exact(expected)
            return ValidationVerdict(
                is_correct=False,
                tier=ValidationTier.INCORRECT,
                confidence=0.0,
                feedback="No answer provided",
                suggestion=f"Try typing: {expected}",
            )

        normalized_user = self._normalize(user_input, options)
        normalized_expected = self._normalize(expected, options)

        if len(normalized_user) > self.max_answer_length:
            logger.debug("Rejected answer of %d characters", len(normalized_user))
            return ValidationVerdict(
                is_correct=False,
                tier=ValidationTier.INCORRECT,
                confidence=0.0,
                feedback="Answer is too long to check",
                suggestion=f"The correct answer is: {expected}",
            )

        # Tier 1: exact
        if normalized_user == normalized_expected:
            return self._exact(expected)

        # Tier 2: alternates, in order
        alternates = [(alt, self._normalize(alt, options)) for alt in options.alternate_answers]
        for alternate, normalized_alt in alternates:
            if normalized_user == normalized_alt:
                return ValidationVerdict(
                    is_correct=True,
                    tier=ValidationTier.ALTERNATE,
                    confidence=1.0,
                    feedback="Correct! (Alternative form accepted)",
                    similarity=100.0,
                    edit_distance=0,
                    matched_answer=alternate,
                )

        # Nothing to be close to: an empty expected answer only matches empty input
        if not normalized_expected:
            return ValidationVerdict(
                is_correct=False,
                tier=ValidationTier.INCORRECT,
                confidence=0.0,
                feedback=f"Incorrect. The answer was: {expected}",
                edit_distance=len(normalized_user),
            )

        # Language-specific variations
        if self.processor is not None:
            verdict = self.processor.check_special_rules(
                normalized_user, normalized_expected, expected, options
            )
            if verdict is not None:
                return verdict

        # Closest accepted variant by edit distance
        best_answer, best_normalized = expected, normalized_expected
        best_distance = levenshtein_distance(normalized_user, normalized_expected)
        for alternate, normalized_alt in alternates:
            distance = levenshtein_distance(normalized_user, normalized_alt)
            if distance < best_distance:
                best_answer, best_normalized, best_distance = alternate, normalized_alt, distance

        percent = similarity(normalized_user, best_normalized, best_distance)

        if options.enable_fuzzy:
            verdict = self._fuzzy(
                normalized_user, best_normalized, best_answer, best_distance, percent, options
            )
            if verdict is not None:
                return verdict

        return ValidationVerdict(
            is_correct=False,
            tier=ValidationTier.INCORRECT,
            confidence=0.0,
            feedback=f"Incorrect. The answer was: {expected}",
            similarity=percent,
            edit_distance=best_distance,
            suggestion=_suggest(normalized_user, normalized_expected, expected, percent),
        )

    def validate_batch(
        self,
        pairs: Iterable[tuple[str, str]],
        options: ValidationOptions | None = None,
    ) -> list[ValidationVerdict]:
        """Validate ``(user_input, expected)`` pairs with the same options, preserving order."""
        return [self.validate(user_input, expected, options) for user_input, expected in pairs]

    def get_statistics(self, verdicts: Iterable[ValidationVerdict]) -> ValidationStatistics:
        return get_statistics(verdicts)

    def _normalize(self, text: str, options: ValidationOptions) -> str:
        if self.processor is not None:
            text = self.processor.prepare(text)
        return options.normalize(text)

    @staticmethod
    def _exact(expected: str) -> ValidationVerdict:
        return ValidationVerdict(
            is_correct=True,
            tier=ValidationTier.EXACT,
            confidence=1.0,
            feedback="Perfect match!",
            similarity=100.0,
            edit_distance=0,
            matched_answer=expected,
        )

    @staticmethod
    def _fuzzy(
        user: str,
        target: str,
        original_target: str,
        distance: int,
        percent: float,
        options: ValidationOptions,
    ) -> ValidationVerdict | None:
        """Accept a near miss as a typo, or flag it as partially correct."""
        confidence = percent / 100
        max_length = max(len(user), len(target))
        if max_length <= SHORT_WORD_LENGTH and (
            (distance == 1 and percent >= SHORT_WORD_MIN_SIMILARITY)
            or (
                distance == 2
                and max_length <= VERY_SHORT_WORD_LENGTH
                and percent >= TWO_EDIT_MIN_SIMILARITY
            )
        ):
            confidence = max(confidence, SHORT_WORD_TYPO_CONFIDENCE)

        if distance <= options.max_edit_distance and confidence >= options.exact_threshold:
            return ValidationVerdict(
                is_correct=True,
                tier=ValidationTier.FUZZY,
                confidence=confidence,
                feedback="Very close! Minor typo detected.",
                similarity=percent,
                edit_distance=distance,
                matched_answer=original_target,
                suggestion=f"Correct spelling: {original_target}",
            )

        if confidence >= options.partial_threshold:
            return ValidationVerdict(
                is_correct=False,
                tier=ValidationTier.PARTIAL,
                confidence=confidence,
                feedback="Close, but not quite right.",
                similarity=percent,
                edit_distance=distance,
                suggestion=_suggest(user, target, original_target, percent),
            )
        return None


def _suggest(user: str, expected: str, original_expected: str, percent: float) -> str:
    """Pick a hint for an answer that wasn't accepted."""
    if len(user) >= 2 and len(user) < len(expected) * 0.5:
        return f"The answer is longer. Try: {original_expected}"
    if len(user) > len(expected) * 1.5:
        return f"The answer is shorter. Try: {original_expected}"
    if percent > 50:
        return f"You're on the right track! The correct answer is: {original_expected}"
    if _common_prefix_length(user, expected) >= COMMON_PREFIX_LENGTH:
        return f"Good start! The complete answer is: {original_expected}"
    return f"The correct answer is: {original_expected}"


def _common_prefix_length(a: str, b: str) -> int:
    length = 0
    for char_a, char_b in zip(a, b):
        if char_a != char_b:
            break
        length += 1
    return length


def get_statistics(verdicts: Iterable[ValidationVerdict]) -> ValidationStatistics:
    """Summarize a set of verdicts. An empty set has accuracy 0."""
    verdicts = list(verdicts)
    total = len(verdicts)
    if total == 0:
        return ValidationStatistics()

    correct = sum(1 for v in verdicts if v.is_correct)
    breakdown = Counter(v.tier.value for v in verdicts)
    return ValidationStatistics(
        total=total,
        correct=correct,
        incorrect=total - correct,
        accuracy=correct / total,
        average_confidence=sum(v.confidence for v in verdicts) / total,
        tier_breakdown=dict(breakdown),
    )


@dataclass(frozen=True)
class QualityPolicy:
    """Maps a verdict's tier to the SM-2 quality fed into the scheduler."""

    exact: QualityRating = QualityRating(settings.quality_exact)
    alternate: QualityRating = QualityRating(settings.quality_alternate)
    fuzzy: QualityRating = QualityRating(settings.quality_fuzzy)
    partial: QualityRating = QualityRating(settings.quality_partial)
    incorrect: QualityRating = QualityRating(settings.quality_incorrect)

    def rating_for(self, verdict: ValidationVerdict) -> QualityRating:
        return QualityRating(getattr(self, verdict.tier.value))
