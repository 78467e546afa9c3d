"""Language-specific answer rules.

Each processor knows a handful of variations a learner may legitimately
type for a given language (articles, contractions, diminutives, spelling
variants). The validator consults the processor after the alternate tier
and before fuzzy matching. All comparisons happen on normalized text, so
the tables are normalized with the same options before use.
"""

import logging
import re

from backend.srs.assessment import ValidationOptions, ValidationTier, ValidationVerdict
from backend.srs.normalization import WHITESPACE, normalize

logger = logging.getLogger(__name__)

SPANISH_ARTICLES = ["el", "la", "los", "las", "un", "una", "unos", "unas"]

SPANISH_CONTRACTIONS: dict[str, list[str]] = {
    "del": ["de el"],
    "al": ["a el"],
}

# (diminutive suffix, ending of the base form)
SPANISH_DIMINUTIVES: list[tuple[str, str]] = [
    ("cito", "o"),
    ("cita", "a"),
    ("illo", "o"),
    ("illa", "a"),
    ("ito", "o"),
    ("ita", "a"),
]

ENGLISH_ARTICLES = ["a", "an", "the"]

ENGLISH_CONTRACTIONS: dict[str, list[str]] = {
    "can't": ["cannot", "can not"],
    "won't": ["will not"],
    "don't": ["do not"],
    "doesn't": ["does not"],
    "didn't": ["did not"],
    "isn't": ["is not"],
    "aren't": ["are not"],
    "wasn't": ["was not"],
    "weren't": ["were not"],
    "haven't": ["have not"],
    "hasn't": ["has not"],
    "hadn't": ["had not"],
    "wouldn't": ["would not"],
    "shouldn't": ["should not"],
    "couldn't": ["could not"],
    "it's": ["it is", "it has"],
    "i'm": ["i am"],
    "you're": ["you are"],
    "we're": ["we are"],
    "they're": ["they are"],
    "i've": ["i have"],
    "you've": ["you have"],
    "we've": ["we have"],
    "they've": ["they have"],
    "i'll": ["i will"],
    "you'll": ["you will"],
    "he'll": ["he will"],
    "she'll": ["she will"],
    "we'll": ["we will"],
    "they'll": ["they will"],
}

# (British ending, American ending, pattern the stem before it must match).
# Endings only apply at the end of a word; the stem pattern keeps short or
# unrelated words (four, there, wise, vogue) out.
ENGLISH_SPELLING_VARIANTS: list[tuple[str, str, str]] = [
    ("our", "or", r"\w{2,}"),  # colour / color
    ("re", "er", r"\w*[bgtv]"),  # centre / center
    ("ise", "ize", r"\w{3,}"),  # realise / realize
    ("ised", "ized", r"\w{3,}"),
    ("ising", "izing", r"\w{3,}"),
    ("yse", "yze", r"\w{2,}"),  # analyse / analyze
    ("ogue", "og", r"\w{2,}"),  # dialogue / dialog
    ("lled", "led", r"\w{2,}"),  # travelled / traveled
    ("lling", "ling", r"\w{2,}"),
]

SPELLING_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(rf"\b({stem}){british}\b"), american)
    for british, american, stem in ENGLISH_SPELLING_VARIANTS
]


def _accepted(
    feedback: str,
    matched_answer: str,
    confidence: float = 1.0,
    edit_distance: int = 0,
    suggestion: str | None = None,
) -> ValidationVerdict:
    """Build an accepted verdict for a language rule match."""
    tier = ValidationTier.ALTERNATE if confidence >= 1.0 else ValidationTier.FUZZY
    return ValidationVerdict(
        is_correct=True,
        tier=tier,
        confidence=confidence,
        similarity=round(confidence * 100, 1),
        edit_distance=edit_distance,
        matched_answer=matched_answer,
        feedback=feedback,
        suggestion=suggestion,
    )


class LanguageProcessor:
    """Base processor: no special rules."""

    language_code = "default"
    language_name = "Default"

    def prepare(self, text: str) -> str:
        """Language-specific cleanup applied before the main normalization."""
        return WHITESPACE.sub(" ", text).strip()

    def check_special_rules(
        self,
        user: str,
        expected: str,
        original_expected: str,
        options: ValidationOptions,
    ) -> ValidationVerdict | None:
        """Return a verdict if a language rule accepts ``user`` for ``expected``.

        Both ``user`` and ``expected`` are already normalized.
        """
        return None

    def _check_articles(
        self,
        articles: list[str],
        user: str,
        expected: str,
        original_expected: str,
    ) -> ValidationVerdict | None:
        user_words = user.split(" ")
        expected_words = expected.split(" ")

        # Article included but not required
        if len(user_words) > len(expected_words) and user_words[0] in articles:
            if " ".join(user_words[1:]) == expected:
                return _accepted("Correct! (Article included but not required)", original_expected)

        # Article required but omitted
        if len(expected_words) > len(user_words) and expected_words[0] in articles:
            if user == " ".join(expected_words[1:]):
                return _accepted(
                    "Almost correct! Consider including the article.",
                    original_expected,
                    confidence=0.95,
                    edit_distance=1,
                    suggestion=f"More complete: {original_expected}",
                )
        return None

    def _check_contractions(
        self,
        table: dict[str, list[str]],
        user: str,
        expected: str,
        original_expected: str,
        options: ValidationOptions,
    ) -> ValidationVerdict | None:
        for raw_contraction, raw_expansions in table.items():
            contraction = _normalize_like(raw_contraction, options)
            for raw_expansion in raw_expansions:
                expansion = _normalize_like(raw_expansion, options)
                if _replace_word(user, contraction, expansion) == expected:
                    return _accepted("Correct! (Contraction accepted)", original_expected)
                if _replace_word(expected, contraction, expansion) == user:
                    return _accepted("Correct! (Expanded form accepted)", original_expected)
        return None


class SpanishProcessor(LanguageProcessor):
    """Articles, contractions (del, al) and diminutives."""

    language_code = "es"
    language_name = "Spanish"

    def prepare(self, text: str) -> str:
        return super().prepare(text.replace("¿", "").replace("¡", ""))

    def check_special_rules(
        self,
        user: str,
        expected: str,
        original_expected: str,
        options: ValidationOptions,
    ) -> ValidationVerdict | None:
        return (
            self._check_articles(SPANISH_ARTICLES, user, expected, original_expected)
            or self._check_contractions(
                SPANISH_CONTRACTIONS, user, expected, original_expected, options
            )
            or self._check_diminutives(user, expected, original_expected)
        )

    def _check_diminutives(
        self,
        user: str,
        expected: str,
        original_expected: str,
    ) -> ValidationVerdict | None:
        """Accept perrito for perro (and perro for perrito) as a near miss."""
        for suffix, ending in SPANISH_DIMINUTIVES:
            if user.endswith(suffix) and not expected.endswith(suffix):
                base = user[: -len(suffix)]
                if expected in (base + ending, base):
                    return _accepted(
                        "Almost correct! Diminutive form used.",
                        original_expected,
                        confidence=0.95,
                        edit_distance=len(suffix),
                        suggestion=f"Expected: {original_expected}",
                    )
            if expected.endswith(suffix) and not user.endswith(suffix):
                base = expected[: -len(suffix)]
                if user in (base + ending, base):
                    return _accepted(
                        "Almost correct! Missing diminutive form.",
                        original_expected,
                        confidence=0.95,
                        edit_distance=len(suffix),
                        suggestion=f"Try: {original_expected}",
                    )
        return None


class EnglishProcessor(LanguageProcessor):
    """Contractions, British/American spelling and article usage."""

    language_code = "en"
    language_name = "English"

    def check_special_rules(
        self,
        user: str,
        expected: str,
        original_expected: str,
        options: ValidationOptions,
    ) -> ValidationVerdict | None:
        return (
            self._check_contractions(
                ENGLISH_CONTRACTIONS, user, expected, original_expected, options
            )
            or self._check_spelling(user, expected, original_expected)
            or self._check_articles(ENGLISH_ARTICLES, user, expected, original_expected)
            or self._check_a_an(user, expected, original_expected)
        )

    def _check_spelling(
        self,
        user: str,
        expected: str,
        original_expected: str,
    ) -> ValidationVerdict | None:
        for pattern, american in SPELLING_PATTERNS:
            replacement = rf"\g<1>{american}"
            if pattern.sub(replacement, user) == expected:
                return _accepted("Correct! (British spelling accepted)", original_expected)
            if pattern.sub(replacement, expected) == user:
                return _accepted("Correct! (American spelling accepted)", original_expected)
        return None

    def _check_a_an(
        self,
        user: str,
        expected: str,
        original_expected: str,
    ) -> ValidationVerdict | None:
        user_words = user.split(" ")
        expected_words = expected.split(" ")
        if {user_words[0], expected_words[0]} != {"a", "an"}:
            return None
        if user_words[1:] != expected_words[1:]:
            return None
        sound = "vowel" if expected_words[0] == "an" else "consonant"
        return _accepted(
            f'Almost perfect! Use "{expected_words[0]}" before {sound} sounds.',
            original_expected,
            confidence=0.98,
            edit_distance=1,
            suggestion=f"Try: {original_expected}",
        )


class LanguageRegistry:
    """Lookup of processors by ISO 639-1 code, falling back to the default."""

    def __init__(self, processors: list[LanguageProcessor] | None = None) -> None:
        self._processors: dict[str, LanguageProcessor] = {}
        self._default = LanguageProcessor()
        for processor in processors or [SpanishProcessor(), EnglishProcessor()]:
            self.register(processor)

    def register(self, processor: LanguageProcessor) -> None:
        self._processors[processor.language_code] = processor

    def get(self, language_code: str | None) -> LanguageProcessor:
        if language_code is None:
            return self._default
        processor = self._processors.get(language_code.lower())
        if processor is None:
            logger.debug("No processor for language %r, using default", language_code)
            return self._default
        return processor

    @property
    def languages(self) -> list[str]:
        return sorted(self._processors)


def _normalize_like(text: str, options: ValidationOptions) -> str:
    return normalize(
        text,
        case_sensitive=options.case_sensitive,
        accent_sensitive=options.accent_sensitive,
        punctuation_sensitive=options.punctuation_sensitive,
    )


def _replace_word(text: str, old: str, new: str) -> str:
    """Replace whole-word occurrences of ``old`` in ``text``."""
    if not old:
        return text
    return re.sub(rf"(?<!\S){re.escape(old)}(?!\S)", lambda _: new, text)
