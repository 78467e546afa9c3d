"""Tests for answer checking: normalization, edit distance, tiers and language rules."""

import pytest

from backend.srs.assessment import (
    AnswerValidator,
    QualityPolicy,
    ValidationOptions,
    ValidationTier,
    get_statistics,
)
from backend.srs.distance import MAX_DISTANCE_INPUT, levenshtein_distance, similarity
from backend.srs.language import (
    EnglishProcessor,
    LanguageProcessor,
    LanguageRegistry,
    SpanishProcessor,
)
from backend.srs.normalization import normalize
from backend.srs.sm2 import QualityRating

# --- Normalization ---


class TestNormalize:
    def test_defaults(self) -> None:
        assert normalize("  ¿Qué   TAL?  ") == "que tal"

    def test_strips_accents(self) -> None:
        assert normalize("café") == "cafe"
        assert normalize("niño") == "nino"

    def test_accent_sensitive_composes(self) -> None:
        decomposed = "cafe\u0301"
        assert normalize(decomposed, accent_sensitive=True) == normalize("caf\u00e9", accent_sensitive=True)
        assert normalize("caf\u00e9", accent_sensitive=True) == "caf\u00e9"

    def test_case_sensitive(self) -> None:
        assert normalize("Perro", case_sensitive=True) == "Perro"

    def test_punctuation_sensitive(self) -> None:
        assert normalize("hola!", punctuation_sensitive=True) == "hola!"
        assert normalize("don't") == "dont"

    def test_zero_width_removed(self) -> None:
        assert normalize("pe\u200brro\ufeff") == "perro"

    def test_empty(self) -> None:
        assert normalize("") == ""
        assert normalize("   \t\n") == ""

    def test_idempotent(self) -> None:
        for text in ["  ¿Qué TAL?", "Ça  va, très bien!", "l'été", "\u200bNIÑO\t", ""]:
            once = normalize(text)
            assert normalize(once) == once

    @pytest.mark.parametrize(
        "flags",
        [
            {"accent_sensitive": True},
            {"case_sensitive": True},
            {"punctuation_sensitive": True},
            {"accent_sensitive": True, "case_sensitive": True},
            {"accent_sensitive": True, "punctuation_sensitive": True},
        ],
    )
    def test_idempotent_with_flags(self, flags: dict[str, bool]) -> None:
        for text in ["e'\u0301", "a\u200b\u0301", "\u00c7a  va!", "cafe\u0301", "l'\u00e9t\u00e9", ""]:
            once = normalize(text, **flags)
            assert normalize(once, **flags) == once

    def test_accent_sensitive_composes_after_stripping(self) -> None:
        assert normalize("e'\u0301", accent_sensitive=True) == "\u00e9"


# --- Edit distance ---


class TestLevenshtein:
    def test_known_distances(self) -> None:
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("parro", "perro") == 1
        assert levenshtein_distance("perro", "perro") == 0

    def test_empty(self) -> None:
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3
        assert levenshtein_distance("", "") == 0

    def test_symmetric(self) -> None:
        for a, b in [("gato", "perro"), ("casa", "cosas"), ("flaw", "lawn")]:
            assert levenshtein_distance(a, b) == levenshtein_distance(b, a)

    def test_truncates_long_input(self) -> None:
        a = "a" * (MAX_DISTANCE_INPUT + 500)
        b = "a" * MAX_DISTANCE_INPUT
        assert levenshtein_distance(a, b) == 0

    def test_similarity(self) -> None:
        assert similarity("parro", "perro") == pytest.approx(80.0)
        assert similarity("", "") == 100.0
        assert similarity("abc", "xyz") == 0.0
        assert similarity("abc", "abd", distance=1) == pytest.approx(200 / 3)


# --- Validator tiers ---


class TestAnswerValidator:
    def setup_method(self) -> None:
        self.validator = AnswerValidator()

    def test_exact(self) -> None:
        verdict = self.validator.validate("perro", "perro")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.EXACT
        assert verdict.confidence == 1.0
        assert verdict.similarity == 100.0
        assert verdict.feedback == "Perfect match!"

    def test_exact_ignores_case(self) -> None:
        verdict = self.validator.validate("PERRO", "perro")
        assert verdict.tier == ValidationTier.EXACT
        assert verdict.is_correct

    def test_exact_ignores_accents_and_punctuation(self) -> None:
        assert self.validator.validate("Que tal", "¿Qué tal?").tier == ValidationTier.EXACT

    def test_alternate(self) -> None:
        options = ValidationOptions(alternate_answers=["el perro"])
        verdict = self.validator.validate("el perro", "perro", options)
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.ALTERNATE
        assert verdict.matched_answer == "el perro"
        assert verdict.confidence == 1.0

    def test_first_matching_alternate_wins(self) -> None:
        options = ValidationOptions(alternate_answers=["Can", "can"])
        verdict = self.validator.validate("can", "perro", options)
        assert verdict.matched_answer == "Can"

    def test_fuzzy_short_word(self) -> None:
        verdict = self.validator.validate("parro", "perro")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.FUZZY
        assert verdict.edit_distance == 1
        assert verdict.confidence >= 0.9
        assert verdict.suggestion == "Correct spelling: perro"

    def test_fuzzy_long_word(self) -> None:
        verdict = self.validator.validate("refrigeradr", "refrigerador")
        assert verdict.tier == ValidationTier.FUZZY
        assert verdict.confidence == pytest.approx(11 / 12)

    def test_fuzzy_matches_closest_alternate(self) -> None:
        options = ValidationOptions(alternate_answers=["can"])
        verdict = self.validator.validate("caan", "perro", options)
        assert verdict.tier == ValidationTier.FUZZY
        assert verdict.matched_answer == "can"

    def test_partial(self) -> None:
        verdict = self.validator.validate("computadoxx", "computadora")
        assert not verdict.is_correct
        assert verdict.tier == ValidationTier.PARTIAL
        assert verdict.edit_distance == 2
        assert 0.7 <= verdict.confidence < 0.9
        assert verdict.feedback == "Close, but not quite right."
        assert "computadora" in verdict.suggestion

    def test_partial_when_confidence_below_threshold(self) -> None:
        verdict = self.validator.validate("mariposas", "mariposa")
        assert verdict.tier == ValidationTier.PARTIAL
        assert not verdict.is_correct

    def test_incorrect(self) -> None:
        verdict = self.validator.validate("gato", "perro")
        assert not verdict.is_correct
        assert verdict.tier == ValidationTier.INCORRECT
        assert verdict.confidence == 0
        assert verdict.feedback == "Incorrect. The answer was: perro"

    def test_fuzzy_disabled(self) -> None:
        options = ValidationOptions(enable_fuzzy=False)
        verdict = self.validator.validate("parro", "perro", options)
        assert verdict.tier == ValidationTier.INCORRECT
        assert verdict.edit_distance == 1
        partial = self.validator.validate("computadoxx", "computadora", options)
        assert partial.tier == ValidationTier.INCORRECT

    def test_max_edit_distance(self) -> None:
        options = ValidationOptions(max_edit_distance=0)
        verdict = self.validator.validate("parro", "perro", options)
        assert not verdict.is_correct
        assert verdict.tier == ValidationTier.PARTIAL

    def test_accent_sensitive(self) -> None:
        options = ValidationOptions(accent_sensitive=True)
        verdict = self.validator.validate("cafe", "café", options)
        assert verdict.tier == ValidationTier.FUZZY

    def test_case_sensitive(self) -> None:
        options = ValidationOptions(case_sensitive=True)
        assert self.validator.validate("PERRO", "perro", options).tier != ValidationTier.EXACT

    def test_empty_answer(self) -> None:
        verdict = self.validator.validate("   ", "perro")
        assert not verdict.is_correct
        assert verdict.tier == ValidationTier.INCORRECT
        assert verdict.feedback == "No answer provided"
        assert verdict.suggestion == "Try typing: perro"

    def test_empty_answer_and_expected(self) -> None:
        assert self.validator.validate("", "").tier == ValidationTier.EXACT

    def test_answer_against_empty_expected(self) -> None:
        for expected in ["", "!!!"]:
            verdict = self.validator.validate("xy", expected)
            assert not verdict.is_correct
            assert verdict.tier == ValidationTier.INCORRECT
            assert verdict.confidence == 0

    def test_empty_expected_still_checks_alternates(self) -> None:
        options = ValidationOptions(alternate_answers=["el perro"])
        verdict = self.validator.validate("el perro", "", options)
        assert verdict.tier == ValidationTier.ALTERNATE

    def test_unrelated_short_words_rejected(self) -> None:
        for answer, expected in [("no", "si"), ("ab", "cd"), ("sol", "mar")]:
            verdict = self.validator.validate(answer, expected)
            assert not verdict.is_correct
            assert verdict.tier == ValidationTier.INCORRECT

    def test_two_edit_typo_in_short_word(self) -> None:
        verdict = self.validator.validate("cosas", "casa")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.FUZZY
        assert verdict.edit_distance == 2

    def test_too_long(self) -> None:
        verdict = self.validator.validate("a" * 1001, "perro")
        assert verdict.tier == ValidationTier.INCORRECT
        assert verdict.feedback == "Answer is too long to check"

    def test_never_raises_on_odd_input(self) -> None:
        for text in ["!!!", "\u200b", "😀", "a\nb\tc", None]:
            verdict = self.validator.validate(text, "perro")
            assert 0.0 <= verdict.confidence <= 1.0

    def test_suggestions(self) -> None:
        assert "longer" in self.validator.validate("bi", "biblioteca").suggestion
        assert "shorter" in self.validator.validate("perrosperros", "perro").suggestion
        assert self.validator.validate("xyz", "perro").suggestion == "The correct answer is: perro"

    def test_validate_batch(self) -> None:
        verdicts = self.validator.validate_batch([("perro", "perro"), ("gato", "perro"), ("parro", "perro")])
        assert [v.tier for v in verdicts] == [
            ValidationTier.EXACT,
            ValidationTier.INCORRECT,
            ValidationTier.FUZZY,
        ]


class TestStatistics:
    def test_empty(self) -> None:
        stats = get_statistics([])
        assert stats.total == 0
        assert stats.accuracy == 0
        assert stats.tier_breakdown == {}

    def test_breakdown(self) -> None:
        validator = AnswerValidator()
        verdicts = validator.validate_batch([("perro", "perro"), ("parro", "perro"), ("gato", "perro")])
        stats = validator.get_statistics(verdicts)
        assert stats.total == 3
        assert stats.correct == 2
        assert stats.incorrect == 1
        assert stats.accuracy == pytest.approx(2 / 3)
        assert stats.average_confidence == pytest.approx((1.0 + 0.95 + 0.0) / 3)
        assert stats.tier_breakdown == {"exact": 1, "fuzzy": 1, "incorrect": 1}


class TestQualityPolicy:
    def test_default_mapping(self) -> None:
        validator = AnswerValidator()
        policy = QualityPolicy()
        alt = ValidationOptions(alternate_answers=["el perro"])
        assert policy.rating_for(validator.validate("perro", "perro")) == QualityRating.EASY
        assert policy.rating_for(validator.validate("el perro", "perro", alt)) == QualityRating.GOOD
        assert policy.rating_for(validator.validate("parro", "perro")) == QualityRating.GOOD
        assert policy.rating_for(validator.validate("computadoxx", "computadora")) == QualityRating.HARD
        assert policy.rating_for(validator.validate("gato", "perro")) == QualityRating.AGAIN

    def test_custom_mapping(self) -> None:
        policy = QualityPolicy(fuzzy=QualityRating.HARD)
        verdict = AnswerValidator().validate("parro", "perro")
        assert policy.rating_for(verdict) == QualityRating.HARD


# --- Language rules ---


class TestSpanishProcessor:
    def setup_method(self) -> None:
        self.validator = AnswerValidator(processor=SpanishProcessor())

    def test_article_included(self) -> None:
        verdict = self.validator.validate("el perro", "perro")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.ALTERNATE

    def test_article_omitted(self) -> None:
        verdict = self.validator.validate("perro", "el perro")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.FUZZY
        assert verdict.confidence == pytest.approx(0.95)

    def test_contraction(self) -> None:
        verdict = self.validator.validate("de el", "del")
        assert verdict.is_correct
        assert "Expanded" in verdict.feedback

    def test_diminutive(self) -> None:
        verdict = self.validator.validate("perrito", "perro")
        assert verdict.is_correct
        assert verdict.feedback == "Almost correct! Diminutive form used."
        missing = self.validator.validate("casa", "casita")
        assert missing.is_correct
        assert missing.feedback == "Almost correct! Missing diminutive form."

    def test_inverted_marks_ignored(self) -> None:
        options = ValidationOptions(punctuation_sensitive=True)
        assert self.validator.validate("¡Hola!", "Hola!", options).tier == ValidationTier.EXACT

    def test_unrelated_still_incorrect(self) -> None:
        assert self.validator.validate("gato", "perro").tier == ValidationTier.INCORRECT


class TestEnglishProcessor:
    def setup_method(self) -> None:
        self.validator = AnswerValidator(processor=EnglishProcessor())

    def test_contraction(self) -> None:
        verdict = self.validator.validate("cannot", "can't")
        assert verdict.is_correct
        assert verdict.tier == ValidationTier.ALTERNATE

    def test_spelling_variant(self) -> None:
        verdict = self.validator.validate("colour", "color")
        assert verdict.is_correct
        assert verdict.feedback == "Correct! (British spelling accepted)"

    def test_spelling_variant_endings(self) -> None:
        assert self.validator.validate("centre", "center").tier == ValidationTier.ALTERNATE
        assert self.validator.validate("travelled", "traveled").tier == ValidationTier.ALTERNATE
        american = self.validator.validate("realize", "realise")
        assert american.feedback == "Correct! (American spelling accepted)"

    def test_transposition_is_not_a_spelling_variant(self) -> None:
        verdict = self.validator.validate("theer", "there")
        assert verdict.tier != ValidationTier.ALTERNATE
        assert "spelling accepted" not in verdict.feedback
        four = self.validator.validate("four", "for")
        assert "spelling accepted" not in four.feedback

    def test_a_an(self) -> None:
        verdict = self.validator.validate("a apple", "an apple")
        assert verdict.is_correct
        assert verdict.confidence == pytest.approx(0.98)
        assert '"an"' in verdict.feedback

    def test_article_included(self) -> None:
        assert self.validator.validate("the house", "house").is_correct


class TestLanguageRegistry:
    def test_lookup(self) -> None:
        registry = LanguageRegistry()
        assert isinstance(registry.get("ES"), SpanishProcessor)
        assert isinstance(registry.get("en"), EnglishProcessor)
        assert registry.languages == ["en", "es"]

    def test_fallback(self) -> None:
        registry = LanguageRegistry()
        assert registry.get("fr").language_code == "default"
        assert registry.get(None).language_code == "default"

    def test_register(self) -> None:
        class FrenchProcessor(LanguageProcessor):
            language_code = "fr"
            language_name = "French"

        registry = LanguageRegistry()
        registry.register(FrenchProcessor())
        assert registry.get("fr").language_name == "French"
