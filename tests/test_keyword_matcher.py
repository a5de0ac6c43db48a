"""Tests for tokenizing post text and scoring keyword rules."""

import pytest

from reply_auto.matcher.keyword_matcher import (
    EXACT_MATCH_POINTS,
    PARTIAL_MATCH_POINTS,
    match_keywords,
    tokenize,
)
from reply_auto.matcher.rules import CATEGORY_BONUS, apply_category_bonus, should_suggest


class TestTokenize:
    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Just got my CAR fixed, auto-shop was great!") == [
            "just", "got", "my", "car", "fixed", "auto", "shop", "was", "great",
        ]

    def test_empty_text_yields_no_tokens(self):
        assert tokenize("") == []
        assert tokenize("   \n\t ") == []
        assert tokenize("!!! ???") == []

    def test_keeps_digits_and_unicode_letters(self):
        assert tokenize("Café 2024 #1") == ["café", "2024", "1"]

    def test_underscore_is_a_separator(self):
        assert tokenize("snake_case") == ["snake", "case"]


class TestMatchKeywords:
    def test_worked_example_scores_two_exact_matches(self):
        tokens = tokenize("Just got my car fixed, auto shop was great")
        result = match_keywords(tokens, ["car", "auto"])
        assert result.score == 4
        assert result.excluded is False
        assert result.matched == ["car", "auto"]
        assert should_suggest(result)

    def test_partial_match_scores_one(self):
        result = match_keywords(tokenize("Visit our carwash today"), ["car"])
        assert result.score == PARTIAL_MATCH_POINTS

    def test_exact_match_beats_partial(self):
        exact = match_keywords(tokenize("new car"), ["car"])
        partial = match_keywords(tokenize("new carpet"), ["car"])
        assert exact.score == EXACT_MATCH_POINTS
        assert exact.score >= partial.score

    def test_short_keywords_never_match_partially(self):
        assert match_keywords(tokenize("the oven is on"), ["ov"]).score == 0
        assert match_keywords(tokenize("ov is a token"), ["ov"]).score == EXACT_MATCH_POINTS

    def test_keywords_are_trimmed_and_lowercased(self):
        result = match_keywords(tokenize("Great GYM session"), ["  Gym  ", "", "   "])
        assert result.score == EXACT_MATCH_POINTS

    def test_no_match_contributes_zero(self):
        result = match_keywords(tokenize("lovely weather"), ["car", "gym"])
        assert result.score == 0
        assert not should_suggest(result)

    def test_negative_exact_hit_excludes_despite_positive_matches(self):
        tokens = tokenize("This car dealer is a scam")
        result = match_keywords(tokens, ["car", "dealer", "-scam"])
        assert result.excluded is True
        assert result.excluded_by == "scam"
        assert not should_suggest(result)

    def test_negative_hit_vetoes_before_later_keywords(self):
        tokens = tokenize("scam alert car auto")
        result = match_keywords(tokens, ["-scam", "car", "auto"])
        assert result.excluded is True
        assert result.score == 0

    def test_negative_partial_hit_excludes_when_long_enough(self):
        result = match_keywords(tokenize("total scammers here, nice car"), ["car", "-scam"])
        assert result.excluded is True

    def test_short_negative_term_requires_exact_token(self):
        assert match_keywords(tokenize("nice car ok"), ["car", "-ok"]).excluded is True
        assert match_keywords(tokenize("nice car okay"), ["car", "-ok"]).excluded is False

    def test_bare_negation_marker_is_ignored(self):
        result = match_keywords(tokenize("nice car"), ["car", "-", " - "])
        assert result.excluded is False
        assert result.score == EXACT_MATCH_POINTS

    def test_empty_tokens_never_match(self):
        result = match_keywords([], ["car", "-scam"])
        assert result.score == 0
        assert result.excluded is False


class TestRules:
    def test_should_suggest_requires_positive_score(self):
        assert should_suggest(match_keywords(["car"], ["car"]))
        assert not should_suggest(match_keywords(["boat"], ["car"]))
        assert not should_suggest(match_keywords(["car", "scam"], ["car", "-scam"]))

    @pytest.mark.parametrize(
        "score, template_category, preferred, expected",
        [
            (2, "auto", "auto", 2 + CATEGORY_BONUS),
            (2, "auto", "food", 2),
            (2, "auto", None, 2),
            (2, None, "auto", 2),
            (0, "auto", "auto", 0),
        ],
    )
    def test_category_bonus(self, score, template_category, preferred, expected):
        assert apply_category_bonus(score, template_category, preferred) == expected
