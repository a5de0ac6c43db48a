"""
Rules for category affinity and determining suggestion eligibility.
"""

from typing import Optional

from reply_auto.matcher.keyword_matcher import KeywordMatch

CATEGORY_BONUS = 3


def should_suggest(match: KeywordMatch, threshold: int = 0) -> bool:
    """
    Decide whether a keyword match is strong enough to become a candidate.

    Args:
        match: Result from `match_keywords`.
        threshold: Score the match must exceed.

    Returns:
        False for excluded matches, otherwise True if the score exceeds the threshold.
    """
    return not match.excluded and match.score > threshold


def apply_category_bonus(
    score: int,
    template_category: Optional[str],
    preferred_category: Optional[str],
) -> int:
    """
    Add the preferred-category bonus to an already viable score.

    The bonus is added once per template and never lifts a zero score, so a
    template with no keyword hits stays out of the results.

    Args:
        score: Keyword score from `match_keywords`.
        template_category: The template's category id, if any.
        preferred_category: The caller's preferred category id, if any.

    Returns:
        The boosted score.
    """
    if score <= 0 or not preferred_category:
        return score
    if template_category == preferred_category:
        return score + CATEGORY_BONUS
    return score
