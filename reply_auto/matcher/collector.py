"""
Runs the keyword matcher and category booster over a template library and
builds the candidate records handed to the ranker.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from reply_auto.matcher.keyword_matcher import match_keywords
from reply_auto.matcher.rules import apply_category_bonus, should_suggest
from reply_auto.models import MatchCandidate, Template
from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)


def collect_matches(
    templates: Iterable[Template],
    tokens: Sequence[str],
    preferred_category: Optional[str] = None,
) -> List[MatchCandidate]:
    """
    Score every template and emit candidates for the viable ones.

    Args:
        templates: Validated templates from the template store.
        tokens: Tokenized post text.
        preferred_category: Category id that earns the category bonus.

    Returns:
        One MatchCandidate per body (base body, then variants) of each viable
        template, all bodies of a template sharing its score. Order follows the
        template iteration order.
    """
    candidates: List[MatchCandidate] = []

    for template in templates:
        match = match_keywords(tokens, template.keywords)
        if match.excluded:
            logger.debug("Template %s excluded by keyword '-%s'", template.id, match.excluded_by)
            continue
        if not should_suggest(match):
            continue

        score = apply_category_bonus(match.score, template.category, preferred_category)
        logger.debug("Template %s matched %s, score %d", template.id, match.matched, score)

        for variant_index, text in template.bodies():
            candidates.append(
                MatchCandidate(
                    template=template,
                    rendered_text=text,
                    variant_index=variant_index,
                    score=score,
                )
            )

    return candidates
