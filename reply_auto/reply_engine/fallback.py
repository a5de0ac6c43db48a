"""
Canned suggestions used when no template matches a post.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from reply_auto.models import Suggestion

FALLBACK_TEMPLATE_ID = "fallback"


@dataclass(frozen=True)
class FallbackHint:
    label: str
    triggers: Tuple[str, ...]
    text: str


FALLBACK_HINTS: Tuple[FallbackHint, ...] = (
    FallbackHint(
        label="Auto Fallback",
        triggers=("car", "auto"),
        text="Great car! For automotive services, check us out!",
    ),
    FallbackHint(
        label="Fitness Fallback",
        triggers=("fitness", "gym"),
        text="Looking strong! Need a personal trainer? We can help!",
    ),
    FallbackHint(
        label="Food Fallback",
        triggers=("food", "restaurant"),
        text="Looks delicious! For catering services, contact us!",
    ),
)

GENERIC_FALLBACK = FallbackHint(
    label="Default Fallback",
    triggers=(),
    text="Great post! Check out our services if you need help with this!",
)


def _with_url(text: str, default_url: str) -> str:
    return f"{text} {default_url}" if default_url else text


def generate_fallback_suggestions(post_text: str, default_url: str = "") -> List[Suggestion]:
    """
    Produce canned suggestions from simple domain hints in the raw post text.

    Args:
        post_text: Raw post body, searched case-insensitively by substring.
        default_url: Link appended to every canned suggestion when set.

    Returns:
        One suggestion per matching hint, or a single generic suggestion when
        no hint matches. Never empty.
    """
    lowered = (post_text or "").lower()
    default_url = (default_url or "").strip()
    suggestions: List[Suggestion] = []

    for hint in FALLBACK_HINTS:
        if any(trigger in lowered for trigger in hint.triggers):
            suggestions.append(
                Suggestion(
                    text=_with_url(hint.text, default_url),
                    template_id=FALLBACK_TEMPLATE_ID,
                    template_label=hint.label,
                    is_fallback=True,
                )
            )

    if not suggestions:
        suggestions.append(
            Suggestion(
                text=_with_url(GENERIC_FALLBACK.text, default_url),
                template_id=FALLBACK_TEMPLATE_ID,
                template_label=GENERIC_FALLBACK.label,
                is_fallback=True,
            )
        )

    return suggestions
