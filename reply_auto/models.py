"""
Domain records passed between the template stores, usage logs, and the
suggestion pipeline.

Templates are only built through `Template.from_dict`, which validates the
raw row so that the matcher can rely on a well-formed keyword tuple.

Example:
    >>> template = Template.from_dict(
    ...     {"id": "t1", "label": "Auto", "body": "Need repairs? {url}", "keywords": ["car", "-scam"]}
    ... )
    >>> template.keywords
    ('car', '-scam')
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from reply_auto.errors import TemplateValidationError


def _clean_optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_string_list(raw: Any, field_name: str, template_id: str) -> Tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        raise TemplateValidationError(
            f"Template '{template_id}': {field_name} must be a list, got {type(raw).__name__}."
        )
    for index, item in enumerate(raw):
        if not isinstance(item, str):
            raise TemplateValidationError(
                f"Template '{template_id}': {field_name}[{index}] must be a string."
            )
    return tuple(raw)


def parse_timestamp(value: Any) -> datetime:
    """
    Normalize a timestamp value to a timezone-aware UTC datetime.

    Args:
        value: A datetime, an ISO8601 string, or epoch milliseconds.

    Returns:
        The equivalent UTC datetime. Naive datetimes are assumed to be UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"Timestamp out of range: {value!r}") from exc
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Template:
    """
    A user-authored reply unit.

    `variants` holds alternate bodies; variant index 0 is always `body`, and
    index i >= 1 refers to `variants[i - 1]`.
    """

    id: str
    label: str
    body: str
    keywords: Tuple[str, ...] = ()
    category: Optional[str] = None
    url: Optional[str] = None
    variants: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        """
        Build a Template from a raw store row.

        Args:
            data: Mapping with `id`, `body` (or legacy `template`), `keywords`,
                and optionally `label`, `category`, `url`, `variants`.

        Returns:
            A validated Template.

        Raises:
            TemplateValidationError: If required fields are missing or the
                keyword/variant data is malformed.
        """
        if not isinstance(data, dict):
            raise TemplateValidationError(f"Template row must be a mapping, got {type(data).__name__}.")

        template_id = _clean_optional(data.get("id"))
        if not template_id:
            raise TemplateValidationError("Template id is required.")

        body = data.get("body")
        if body is None:
            body = data.get("template")
        if not isinstance(body, str) or not body.strip():
            raise TemplateValidationError(f"Template '{template_id}': body is required.")

        if "keywords" not in data or data["keywords"] is None:
            raise TemplateValidationError(f"Template '{template_id}': keywords are missing.")
        keywords = _parse_string_list(data["keywords"], "keywords", template_id)

        raw_variants = data.get("variants")
        variants = () if raw_variants is None else _parse_string_list(raw_variants, "variants", template_id)

        return cls(
            id=template_id,
            label=_clean_optional(data.get("label")) or template_id,
            body=body,
            keywords=keywords,
            category=_clean_optional(data.get("category")),
            url=_clean_optional(data.get("url")),
            variants=tuple(v for v in variants if v.strip()),
        )

    def bodies(self) -> List[Tuple[int, str]]:
        """Return `(variant_index, text)` pairs, base body first."""
        return [(0, self.body)] + [(index, text) for index, text in enumerate(self.variants, start=1)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "body": self.body,
            "keywords": list(self.keywords),
            "category": self.category,
            "url": self.url,
            "variants": list(self.variants),
        }


@dataclass(frozen=True)
class UsageRecord:
    """One accepted suggestion in a group. Never mutated once appended."""

    template_id: str
    group_id: str
    timestamp: datetime
    variant_index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        return cls(
            template_id=str(data["template_id"]),
            group_id=str(data["group_id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            variant_index=int(data.get("variant_index") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "group_id": self.group_id,
            "timestamp": self.timestamp.isoformat(),
            "variant_index": self.variant_index,
        }


@dataclass
class MatchCandidate:
    template: Template
    rendered_text: str
    variant_index: int
    score: int
    recently_used: bool = False
    last_used_at: Optional[datetime] = None


@dataclass(frozen=True)
class Suggestion:
    """Output unit handed to the presentation layer."""

    text: str
    template_id: str
    template_label: str
    variant_index: int = 0
    is_fallback: bool = False
    is_limit_notice: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "template_id": self.template_id,
            "template_label": self.template_label,
            "variant_index": self.variant_index,
            "is_fallback": self.is_fallback,
            "is_limit_notice": self.is_limit_notice,
        }


@dataclass(frozen=True)
class QuotaState:
    allowed: bool
    used: int
    max: int
    reset_at: Optional[datetime] = None


@dataclass(frozen=True)
class CallerContext:
    """
    Per-request inputs supplied by the presentation layer.

    Attributes:
        group_id: Conversation/context identifier used for usage recency.
        preferred_category: Category that earns the category bonus. When None,
            the pipeline asks the template store for its stored preference.
        default_url: Link used when a template has no `url` of its own.
        unmetered: True for tiers without a rolling quota.
    """

    group_id: str
    preferred_category: Optional[str] = None
    default_url: str = ""
    unmetered: bool = False
