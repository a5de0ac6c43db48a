"""
High-level suggestion pipeline:
(1) quota check → (2) tokenize → (3) collect matches → (4) rank by usage
→ (5) render placeholders, or fall back to canned suggestions when nothing
matched.

Collaborator reads are awaited one after another; the pipeline holds no state
between runs, so concurrent calls are safe.

Example:
    >>> pipeline = SuggestionPipeline(template_store, usage_log, quota_policy)
    >>> suggestions = await pipeline.generate_suggestions(
    ...     "Just got my car fixed", CallerContext(group_id="facebook.com/groups/123")
    ... )
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Callable, List, Optional

from reply_auto.config.settings import EngineSettings
from reply_auto.matcher.collector import collect_matches
from reply_auto.matcher.keyword_matcher import tokenize
from reply_auto.models import CallerContext, MatchCandidate, Suggestion, Template, UsageRecord
from reply_auto.reply_engine.fallback import generate_fallback_suggestions
from reply_auto.reply_engine.reply_generator import rank_candidates
from reply_auto.reply_engine.template_builder import build_reply, resolve_url
from reply_auto.stores.base import QuotaPolicy, TemplateStore, UsageLog, utc_now
from reply_auto.stores.summary import GroupUsageSummary, summarize_group_usage
from reply_auto.utils.logger import get_logger
from reply_auto.utils.rate_limit import build_limit_notice, check_quota

logger = get_logger(__name__)


class PipelineStage(str, enum.Enum):
    QUOTA_CHECK = "quota_check"
    TOKENIZE = "tokenize"
    COLLECT_MATCHES = "collect_matches"
    FALLBACK = "fallback"
    RANK = "rank"
    RENDER = "render"
    DONE = "done"


class SuggestionPipeline:
    """
    Orchestrates matching, ranking, and rendering for one post at a time.

    Args:
        template_store: Source of templates and the stored preferred category.
        usage_log: Source of per-group usage history; None disables rotation.
        quota_policy: Source of rolling usage counts; None disables metering.
        settings: Engine tunables; defaults to `EngineSettings()`.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        template_store: TemplateStore,
        usage_log: Optional[UsageLog] = None,
        quota_policy: Optional[QuotaPolicy] = None,
        settings: Optional[EngineSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.template_store = template_store
        self.usage_log = usage_log
        self.quota_policy = quota_policy
        self.settings = settings or EngineSettings()
        self.clock = clock

    async def generate_suggestions(self, post_text: str, context: CallerContext) -> List[Suggestion]:
        """
        Produce the ordered suggestion list for a post.

        Args:
            post_text: Raw post body; may be empty.
            context: Caller group, preferred category, default URL, and tier.

        Returns:
            A non-empty list: a single limit notice, canned fallbacks, or the
            ranked and rendered template suggestions. Never raises.
        """
        default_url = context.default_url or self.settings.default_url
        try:
            return await self._run(post_text or "", context, default_url)
        except Exception as exc:  # noqa: BLE001
            logger.error("Suggestion pipeline failed, using fallback: %s", exc, exc_info=True)
            return generate_fallback_suggestions(post_text or "", default_url)

    async def _run(self, post_text: str, context: CallerContext, default_url: str) -> List[Suggestion]:
        logger.debug("Stage %s", PipelineStage.QUOTA_CHECK.value)
        quota = await check_quota(
            self.quota_policy,
            unmetered=context.unmetered,
            max_per_window=self.settings.quota_max,
            window_hours=self.settings.window_hours,
        )
        if not quota.allowed:
            logger.info("Quota exhausted (%d/%d) for group %s", quota.used, quota.max, context.group_id)
            return [build_limit_notice(quota, now=self.clock(), window_hours=self.settings.window_hours)]

        logger.debug("Stage %s", PipelineStage.TOKENIZE.value)
        tokens = tokenize(post_text)

        logger.debug("Stage %s", PipelineStage.COLLECT_MATCHES.value)
        templates = await self._load_templates()
        preferred_category = context.preferred_category or await self._load_preferred_category()
        candidates = collect_matches(templates, tokens, preferred_category=preferred_category)
        logger.info("Matched %d candidates from %d templates", len(candidates), len(templates))

        if not candidates:
            logger.debug("Stage %s", PipelineStage.FALLBACK.value)
            return generate_fallback_suggestions(post_text, default_url)

        logger.debug("Stage %s", PipelineStage.RANK.value)
        usage = await self._load_usage(context.group_id)
        ranked = rank_candidates(
            candidates,
            usage,
            group_id=context.group_id,
            result_size=self.settings.result_size,
            window_hours=self.settings.window_hours,
            now=self.clock(),
        )

        logger.debug("Stage %s", PipelineStage.RENDER.value)
        suggestions = [self._render(candidate, default_url) for candidate in ranked]
        logger.debug("Stage %s", PipelineStage.DONE.value)
        return suggestions

    @staticmethod
    def _render(candidate: MatchCandidate, default_url: str) -> Suggestion:
        template = candidate.template
        url = resolve_url(template.url, default_url)
        return Suggestion(
            text=build_reply(candidate.rendered_text, url),
            template_id=template.id,
            template_label=template.label,
            variant_index=candidate.variant_index,
        )

    async def _load_templates(self) -> List[Template]:
        try:
            return await self.template_store.list_templates()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Template store unavailable, treating library as empty: %s", exc, exc_info=True)
            return []

    async def _load_preferred_category(self) -> Optional[str]:
        try:
            return await self.template_store.get_preferred_category()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read preferred category: %s", exc)
            return None

    async def _load_usage(self, group_id: str) -> List[UsageRecord]:
        if self.usage_log is None:
            return []
        try:
            return await self.usage_log.query_usage(group_id, self.settings.window_hours)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Usage log unavailable, treating usage as empty: %s", exc, exc_info=True)
            return []

    async def record_acceptance(
        self,
        template_id: str,
        group_id: str,
        variant_index: int = 0,
    ) -> UsageRecord:
        """
        Append a usage record for an accepted suggestion.

        Raises:
            RuntimeError: If the pipeline has no usage log.
            StoreError: If the usage log cannot be written.
        """
        if self.usage_log is None:
            raise RuntimeError("No usage log configured.")
        record = UsageRecord(
            template_id=template_id,
            group_id=group_id,
            timestamp=self.clock(),
            variant_index=variant_index,
        )
        await self.usage_log.append_usage(record)
        logger.info("Recorded usage of template %s (variant %d) in %s", template_id, variant_index, group_id)
        return record

    async def group_summary(self, group_id: str) -> GroupUsageSummary:
        """
        Summarize a group's full usage history; recent counts use the usage window.

        Raises:
            RuntimeError: If the pipeline has no usage log.
            StoreError: If the usage log cannot be read.
        """
        if self.usage_log is None:
            raise RuntimeError("No usage log configured.")
        records = await self.usage_log.query_usage(group_id, None)
        return summarize_group_usage(
            records,
            group_id,
            window_hours=self.settings.window_hours,
            now=self.clock(),
        )

    async def clear_group_usage(self, group_id: str) -> int:
        """
        Forget every usage record for a group, returning how many were removed.

        Raises:
            RuntimeError: If the pipeline has no usage log.
            StoreError: If the usage log cannot be written.
        """
        if self.usage_log is None:
            raise RuntimeError("No usage log configured.")
        removed = await self.usage_log.clear_group(group_id)
        logger.info("Cleared %d usage records for %s", removed, group_id)
        return removed
