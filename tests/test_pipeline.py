"""End-to-end tests for SuggestionPipeline with in-memory collaborators."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from conftest import NOW, make_template

from reply_auto.config.settings import EngineSettings
from reply_auto.errors import StoreError
from reply_auto.models import CallerContext, UsageRecord
from reply_auto.stores.memory import InMemoryTemplateStore, InMemoryUsageLog
from reply_auto.stores.quota import UsageLogQuotaPolicy
from reply_auto.workflow.pipeline import SuggestionPipeline

GROUP = "facebook.com/groups/123"
CAR_POST = "Just got my car fixed, auto shop was great"


def auto_template(**kwargs):
    return make_template(
        "auto",
        ["car", "auto"],
        body="Need auto repair? {url}",
        url="http://x.test",
        **kwargs,
    )


def build_pipeline(templates, usage=(), clock=lambda: NOW, settings=None, preferred_category=None):
    usage_log = InMemoryUsageLog(usage, clock=clock)
    return SuggestionPipeline(
        template_store=InMemoryTemplateStore(templates, preferred_category=preferred_category),
        usage_log=usage_log,
        quota_policy=UsageLogQuotaPolicy(usage_log),
        settings=settings or EngineSettings(),
        clock=clock,
    )


def used(template_id, hours_ago, group=GROUP, variant_index=0):
    return UsageRecord(
        template_id=template_id,
        group_id=group,
        timestamp=NOW - timedelta(hours=hours_ago),
        variant_index=variant_index,
    )


@pytest.mark.asyncio
async def test_matching_template_is_rendered_with_its_url():
    pipeline = build_pipeline([auto_template()])

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP, unmetered=True))

    assert len(suggestions) == 1
    assert suggestions[0].text == "Need auto repair? http://x.test"
    assert suggestions[0].template_id == "auto"
    assert not suggestions[0].is_fallback


@pytest.mark.asyncio
async def test_negative_keyword_excludes_template_and_falls_back():
    pipeline = build_pipeline([make_template("auto", ["car", "-scam"])])

    suggestions = await pipeline.generate_suggestions(
        "Car dealer scam alert", CallerContext(group_id=GROUP, unmetered=True)
    )

    assert [s.template_label for s in suggestions] == ["Auto Fallback"]
    assert suggestions[0].is_fallback


@pytest.mark.asyncio
async def test_recently_used_template_moves_behind_fresh_ones():
    templates = [
        make_template("a", ["car"]),
        make_template("b", ["car"]),
        make_template("c", ["car"]),
    ]
    pipeline = build_pipeline(templates, usage=[used("a", 2)])

    suggestions = await pipeline.generate_suggestions("new car", CallerContext(group_id=GROUP, unmetered=True))

    assert [s.template_id for s in suggestions] == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_usage_in_other_groups_does_not_rotate():
    templates = [make_template("a", ["car"]), make_template("b", ["car"])]
    pipeline = build_pipeline(templates, usage=[used("a", 2, group="facebook.com/groups/999")])

    suggestions = await pipeline.generate_suggestions("new car", CallerContext(group_id=GROUP, unmetered=True))

    assert [s.template_id for s in suggestions] == ["a", "b"]


@pytest.mark.asyncio
async def test_results_are_capped_at_result_size():
    templates = [make_template(f"t{i}", ["car"]) for i in range(5)]
    pipeline = build_pipeline(templates)

    suggestions = await pipeline.generate_suggestions("car", CallerContext(group_id=GROUP, unmetered=True))

    assert [s.template_id for s in suggestions] == ["t0", "t1", "t2"]


@pytest.mark.asyncio
async def test_preferred_category_from_store_breaks_ties():
    templates = [
        make_template("generic", ["gym"]),
        make_template("trainer", ["gym"], category="fitness"),
    ]
    pipeline = build_pipeline(templates, preferred_category="fitness")

    suggestions = await pipeline.generate_suggestions("gym time", CallerContext(group_id=GROUP, unmetered=True))

    assert [s.template_id for s in suggestions] == ["trainer", "generic"]


@pytest.mark.asyncio
async def test_context_category_overrides_store_preference():
    templates = [
        make_template("trainer", ["gym"], category="fitness"),
        make_template("diner", ["gym"], category="food"),
    ]
    pipeline = build_pipeline(templates, preferred_category="fitness")

    suggestions = await pipeline.generate_suggestions(
        "gym time", CallerContext(group_id=GROUP, preferred_category="food", unmetered=True)
    )

    assert [s.template_id for s in suggestions] == ["diner", "trainer"]


@pytest.mark.asyncio
async def test_variants_each_become_a_suggestion():
    template = make_template("auto", ["car"], body="Base {site}", variants=["Variant one"])
    pipeline = build_pipeline([template])

    suggestions = await pipeline.generate_suggestions(
        "car", CallerContext(group_id=GROUP, default_url="http://d.test", unmetered=True)
    )

    assert [(s.variant_index, s.text) for s in suggestions] == [
        (0, "Base http://d.test"),
        (1, "Variant one http://d.test"),
    ]


@pytest.mark.asyncio
async def test_settings_default_url_used_when_context_has_none():
    pipeline = build_pipeline(
        [make_template("auto", ["car"], body="Call us")],
        settings=EngineSettings(default_url="http://settings.test"),
    )

    suggestions = await pipeline.generate_suggestions("car", CallerContext(group_id=GROUP, unmetered=True))

    assert suggestions[0].text == "Call us http://settings.test"


@pytest.mark.asyncio
async def test_quota_exhausted_returns_single_limit_notice():
    usage = [used("a", 20), used("a", 10, group="other"), used("b", 1)]
    pipeline = build_pipeline([auto_template()], usage=usage)

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP))

    assert len(suggestions) == 1
    notice = suggestions[0]
    assert notice.is_limit_notice
    assert "3/3" in notice.text
    assert "wait 4 hours" in notice.text


@pytest.mark.asyncio
async def test_unmetered_caller_ignores_quota():
    usage = [used("x", 1), used("y", 1), used("z", 1)]
    pipeline = build_pipeline([auto_template()], usage=usage)

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP, unmetered=True))

    assert suggestions[0].template_id == "auto"


@pytest.mark.asyncio
async def test_empty_post_gets_generic_fallback():
    pipeline = build_pipeline([auto_template()])

    suggestions = await pipeline.generate_suggestions("", CallerContext(group_id=GROUP, unmetered=True))

    assert len(suggestions) == 1
    assert suggestions[0].template_label == "Default Fallback"


@pytest.mark.asyncio
async def test_failing_template_store_degrades_to_fallback():
    store = AsyncMock()
    store.list_templates.side_effect = StoreError("sheet offline")
    store.get_preferred_category.return_value = None
    pipeline = SuggestionPipeline(template_store=store, clock=lambda: NOW)

    suggestions = await pipeline.generate_suggestions("my gym routine", CallerContext(group_id=GROUP))

    assert [s.template_label for s in suggestions] == ["Fitness Fallback"]


@pytest.mark.asyncio
async def test_failing_usage_log_treats_usage_as_empty():
    usage_log = AsyncMock()
    usage_log.query_usage.side_effect = StoreError("disk full")
    pipeline = SuggestionPipeline(
        template_store=InMemoryTemplateStore([auto_template()]),
        usage_log=usage_log,
        clock=lambda: NOW,
    )

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP))

    assert suggestions[0].text == "Need auto repair? http://x.test"


@pytest.mark.asyncio
async def test_unexpected_error_returns_fallback(monkeypatch):
    pipeline = build_pipeline([auto_template()])

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("reply_auto.workflow.pipeline.collect_matches", explode)

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP, unmetered=True))

    assert [s.template_label for s in suggestions] == ["Auto Fallback"]


@pytest.mark.asyncio
async def test_record_acceptance_appends_usage_and_rotates():
    templates = [make_template("a", ["car"]), make_template("b", ["car"])]
    pipeline = build_pipeline(templates)

    record = await pipeline.record_acceptance("a", GROUP)
    suggestions = await pipeline.generate_suggestions("car", CallerContext(group_id=GROUP, unmetered=True))

    assert record.timestamp == NOW
    assert [s.template_id for s in suggestions] == ["b", "a"]


@pytest.mark.asyncio
async def test_record_acceptance_requires_usage_log():
    pipeline = SuggestionPipeline(template_store=InMemoryTemplateStore([]))

    with pytest.raises(RuntimeError):
        await pipeline.record_acceptance("a", GROUP)


@pytest.mark.asyncio
async def test_group_summary_uses_full_history():
    pipeline = build_pipeline([], usage=[used("a", 30), used("a", 2), used("b", 1, group="other")])

    summary = await pipeline.group_summary(GROUP)

    assert summary.total_usages == 2
    assert summary.recent_usages == 1
    assert summary.recently_used_templates == ["a"]


@pytest.mark.asyncio
async def test_clearing_group_usage_makes_templates_fresh_again():
    templates = [make_template("a", ["car"]), make_template("b", ["car"])]
    pipeline = build_pipeline(templates, usage=[used("a", 1)])

    removed = await pipeline.clear_group_usage(GROUP)
    suggestions = await pipeline.generate_suggestions("car", CallerContext(group_id=GROUP, unmetered=True))

    assert removed == 1
    assert [s.template_id for s in suggestions] == ["a", "b"]


@pytest.mark.asyncio
async def test_limit_notice_names_configured_window():
    pipeline = build_pipeline(
        [auto_template()],
        usage=[used("a", 3), used("b", 2), used("c", 1)],
        settings=EngineSettings(window_hours=12),
    )

    suggestions = await pipeline.generate_suggestions(CAR_POST, CallerContext(group_id=GROUP))

    assert suggestions[0].text.startswith("12-hour limit reached (3/3")
    assert "wait 9 hours" in suggestions[0].text
