"""Tests for placeholder rendering."""

import pytest

from reply_auto.reply_engine.template_builder import build_reply, ends_with_url, resolve_url


def test_url_placeholder_replaced_everywhere():
    assert build_reply("Need auto repair? {url}", "http://x.test") == "Need auto repair? http://x.test"
    assert build_reply("{url} or {url}", "http://x.test") == "http://x.test or http://x.test"


def test_url_placeholder_takes_priority_over_site():
    assert build_reply("See {url} and {site}", "http://x.test") == "See http://x.test and {site}"


def test_site_placeholder_uses_url_or_generic_phrase():
    assert build_reply("Visit {site} today", "http://x.test") == "Visit http://x.test today"
    assert build_reply("Visit {site} today", "") == "Visit our website today"


def test_url_appended_when_no_placeholder():
    assert build_reply("We can help!  ", "http://x.test") == "We can help! http://x.test"


def test_no_append_when_text_already_ends_with_url():
    assert build_reply("Details at https://shop.test/a", "http://x.test") == "Details at https://shop.test/a"


def test_mid_text_placeholder_is_not_appended_again():
    rendered = build_reply("Visit {url} today", "http://x.test")

    assert rendered == "Visit http://x.test today"
    assert build_reply(rendered, "http://x.test") == rendered


def test_no_append_when_url_already_mentioned():
    assert build_reply("See example.test/promo for deals", "example.test/promo") == "See example.test/promo for deals"


def test_no_url_leaves_plain_text_alone():
    assert build_reply("We can help!", "") == "We can help!"


@pytest.mark.parametrize(
    "text, url",
    [
        ("Need auto repair? {url}", "http://x.test"),
        ("Visit {url} today", "http://x.test"),
        ("Visit {site} today", "http://x.test"),
        ("Visit {site} today", ""),
        ("We can help!", "http://x.test"),
        ("We can help!", "example.test/promo"),
    ],
)
def test_rendering_is_idempotent(text, url):
    once = build_reply(text, url)
    assert build_reply(once, url) == once


def test_resolve_url_prefers_template_url():
    assert resolve_url("http://template.test", "http://default.test") == "http://template.test"
    assert resolve_url(None, "http://default.test") == "http://default.test"
    assert resolve_url(None, "") == ""


def test_ends_with_url():
    assert ends_with_url("go to http://a.test  ")
    assert not ends_with_url("http://a.test is great")
