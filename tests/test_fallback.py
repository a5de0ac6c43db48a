"""Tests for canned fallback suggestions."""

from reply_auto.reply_engine.fallback import FALLBACK_TEMPLATE_ID, generate_fallback_suggestions


def test_one_suggestion_per_matching_hint():
    suggestions = generate_fallback_suggestions("Gym day, then FOOD with my new Car")

    assert [s.template_label for s in suggestions] == ["Auto Fallback", "Fitness Fallback", "Food Fallback"]
    assert all(s.is_fallback for s in suggestions)
    assert all(s.template_id == FALLBACK_TEMPLATE_ID for s in suggestions)


def test_hints_use_substring_search():
    suggestions = generate_fallback_suggestions("Scary movie night")

    assert [s.template_label for s in suggestions] == ["Auto Fallback"]


def test_generic_suggestion_when_no_hint_matches():
    suggestions = generate_fallback_suggestions("Lovely weather", default_url="http://x.test")

    assert len(suggestions) == 1
    assert suggestions[0].template_label == "Default Fallback"
    assert suggestions[0].text == "Great post! Check out our services if you need help with this! http://x.test"


def test_empty_post_still_gets_a_suggestion():
    suggestions = generate_fallback_suggestions("")

    assert len(suggestions) == 1
    assert suggestions[0].text == "Great post! Check out our services if you need help with this!"


def test_default_url_appended_to_hint_suggestions():
    suggestions = generate_fallback_suggestions("restaurant review", default_url="http://x.test")

    assert suggestions[0].text == "Looks delicious! For catering services, contact us! http://x.test"
