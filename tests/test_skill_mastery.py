"""Tests for core/skill_mastery.py"""

import pytest

from core.skill_mastery import analyze_skill_mastery, recent_window_size


@pytest.fixture
def bank(make_item):
    return {
        "sd": make_item("sd", skill_tags=("single-digit",)),
        "carry": make_item("carry", skill_tags=("carrying", "two-digit")),
    }


def test_two_correct_responses(bank, make_response):
    responses = [make_response("sd", True, timestamp=1), make_response("sd", True, timestamp=2)]
    mastery = analyze_skill_mastery(responses, bank)["single-digit"]

    assert mastery.mastery_level == pytest.approx(0.2)
    assert mastery.confidence == pytest.approx(0.2)
    assert mastery.response_count == 2
    assert mastery.recent_accuracy == 1.0  # Window of zero falls back to accuracy
    assert mastery.trend == "stable"


def test_empty_and_unknown_items(bank, make_response):
    assert analyze_skill_mastery([], bank) == {}
    assert analyze_skill_mastery([make_response("nope", True)], bank) == {}


def test_item_counts_for_every_tag(bank, make_response):
    result = analyze_skill_mastery([make_response("carry", False)], bank)

    assert list(result) == ["carrying", "two-digit"]
    assert result["carrying"].response_count == 1
    assert result["two-digit"].mastery_level == 0.0


def test_declining_trend(bank, make_response):
    responses = [make_response("sd", i < 14, timestamp=i) for i in range(20)]
    mastery = analyze_skill_mastery(responses, bank)["single-digit"]

    assert mastery.mastery_level == pytest.approx(0.7)
    assert mastery.confidence == 1.0
    assert mastery.recent_accuracy == 0.0
    assert mastery.trend == "declining"


def test_improving_trend(bank, make_response):
    responses = [make_response("sd", i >= 14, timestamp=i) for i in range(20)]
    assert analyze_skill_mastery(responses, bank)["single-digit"].trend == "improving"


def test_responses_are_ordered_by_time(bank, make_response):
    # Same log as the declining case, shuffled on input
    responses = [make_response("sd", i < 14, timestamp=i) for i in range(20)]
    shuffled = responses[10:] + responses[:10]

    assert analyze_skill_mastery(shuffled, bank) == analyze_skill_mastery(responses, bank)


def test_trend_needs_three_recent_responses(bank, make_response):
    responses = [make_response("sd", i < 4, timestamp=i) for i in range(5)]
    assert analyze_skill_mastery(responses, bank)["single-digit"].trend == "stable"


def test_recent_window_size():
    assert recent_window_size(0) == 0
    assert recent_window_size(10) == 3
    assert recent_window_size(50) == 15
    assert recent_window_size(1000) == 20


def test_mastery_is_rebuilt_identically(bank, make_response):
    responses = [make_response("sd" if i % 3 else "carry", i % 4 != 0, timestamp=i) for i in range(40)]

    assert analyze_skill_mastery(responses, bank) == analyze_skill_mastery(list(responses), dict(bank))
