"""Tests for teaching/ability_levels.py"""

import pytest

from teaching.ability_levels import age_level_from_ability, describe_ability


def test_age_level_milestones():
    assert age_level_from_ability(0.0)["equivalent_age"] == 7.0
    assert age_level_from_ability(0.0)["grade_level"] == "Grade 1"
    assert age_level_from_ability(3.0)["equivalent_age"] == 12.0
    assert age_level_from_ability(-5.0)["grade_level"] == "Preschool"
    assert age_level_from_ability(-5.0)["equivalent_age"] == 4.0


def test_age_level_interpolates():
    assert age_level_from_ability(0.25)["equivalent_age"] == pytest.approx(7.5)


def test_age_level_comparison():
    ahead = age_level_from_ability(1.0, actual_age=7)
    assert ahead["comparison"] == "ahead"
    assert ahead["ahead_by_years"] == 2.0

    on_track = age_level_from_ability(0.0, actual_age=7)
    assert on_track["comparison"] == "on-track"

    behind = age_level_from_ability(-1.0, actual_age=8)
    assert behind["comparison"] == "behind"

    assert age_level_from_ability(0.0)["comparison"] is None


def test_describe_ability():
    assert describe_ability(0.0)["level"] == "average"
    assert describe_ability(0.0)["percentile"] == 50
    assert describe_ability(2.5)["level"] == "excellent"
    assert describe_ability(1.2)["level"] == "good"
    assert describe_ability(-0.5)["level"] == "developing"
    assert describe_ability(-2.0)["level"] == "beginning"
