"""Tests for teaching/report_builder.py"""

import pytest

from core.irt_model import theta_to_percentile
from core.item_calibration import generate_initial_item_parameters
from core.models import LearningHistoryEntry, ProblemDetails
from core.skill_graph import SkillDefinition, SkillGraph
from teaching.report_builder import (
    HISTORY_DAYS, build_student_profile, day_of, generate_diagnostic_report, generate_report_summary,
    select_optimal_items,
)

DAY_MS = 24 * 60 * 60 * 1000
JAN_1_2024 = 1704067200000

PROBLEMS = [(2, 3), (4, 5), (7, 8), (6, 9), (12, 5), (14, 3), (27, 35), (48, 26), (60, 30), (75, 18)]


@pytest.fixture
def arithmetic_bank():
    return {f"{a}+{b}": generate_initial_item_parameters(a, b, f"{a}+{b}") for a, b in PROBLEMS}


@pytest.fixture
def responses(make_response):
    answered = ["2+3", "4+5", "7+8", "6+9", "27+35"]
    return [
        make_response(item_id, item_id in ("2+3", "4+5", "7+8"), timestamp=JAN_1_2024 + i * 1000)
        for i, item_id in enumerate(answered)
    ]


def test_diagnostic_report(arithmetic_bank, responses):
    report = generate_diagnostic_report(responses, arithmetic_bank)

    assert report.ability_percentile == theta_to_percentile(report.overall_ability)
    levels = [s.mastery_level for s in report.skill_profile]
    assert levels == sorted(levels)

    answered = {r.item_id for r in responses}
    assert not answered & set(report.next_optimal_items)
    assert len(report.next_optimal_items) == len(set(report.next_optimal_items)) == 5
    assert report.error_patterns == ()


def test_diagnostic_report_with_error_analysis(arithmetic_bank, responses):
    details = {"27+35": ProblemDetails(27, 35, 62, 52), "6+9": ProblemDetails(6, 9, 15, 51)}
    report = generate_diagnostic_report(responses, arithmetic_bank, details)

    types = {p.pattern_type for p in report.error_patterns}
    assert {"carrying-error", "digit-reversal"} <= types


def test_report_to_dict(arithmetic_bank, responses):
    data = generate_diagnostic_report(responses, arithmetic_bank).to_dict()

    assert set(data) == {
        "overall_ability", "ability_percentile", "skill_profile",
        "error_patterns", "learning_recommendations", "next_optimal_items",
    }
    assert isinstance(data["next_optimal_items"], list)


def test_select_optimal_items_prefers_new_skills(make_item):
    bank = {
        "A": make_item("A", difficulty=0.0, skill_tags=("x",)),
        "B": make_item("B", difficulty=0.1, skill_tags=("x",)),
        "D": make_item("D", difficulty=0.2, skill_tags=("x",)),
        "C": make_item("C", difficulty=1.5, skill_tags=("y",)),
    }
    assert select_optimal_items(0.0, bank, {}, count=4) == ["A", "C", "B", "D"]
    assert select_optimal_items(0.0, bank, {}, count=2) == ["A", "B"]
    assert select_optimal_items(0.0, bank, {}, count=4, exclude_ids={"A"}) == ["B", "C", "D"]


def test_report_summary(arithmetic_bank, responses):
    details = {"27+35": ProblemDetails(27, 35, 62, 52)}
    summary = generate_report_summary(generate_diagnostic_report(responses, arithmetic_bank, details))

    assert summary.startswith("## Ability")
    assert "## Skills" in summary
    assert "## Common errors" in summary
    assert "Carrying error: 50% of errors" in summary
    assert "## Recommendations" in summary


def test_day_of():
    assert day_of(JAN_1_2024) == "2024-01-01"
    assert day_of(JAN_1_2024 - 1) == "2023-12-31"


def test_profile_today_entry(arithmetic_bank, responses, make_response):
    yesterday = make_response("14+3", False, timestamp=JAN_1_2024 - DAY_MS)
    profile = build_student_profile("learner-1", responses + [yesterday], arithmetic_bank, today="2024-01-01")

    entry = profile.learning_history[-1]
    assert entry.date == "2024-01-01"
    assert entry.problems_attempted == 5
    assert entry.accuracy == pytest.approx(0.6)
    assert entry.theta == profile.ability.theta
    assert profile.learner_id == "learner-1"


def test_profile_upserts_today(arithmetic_bank, responses):
    previous = (
        LearningHistoryEntry("2023-12-31", -0.5, 0.4, 3),
        LearningHistoryEntry("2024-01-01", 0.0, 1.0, 1),
    )
    profile = build_student_profile("learner-1", responses, arithmetic_bank, previous, today="2024-01-01")

    assert [h.date for h in profile.learning_history] == ["2023-12-31", "2024-01-01"]
    assert profile.learning_history[-1].problems_attempted == 5


def test_profile_keeps_newest_days(arithmetic_bank, responses):
    previous = [LearningHistoryEntry(f"2023-11-{d:02d}", 0.0, 0.5, 2) for d in range(1, 31)]
    profile = build_student_profile("learner-1", responses, arithmetic_bank, previous, today="2024-01-01")

    assert len(profile.learning_history) == HISTORY_DAYS
    assert profile.learning_history[0].date == "2023-11-02"
    assert profile.learning_history[-1].date == "2024-01-01"


def test_profile_strengths_and_weaknesses(make_item, make_response):
    bank = {
        f"s{i}": make_item(f"s{i}", skill_tags=("single-digit",)) for i in range(10)
    }
    bank.update({f"c{i}": make_item(f"c{i}", skill_tags=("carrying",)) for i in range(10)})
    responses = [make_response(f"s{i}", True, timestamp=JAN_1_2024 + i) for i in range(10)]
    responses += [make_response(f"c{i}", i < 2, timestamp=JAN_1_2024 + 100 + i) for i in range(10)]

    profile = build_student_profile("learner-1", responses, bank, today="2024-01-01")

    assert profile.strengths == ["Single-digit addition"]
    assert profile.weaknesses == ["Carrying"]


def _alpha_graph():
    return SkillGraph({"alpha": SkillDefinition("alpha", "Alpha skill", "Custom skill", (), 0.1)})


def test_profile_focus_uses_given_skill_graph(make_item, make_response):
    bank = {f"a{i}": make_item(f"a{i}", skill_tags=("alpha",)) for i in range(10)}
    responses = [make_response(f"a{i}", i < 3, timestamp=JAN_1_2024 + i) for i in range(10)]

    profile = build_student_profile("learner-1", responses, bank, today="2024-01-01",
                                    skill_graph=_alpha_graph())

    assert profile.weaknesses == ["Alpha skill"]
    assert profile.recommended_focus == ["Alpha skill"]


def test_report_recommends_against_given_skill_graph(make_item, make_response):
    bank = {f"a{i}": make_item(f"a{i}", skill_tags=("alpha",)) for i in range(10)}
    responses = [make_response(f"a{i}", i < 3, timestamp=JAN_1_2024 + i) for i in range(10)]

    default_report = generate_diagnostic_report(responses, bank)
    custom_report = generate_diagnostic_report(responses, bank, skill_graph=_alpha_graph())

    assert default_report.learning_recommendations == ()
    assert [r.skill_tag for r in custom_report.learning_recommendations] == ["alpha"]
    assert custom_report.learning_recommendations[0].priority == "high"


def test_report_is_rebuilt_identically(arithmetic_bank, responses):
    details = {"27+35": ProblemDetails(27, 35, 62, 52), "6+9": ProblemDetails(6, 9, 15, 51)}

    first = generate_diagnostic_report(responses, arithmetic_bank, details)
    second = generate_diagnostic_report(list(responses), dict(arithmetic_bank), dict(details))

    assert first == second
    assert first.to_dict() == second.to_dict()
