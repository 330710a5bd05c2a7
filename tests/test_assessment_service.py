"""Tests for assessment_service.py"""

from assessment_service import AssessmentService
from core.item_calibration import generate_initial_item_parameters
from core.models import ItemBankConfig, ItemParameters, ProblemDetails

NOW = 1704067200000  # 2024-01-01T00:00:00Z

PROBLEMS = [(2, 3), (4, 5), (7, 8), (6, 9), (27, 35), (48, 26)]


def answer(service, learner_id, problem, is_correct, timestamp, submitted=None):
    a, b = problem
    return service.record_response(
        learner_id=learner_id,
        item_id=f"{a}+{b}",
        operand1=a,
        operand2=b,
        is_correct=is_correct,
        response_time_ms=2500,
        submitted_answer=submitted,
        timestamp=timestamp
    )


def test_record_response_creates_cold_start_item(service, store):
    result = answer(service, "ada", (2, 3), True, NOW)

    assert set(result) == {"theta", "percentile", "standard_error", "response_count"}
    assert result["response_count"] == 1
    assert result["theta"] > 0

    item = store.get_item("2+3")
    assert item == generate_initial_item_parameters(2, 3, "2+3")
    assert not item.is_calibrated


def test_existing_item_is_reused(service, store):
    answer(service, "ada", (2, 3), True, NOW)
    store.save_item(ItemParameters(item_id="2+3", discrimination=2.0, difficulty=1.0))

    answer(service, "bob", (2, 3), True, NOW)
    assert store.get_item("2+3").difficulty == 1.0


def test_caller_skill_tags_override_heuristics(service, store):
    service.record_response("ada", "custom", 3, 4, True, 1000, timestamp=NOW,
                            skill_tags=frozenset({"speed-challenge"}), problem_type="timed")

    item = store.get_item("custom")
    assert item.skill_tags == frozenset({"speed-challenge"})
    assert item.problem_type == "timed"


def test_submitted_answers_are_kept(service, store):
    answer(service, "ada", (27, 35), False, NOW, submitted=52)
    answer(service, "ada", (2, 3), True, NOW + 1)

    assert store.get_problem_details("ada") == {"27+35": ProblemDetails(27, 35, 62, 52)}


def test_ability_is_rebuilt_from_store(service):
    for i, problem in enumerate(PROBLEMS[:3]):
        answer(service, "ada", problem, True, NOW + i)

    first = service.ability("ada")
    assert first == service.ability("ada")
    assert first.response_count == 3
    assert first.updated_at == NOW + 2


def test_report_needs_five_responses(service, store):
    store.save_item(generate_initial_item_parameters(48, 26, "48+26"))
    for i, problem in enumerate(PROBLEMS[:4]):
        answer(service, "ada", problem, i % 2 == 0, NOW + i)
    assert service.diagnostic_report("ada") is None

    answer(service, "ada", PROBLEMS[4], False, NOW + 10, submitted=52)
    report = service.diagnostic_report("ada")

    assert report is not None
    assert [p.pattern_type for p in report.error_patterns] == ["carrying-error"]
    assert report.next_optimal_items == ("48+26",)


def test_profile_needs_three_responses_and_is_persisted(service, store):
    answer(service, "ada", PROBLEMS[0], True, NOW)
    answer(service, "ada", PROBLEMS[1], True, NOW + 1)
    assert service.student_profile("ada", today="2024-01-01") is None

    answer(service, "ada", PROBLEMS[2], False, NOW + 2)
    profile = service.student_profile("ada", today="2024-01-01")

    assert profile.learning_history[-1].problems_attempted == 3
    assert store.get_profile("ada") == profile

    answer(service, "ada", PROBLEMS[3], True, NOW + 3)
    again = service.student_profile("ada", today="2024-01-01")
    assert len(again.learning_history) == 1
    assert again.learning_history[0].problems_attempted == 4


def test_next_item(service, store):
    answer(service, "ada", PROBLEMS[0], True, NOW)
    assert service.next_item("ada") is None

    store.save_item(generate_initial_item_parameters(4, 5, "4+5"))
    assert service.next_item("ada").item_id == "4+5"


def test_recalibrate(service, store):
    for i in range(6):
        answer(service, f"learner-{i}", (7, 8), i < 3, NOW + i)
        answer(service, f"learner-{i}", (2, 3), True, NOW + 100 + i)

    results = service.recalibrate(now=NOW + 1000)

    assert {r.item_id for r in results} == {"7+8", "2+3"}
    item = store.get_item("7+8")
    assert item.is_calibrated
    assert item.sample_size == 6
    assert item.last_calibrated == NOW + 1000
    assert "bridge-ten" in item.skill_tags

    # Nothing is due again on the same day
    assert service.recalibrate(now=NOW + 2000) == []


def test_recalibrate_skips_small_samples(store):
    service = AssessmentService(store, config=ItemBankConfig(min_calibration_sample=30))
    for i in range(6):
        answer(service, f"learner-{i}", (7, 8), i < 3, NOW + i)

    assert service.recalibrate(now=NOW) == []
    assert not store.get_item("7+8").is_calibrated


def test_reset(service, store):
    answer(service, "ada", PROBLEMS[0], True, NOW)
    service.reset()

    assert store.get_item_bank() == {}
    assert service.ability("ada").response_count == 0
