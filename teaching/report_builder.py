"""
Report Builder - Diagnostic reports and longitudinal student profiles.

Combines the ability estimate, skill mastery, error patterns and
recommendations into one DiagnosticResult, ranks the next items to serve,
and rolls daily progress into a StudentProfile.
"""

import math
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from core.ability_estimator import estimate_eap
from core.error_patterns import PATTERN_INFO, analyze_error_patterns
from core.irt_model import probability, theta_to_percentile
from core.models import (
    DiagnosticResult, ItemBank, LearningHistoryEntry, ProblemDetails,
    ResponseRecord, SkillMastery, StudentProfile,
)
from core.skill_graph import DEFAULT_SKILL_GRAPH, SkillGraph
from core.skill_mastery import analyze_skill_mastery
from teaching.recommendation_engine import MASTERY_THRESHOLD, RecommendationEngine

DEFAULT_NEXT_ITEMS = 10
HISTORY_DAYS = 30
STRENGTH_THRESHOLD = 0.85
WEAKNESS_THRESHOLD = 0.6

# "Productive struggle": hard enough to learn from, easy enough to succeed
PRODUCTIVE_MIN_P = 0.5
PRODUCTIVE_MAX_P = 0.85


# ==================== Item Ranking ====================

def select_optimal_items(theta: float, item_bank: ItemBank, skill_mastery: Dict[str, SkillMastery],
                         count: int = DEFAULT_NEXT_ITEMS,
                         exclude_ids: Optional[set] = None) -> List[str]:
    """
    Rank items for the next practice batch.

    score = exp(-(b - theta)^2)             difficulty match
          * 1.5 if it covers a weak skill
          * 1.2 if P in [0.5, 0.85] else 0.8
          * a

    The first half of the slots only take items that add a skill not yet
    in the batch; the rest are filled by score.
    """
    exclude_ids = exclude_ids or set()
    weak_skills = {tag for tag, m in skill_mastery.items() if m.mastery_level < MASTERY_THRESHOLD}

    scored = []
    for item in item_bank.values():
        if item.item_id in exclude_ids:
            continue

        difficulty_match = math.exp(-((item.difficulty - theta) ** 2))
        weak_boost = 1.5 if item.skill_tags & weak_skills else 1.0
        p = probability(theta, item)
        struggle_boost = 1.2 if PRODUCTIVE_MIN_P <= p <= PRODUCTIVE_MAX_P else 0.8

        score = difficulty_match * weak_boost * struggle_boost * item.discrimination
        scored.append((score, item))

    # Stable sort keeps item bank order on ties
    scored.sort(key=lambda pair: pair[0], reverse=True)

    selected: List[str] = []
    covered = set()

    for _, item in scored:
        if len(selected) >= count:
            break
        adds_skill = bool(item.skill_tags - covered)
        if len(selected) < count / 2 and not adds_skill:
            continue
        selected.append(item.item_id)
        covered |= item.skill_tags

    for _, item in scored:
        if len(selected) >= count:
            break
        if item.item_id not in selected:
            selected.append(item.item_id)

    return selected


# ==================== Diagnostic Report ====================

def generate_diagnostic_report(responses: List[ResponseRecord], item_bank: ItemBank,
                               problem_details: Optional[Mapping[str, ProblemDetails]] = None,
                               count: int = DEFAULT_NEXT_ITEMS,
                               skill_graph: Optional[SkillGraph] = None) -> DiagnosticResult:
    """
    Full diagnostic for one learner's response log.

    Args:
        responses: The learner's responses
        item_bank: item_id -> ItemParameters
        problem_details: item_id -> ProblemDetails, enables error analysis
        count: How many next items to recommend
        skill_graph: Skills to recommend against (defaults to the built-in graph)

    Returns:
        DiagnosticResult with the skill profile weakest first
    """
    ability = estimate_eap(responses, item_bank)
    skill_mastery = analyze_skill_mastery(responses, item_bank)
    error_patterns = analyze_error_patterns(responses, problem_details) if problem_details else []
    recommendations = RecommendationEngine(skill_graph).generate(skill_mastery, ability)

    answered = {r.item_id for r in responses}
    next_items = select_optimal_items(ability.theta, item_bank, skill_mastery, count, exclude_ids=answered)

    return DiagnosticResult(
        overall_ability=ability.theta,
        ability_percentile=theta_to_percentile(ability.theta),
        skill_profile=tuple(sorted(skill_mastery.values(), key=lambda m: m.mastery_level)),
        error_patterns=tuple(error_patterns),
        learning_recommendations=tuple(recommendations),
        next_optimal_items=tuple(next_items)
    )


def generate_report_summary(report: DiagnosticResult, skill_graph: Optional[SkillGraph] = None) -> str:
    """Markdown digest of a diagnostic report."""
    skills = skill_graph or DEFAULT_SKILL_GRAPH
    lines = []

    lines.append("## Ability")
    lines.append(f"- Overall ability: {report.overall_ability:.2f}")
    lines.append(f"- Percentile: ahead of {report.ability_percentile}% of learners")
    lines.append("")

    lines.append("## Skills")
    mastered = [s for s in report.skill_profile if s.mastery_level >= 0.8]
    learning = [s for s in report.skill_profile if 0.5 <= s.mastery_level < 0.8]
    needs_work = [s for s in report.skill_profile if s.mastery_level < 0.5]

    if mastered:
        lines.append("✅ Mastered: " + ", ".join(skills.display_name(s.skill_tag) for s in mastered))
    if learning:
        lines.append("📚 Learning: " + ", ".join(skills.display_name(s.skill_tag) for s in learning))
    if needs_work:
        lines.append("⚠️ Needs work: " + ", ".join(skills.display_name(s.skill_tag) for s in needs_work))
    lines.append("")

    if report.error_patterns:
        lines.append("## Common errors")
        for pattern in report.error_patterns[:3]:
            info = PATTERN_INFO.get(pattern.pattern_type)
            name = info.name if info else pattern.pattern_type
            lines.append(f"- {name}: {round(pattern.frequency * 100)}% of errors")
            if info:
                lines.append(f"  → {info.remediation}")
        lines.append("")

    if report.learning_recommendations:
        lines.append("## Recommendations")
        icons = {"high": "🔴", "medium": "🟡", "low": "🟢"}
        for rec in report.learning_recommendations[:3]:
            lines.append(f"{icons[rec.priority]} {rec.suggested_practice}")

    return "\n".join(lines)


# ==================== Student Profile ====================

def day_of(timestamp_ms: int) -> str:
    """UTC calendar day of an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date().isoformat()


def build_student_profile(learner_id: str, responses: List[ResponseRecord], item_bank: ItemBank,
                          previous_history: Sequence[LearningHistoryEntry] = (),
                          today: Optional[str] = None,
                          skill_graph: Optional[SkillGraph] = None) -> StudentProfile:
    """
    Rebuild a learner's profile and roll today into the learning history.

    Args:
        learner_id: Learner the profile belongs to
        responses: The learner's responses
        item_bank: item_id -> ItemParameters
        previous_history: Stored history; today's entry is overwritten
        today: ISO day to bucket (defaults to the current UTC day)
        skill_graph: Skills for display names and recommended focus

    Returns:
        StudentProfile with at most the 30 newest history entries
    """
    skills = skill_graph or DEFAULT_SKILL_GRAPH
    if today is None:
        today = datetime.now(timezone.utc).date().isoformat()

    ability = estimate_eap(responses, item_bank)
    skill_mastery = analyze_skill_mastery(responses, item_bank)

    todays = [r for r in responses if day_of(r.timestamp) == today]
    today_accuracy = sum(1 for r in todays if r.is_correct) / len(todays) if todays else 0.0

    entry = LearningHistoryEntry(
        date=today,
        theta=ability.theta,
        accuracy=today_accuracy,
        problems_attempted=len(todays)
    )

    history = list(previous_history)
    existing = next((i for i, h in enumerate(history) if h.date == today), None)
    if existing is not None:
        history[existing] = entry
    else:
        history.append(entry)

    strengths = [skills.display_name(tag) for tag, m in skill_mastery.items()
                 if m.mastery_level >= STRENGTH_THRESHOLD]
    weaknesses = [skills.display_name(tag) for tag, m in skill_mastery.items()
                  if m.mastery_level < WEAKNESS_THRESHOLD]
    recommendations = RecommendationEngine(skills).generate(skill_mastery, ability)
    focus = [skills.display_name(r.skill_tag) for r in recommendations if r.priority == "high"]

    return StudentProfile(
        learner_id=learner_id,
        ability=ability,
        skill_mastery=skill_mastery,
        learning_history=tuple(history[-HISTORY_DAYS:]),
        strengths=strengths,
        weaknesses=weaknesses,
        recommended_focus=focus
    )
