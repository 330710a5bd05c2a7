"""
Recommendation Engine - Ranked practice plan from skill mastery.

Think of it as a doctor:
1. Examine symptoms (skills below mastery)
2. Check history (are the prerequisites in place?)
3. Prescribe treatment (priority, practice text, problem count)
"""

import math
from typing import Dict, List, Optional

from core.models import AbilityEstimate, LearningRecommendation, SkillMastery
from core.skill_graph import DEFAULT_SKILL_GRAPH, SkillGraph

MASTERY_THRESHOLD = 0.8
TARGET_LEVEL = 0.85
MIN_PROBLEMS = 5
PROBLEMS_PER_ACCURACY_POINT = 50  # Problems to close a gap of 1.0
MIN_SAMPLE_FOR_PRIORITY = 5

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


class RecommendationEngine:
    """
    Generates practice recommendations for under-mastered skills.
    """

    def __init__(self, skill_graph: Optional[SkillGraph] = None):
        self.skills = skill_graph or DEFAULT_SKILL_GRAPH

    def generate(self, skill_mastery: Dict[str, SkillMastery],
                 ability: Optional[AbilityEstimate] = None) -> List[LearningRecommendation]:
        """
        Recommendations for every known skill below MASTERY_THRESHOLD.

        Easier skills are considered first; the result is ordered by
        priority (high, medium, low) with that order kept within a level.
        Skills missing from the skill graph are skipped.
        """
        unmastered = sorted(
            (m for m in skill_mastery.values() if m.mastery_level < MASTERY_THRESHOLD),
            key=lambda m: self.skills.difficulty(m.skill_tag)
        )
        mastery_levels = {tag: m.mastery_level for tag, m in skill_mastery.items()}

        recommendations = []
        for mastery in unmastered:
            if self.skills.get_skill(mastery.skill_tag) is None:
                continue

            prerequisites_met = self.skills.prerequisites_met(mastery.skill_tag, mastery_levels)
            priority = self._priority(mastery, prerequisites_met)

            if prerequisites_met:
                practice = self.describe_practice(mastery)
            else:
                practice = self.describe_prerequisite_practice(mastery, mastery_levels)

            recommendations.append(LearningRecommendation(
                skill_tag=mastery.skill_tag,
                priority=priority,
                current_level=mastery.mastery_level,
                target_level=TARGET_LEVEL,
                suggested_practice=practice,
                estimated_problems_to_master=self.estimate_problems(mastery)
            ))

        recommendations.sort(key=lambda r: PRIORITY_ORDER[r.priority])
        return recommendations

    def _priority(self, mastery: SkillMastery, prerequisites_met: bool) -> str:
        if not prerequisites_met:
            return "low"  # Prerequisites first
        if mastery.trend == "declining":
            return "high"
        if mastery.response_count < MIN_SAMPLE_FOR_PRIORITY:
            return "medium"  # Not enough evidence yet
        if mastery.mastery_level < 0.5:
            return "high"
        return "medium"

    def estimate_problems(self, mastery: SkillMastery) -> int:
        """Linear gap-to-target estimate, never below MIN_PROBLEMS."""
        current_rate = mastery.mastery_level / max(0.1, mastery.confidence)
        gap = TARGET_LEVEL - current_rate
        return max(MIN_PROBLEMS, math.ceil(gap * PROBLEMS_PER_ACCURACY_POINT))

    def describe_practice(self, mastery: SkillMastery) -> str:
        skill = self.skills.get_skill(mastery.skill_tag)
        if skill is None:
            return f"Practice {mastery.skill_tag} problems"

        accuracy = round(mastery.recent_accuracy * 100)

        if mastery.trend == "declining":
            return (f"{skill.name} is slipping (recent accuracy {accuracy}%). "
                    f"Review the basics and practice again.")
        if mastery.mastery_level < 0.5:
            return (f"{skill.name} is not mastered yet (accuracy {accuracy}%). "
                    f"Start with easy problems and build up.")
        if mastery.mastery_level < MASTERY_THRESHOLD:
            return (f"{skill.name} is mostly there (accuracy {accuracy}%). "
                    f"Keep practicing to become fluent.")
        return f"{skill.name} is mastered. Try more challenging problems."

    def describe_prerequisite_practice(self, mastery: SkillMastery, mastery_levels: Dict[str, float]) -> str:
        """Point at the earliest weak prerequisite on the way to this skill."""
        path = self.skills.get_learning_path(mastery.skill_tag, mastery_levels)
        first = next((s for s in path if s != mastery.skill_tag), None)
        if first is None:
            return self.describe_practice(mastery)

        return (f"Build up {self.skills.display_name(first)} first, "
                f"then come back to {self.skills.display_name(mastery.skill_tag)}.")


def generate_recommendations(skill_mastery: Dict[str, SkillMastery],
                             ability: Optional[AbilityEstimate] = None) -> List[LearningRecommendation]:
    """Ranked practice plan for under-mastered skills."""
    return RecommendationEngine().generate(skill_mastery, ability)
