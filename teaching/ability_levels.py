"""
Ability Levels - Translate theta into age and grade milestones for addition.
"""

from dataclasses import dataclass
from typing import Optional

from core.irt_model import theta_to_percentile


@dataclass(frozen=True)
class AgeLevel:
    min_theta: float
    age: int
    grade_level: str
    typical_skills: str


# Highest threshold first
AGE_LEVELS = [
    AgeLevel(2.5, 12, "Grade 6", "All addition fluent, fast accurate mental math"),
    AgeLevel(2.0, 11, "Grade 5", "Large-number addition with quick strategies"),
    AgeLevel(1.5, 10, "Grade 4", "Multi-digit addition, confident carrying"),
    AgeLevel(1.0, 9, "Grade 3", "Two-digit addition with carrying"),
    AgeLevel(0.5, 8, "Grade 2", "Two-digit addition, simple carrying"),
    AgeLevel(0.0, 7, "Grade 1", "Sums within 20, bridging ten"),
    AgeLevel(-0.5, 6, "Kindergarten", "Sums within 10, making ten"),
    AgeLevel(-1.0, 5, "Pre-K", "Sums within 5, counting on"),
    AgeLevel(float("-inf"), 4, "Preschool", "Recognizing numbers, simple counting"),
]

MIN_AGE = 4
MAX_AGE = 13


def age_level_from_ability(theta: float, actual_age: Optional[float] = None) -> dict:
    """
    Equivalent age for a theta, interpolated between milestones.

    With actual_age, also compares the learner against their age group.
    """
    index = next(i for i, level in enumerate(AGE_LEVELS) if theta >= level.min_theta)
    level = AGE_LEVELS[index]

    equivalent_age = float(level.age)
    if index > 0 and level.min_theta != float("-inf"):
        above = AGE_LEVELS[index - 1]
        theta_range = above.min_theta - level.min_theta
        if theta_range > 0:
            progress = (theta - level.min_theta) / theta_range
            equivalent_age = level.age + progress * (above.age - level.age)

    equivalent_age = max(MIN_AGE, min(MAX_AGE, equivalent_age))

    comparison = None
    ahead_by_years = None

    if actual_age is not None:
        diff = equivalent_age - actual_age
        ahead_by_years = round(diff, 1)

        if diff >= 1:
            comparison = "ahead"
            description = f"About {round(diff)} years ahead, excellent work!"
        elif diff >= 0.5:
            comparison = "ahead"
            description = "Slightly ahead of their age group"
        elif diff >= -0.5:
            comparison = "on-track"
            description = "On track for their age"
        elif diff >= -1:
            comparison = "behind"
            description = "Needs some extra practice"
        else:
            comparison = "behind"
            description = "Needs focused attention and regular practice"
    else:
        description = f"Typical addition level of a {round(equivalent_age)}-year-old"

    return {
        "equivalent_age": round(equivalent_age, 1),
        "grade_level": level.grade_level,
        "typical_skills": level.typical_skills,
        "comparison": comparison,
        "ahead_by_years": ahead_by_years,
        "description": description,
    }


def describe_ability(theta: float) -> dict:
    """Level label and sentence for a theta, for report headers."""
    percentile = theta_to_percentile(theta)
    age = round(age_level_from_ability(theta)["equivalent_age"])

    if theta >= 2:
        level = "excellent"
        description = f"Ahead of {percentile}% of learners, at a {age}-year-old level"
    elif theta >= 1:
        level = "good"
        description = f"Ahead of {percentile}% of learners, at a {age}-year-old level"
    elif theta >= 0:
        level = "average"
        description = f"Ahead of {percentile}% of learners, at a {age}-year-old level"
    elif theta >= -1:
        level = "developing"
        description = f"At a {age}-year-old level, more practice recommended"
    else:
        level = "beginning"
        description = f"At a {age}-year-old level, focus on the foundations"

    return {"level": level, "percentile": percentile, "description": description}
