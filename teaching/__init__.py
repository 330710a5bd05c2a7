"""
Teaching module - Recommendations, reports, and learner-facing levels.

Components:
    - recommendation_engine: Ranked practice plan from skill mastery
    - report_builder: Diagnostic reports, next items, student profiles
    - ability_levels: Theta -> age/grade milestones
"""

from .recommendation_engine import RecommendationEngine, generate_recommendations
from .report_builder import (
    build_student_profile, generate_diagnostic_report, generate_report_summary, select_optimal_items,
)
from .ability_levels import age_level_from_ability, describe_ability

__all__ = [
    "RecommendationEngine",
    "generate_recommendations",
    "build_student_profile",
    "generate_diagnostic_report",
    "generate_report_summary",
    "select_optimal_items",
    "age_level_from_ability",
    "describe_ability",
]
