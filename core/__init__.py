"""
Core module - IRT measurement, calibration, and diagnostics.

Components:
    - models: Item parameters, responses, and derived result types
    - irt_model: 3PL probability, information, and standard error
    - ability_estimator: MLE and EAP ability estimation
    - adaptive_tester: Computerized Adaptive Testing (CAT)
    - item_calibration: Batch calibration and cold-start parameters
    - skill_graph: Skill dependency DAG with prerequisites
    - skill_mastery: Per-skill accuracy and trend
    - error_patterns: Wrong answer -> error pattern classification
"""

from .models import (
    ItemParameters, ItemBankConfig, ResponseRecord, ProblemDetails, AbilityEstimate,
    SkillMastery, ErrorPattern, LearningRecommendation, DiagnosticResult, StudentProfile,
    Calibrated, ColdStart,
)
from .irt_model import probability, item_information, test_information, standard_error, theta_to_percentile
from .ability_estimator import estimate_mle, estimate_eap
from .adaptive_tester import AdaptiveTester, select_next_item
from .item_calibration import (
    calibrate_item, calibrate_item_bank, generate_initial_item_parameters, needs_recalibration,
)
from .skill_graph import SkillGraph
from .skill_mastery import analyze_skill_mastery
from .error_patterns import ErrorPatternDetector, analyze_error_patterns

__all__ = [
    "ItemParameters",
    "ItemBankConfig",
    "ResponseRecord",
    "ProblemDetails",
    "AbilityEstimate",
    "SkillMastery",
    "ErrorPattern",
    "LearningRecommendation",
    "DiagnosticResult",
    "StudentProfile",
    "Calibrated",
    "ColdStart",
    "probability",
    "item_information",
    "test_information",
    "standard_error",
    "theta_to_percentile",
    "estimate_mle",
    "estimate_eap",
    "AdaptiveTester",
    "select_next_item",
    "calibrate_item",
    "calibrate_item_bank",
    "generate_initial_item_parameters",
    "needs_recalibration",
    "SkillGraph",
    "analyze_skill_mastery",
    "ErrorPatternDetector",
    "analyze_error_patterns",
]
