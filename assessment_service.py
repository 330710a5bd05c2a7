"""
Assessment Service - Connects the IRT engine to the Redis store.

Flow per answered problem:
    1. Append the response to the learner's log
    2. Cold-start item parameters the first time an item is seen
    3. Keep the problem's operands/answers for error analysis
    4. Re-estimate ability (EAP) from the stored snapshot

Reports and profiles are rebuilt from the stored snapshot on demand.
Calibration runs as a separate batch job over every learner's log.
"""

import logging
import time
from typing import Dict, FrozenSet, List, Optional

from core.ability_estimator import estimate_eap
from core.adaptive_tester import select_next_item
from core.irt_model import theta_to_percentile
from core.item_calibration import (
    CalibrationResult, calibrate_item_bank, generate_initial_item_parameters, needs_recalibration,
)
from core.models import (
    AbilityEstimate, DiagnosticResult, ItemBankConfig, ItemParameters, ProblemDetails, ResponseRecord,
    StudentProfile,
)
from redis_store import RedisStore
from teaching.report_builder import build_student_profile, generate_diagnostic_report

logger = logging.getLogger(__name__)

MIN_RESPONSES_FOR_REPORT = 5
MIN_RESPONSES_FOR_PROFILE = 3


class AssessmentService:
    """
    Records responses and serves ability estimates, reports and profiles.

    Holds no learner state of its own; everything is read back from the
    store. Writes to one learner's log must be serialized by the caller.
    """

    def __init__(self, store: RedisStore, config: Optional[ItemBankConfig] = None):
        self.store = store
        self.config = config or ItemBankConfig.from_env()

    # ==================== Recording ====================

    def get_or_create_item(self, item_id: str, operand1: int, operand2: int,
                           skill_tags: Optional[FrozenSet[str]] = None,
                           problem_type: Optional[str] = None) -> ItemParameters:
        """
        Stored parameters for an item, or fresh cold-start parameters.

        Caller-supplied skill tags / problem type override the heuristic ones
        on creation only.
        """
        item = self.store.get_item(item_id)
        if item is not None:
            return item

        item = generate_initial_item_parameters(operand1, operand2, item_id)
        if skill_tags or problem_type:
            item = ItemParameters(
                item_id=item.item_id,
                discrimination=item.discrimination,
                difficulty=item.difficulty,
                guessing=item.guessing,
                skill_tags=frozenset(skill_tags) if skill_tags else item.skill_tags,
                problem_type=problem_type or item.problem_type,
                provenance=item.provenance
            )

        self.store.save_item(item)
        logger.info("Created cold-start parameters for %s (b=%.2f)", item_id, item.difficulty)
        return item

    def record_response(self, learner_id: str, item_id: str, operand1: int, operand2: int,
                        is_correct: bool, response_time_ms: int,
                        submitted_answer: Optional[int] = None,
                        timestamp: Optional[int] = None,
                        skill_tags: Optional[FrozenSet[str]] = None,
                        problem_type: Optional[str] = None) -> dict:
        """
        Log one answered addition problem and return the updated ability.

        Returns:
            {"theta", "percentile", "standard_error", "response_count"}
        """
        if timestamp is None:
            timestamp = int(time.time() * 1000)

        self.get_or_create_item(item_id, operand1, operand2, skill_tags, problem_type)

        self.store.append_response(ResponseRecord(
            learner_id=learner_id,
            item_id=item_id,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            timestamp=timestamp
        ))

        if submitted_answer is not None:
            self.store.save_problem_details(learner_id, item_id, ProblemDetails(
                operand1=operand1,
                operand2=operand2,
                correct_answer=operand1 + operand2,
                submitted_answer=submitted_answer
            ))

        ability = self.ability(learner_id)
        return {
            "theta": ability.theta,
            "percentile": theta_to_percentile(ability.theta),
            "standard_error": ability.standard_error,
            "response_count": ability.response_count,
        }

    # ==================== Queries ====================

    def ability(self, learner_id: str) -> AbilityEstimate:
        return estimate_eap(self.store.get_responses(learner_id), self.store.get_item_bank())

    def diagnostic_report(self, learner_id: str) -> Optional[DiagnosticResult]:
        """Full report, or None until the learner has enough responses."""
        responses = self.store.get_responses(learner_id)
        if len(responses) < MIN_RESPONSES_FOR_REPORT:
            return None

        return generate_diagnostic_report(
            responses,
            self.store.get_item_bank(),
            self.store.get_problem_details(learner_id)
        )

    def student_profile(self, learner_id: str, today: Optional[str] = None) -> Optional[StudentProfile]:
        """Rebuild and persist the learner's profile, rolling today into history."""
        responses = self.store.get_responses(learner_id)
        if len(responses) < MIN_RESPONSES_FOR_PROFILE:
            return None

        previous = self.store.get_profile(learner_id)
        history = previous.learning_history if previous else ()

        profile = build_student_profile(learner_id, responses, self.store.get_item_bank(), history, today=today)
        self.store.save_profile(profile)
        return profile

    def next_item(self, learner_id: str) -> Optional[ItemParameters]:
        """Most informative item the learner has not answered yet."""
        responses = self.store.get_responses(learner_id)
        item_bank = self.store.get_item_bank()
        theta = estimate_eap(responses, item_bank).theta
        used = {r.item_id for r in responses}
        return select_next_item(theta, item_bank.values(), used)

    # ==================== Calibration ====================

    def recalibrate(self, now: Optional[int] = None) -> List[CalibrationResult]:
        """
        Batch job: refit every item that is due and has enough data.

        Ability per learner comes from EAP against the current bank; items
        that are not due for recalibration keep their parameters.
        """
        if now is None:
            now = int(time.time() * 1000)

        item_bank = self.store.get_item_bank()
        logs = self.store.get_all_responses()

        abilities: Dict[str, float] = {
            learner_id: estimate_eap(responses, item_bank).theta
            for learner_id, responses in logs.items()
        }
        due = {item_id for item_id, item in item_bank.items() if needs_recalibration(item, self.config, now)}
        all_responses = [r for responses in logs.values() for r in responses if r.item_id in due]

        results = calibrate_item_bank(all_responses, abilities, item_bank, self.config, now=now)
        self.store.save_items([r.new_parameters for r in results])

        for result in results:
            fit = result.fit_statistics
            if abs(fit.infit - 1) > 0.5 or abs(fit.outfit - 1) > 0.5:
                logger.warning("Item %s fits poorly (infit=%.2f, outfit=%.2f, n=%d)",
                               result.item_id, fit.infit, fit.outfit, result.sample_size)

        logger.info("Recalibration updated %d of %d due items from %d learners",
                    len(results), len(due), len(logs))
        return results

    def reset(self):
        self.store.reset()
