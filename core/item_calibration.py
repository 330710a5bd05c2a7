"""
Item Calibration - Batch parameter estimation for the item bank.

Features:
    - Difficulty from the guessing-adjusted logit of the pass rate
    - Discrimination from the point-biserial correlation with ability
    - Infit / outfit / RMSE fit diagnostics
    - Rule-based cold-start parameters for unseen arithmetic items
    - Recalibration policy

Calibration of one item never depends on another, so callers may fan the
bank out across workers. No executor is provided here.
"""

import logging
import math
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .irt_model import D, clamp, probability
from .models import (
    Calibrated, ColdStart, DEFAULT_ITEM_BANK_CONFIG, ItemBank, ItemBankConfig,
    ItemParameters, ResponseRecord,
)

logger = logging.getLogger(__name__)

MS_PER_DAY = 1000 * 60 * 60 * 24

# Point-biserial to 3PL discrimination; empirical
DISCRIMINATION_ADJUSTMENT = 1.5
MIN_DISCRIMINATION_SAMPLE = 10
MIN_ABILITY_SD = 0.1


@dataclass(frozen=True)
class CalibrationResponse:
    """One response to an item, paired with the responder's ability."""
    is_correct: bool
    estimated_theta: float


@dataclass
class ItemResponseData:
    item_id: str
    responses: List[CalibrationResponse] = field(default_factory=list)


@dataclass(frozen=True)
class FitStatistics:
    infit: float  # Variance-weighted mean square, expected ~1
    outfit: float  # Unweighted mean square, expected ~1
    rmse: float


@dataclass
class CalibrationResult:
    item_id: str
    old_parameters: Optional[ItemParameters]
    new_parameters: ItemParameters
    sample_size: int
    fit_statistics: FitStatistics
    converged: bool = True


# ==================== Single Item ====================

def calibrate_item(data: ItemResponseData, config: ItemBankConfig = DEFAULT_ITEM_BANK_CONFIG,
                   now: Optional[int] = None) -> Optional[CalibrationResult]:
    """
    Estimate difficulty and discrimination for one item.

    Args:
        data: The item's responses with responder abilities
        config: Calibration policy (sample threshold, guessing floor)
        now: Calibration timestamp in epoch ms (defaults to the clock)

    Returns:
        CalibrationResult, or None when the sample is below
        config.min_calibration_sample (keep the prior parameters).
    """
    responses = data.responses
    n = len(responses)

    if n < config.min_calibration_sample:
        return None

    if now is None:
        now = int(time.time() * 1000)

    pass_rate = sum(1 for r in responses if r.is_correct) / n
    mean_theta = sum(r.estimated_theta for r in responses) / n

    # Keep the logit finite
    clamped_p = clamp(pass_rate, 0.05, 0.95)
    c = config.default_guessing
    adjusted_p = max(c + 0.01, clamped_p)
    difficulty = mean_theta - math.log((adjusted_p - c) / (1 - adjusted_p))

    discrimination = _estimate_discrimination(responses)

    fit = calculate_fit_statistics(responses, ItemParameters(
        item_id=data.item_id,
        discrimination=discrimination,
        difficulty=difficulty,
        guessing=c
    ))

    new_parameters = ItemParameters(
        item_id=data.item_id,
        discrimination=clamp(discrimination, 0.3, 3.0),
        difficulty=clamp(difficulty, -4.0, 4.0),
        guessing=c,
        provenance=Calibrated(sample_size=n, last_calibrated=now)
    )

    return CalibrationResult(
        item_id=data.item_id,
        old_parameters=None,
        new_parameters=new_parameters,
        sample_size=n,
        fit_statistics=fit
    )


def _estimate_discrimination(responses: List[CalibrationResponse]) -> float:
    """
    Discrimination from the point-biserial correlation of correctness
    with responder ability.

        rpb = (mean_correct - mean_incorrect) / sd * sqrt(p * (1 - p))
        a   = |rpb| * D * 1.5
    """
    n = len(responses)
    if n < MIN_DISCRIMINATION_SAMPLE:
        return 1.0

    correct = [r.estimated_theta for r in responses if r.is_correct]
    incorrect = [r.estimated_theta for r in responses if not r.is_correct]

    if not correct or not incorrect:
        return 1.0

    mean_correct = sum(correct) / len(correct)
    mean_incorrect = sum(incorrect) / len(incorrect)

    thetas = [r.estimated_theta for r in responses]
    mean_all = sum(thetas) / n
    sd = math.sqrt(sum((t - mean_all) ** 2 for t in thetas) / n)

    if sd < MIN_ABILITY_SD:
        return 1.0

    p = len(correct) / n
    rpb = ((mean_correct - mean_incorrect) / sd) * math.sqrt(p * (1 - p))

    return clamp(abs(rpb) * D * DISCRIMINATION_ADJUSTMENT, 0.3, 2.5)


def calculate_fit_statistics(responses: List[CalibrationResponse],
                             item: ItemParameters) -> FitStatistics:
    """
    Infit and outfit mean squares plus RMSE of the fitted curve.

    Responses with P(1-P) <= 0.001 carry no usable variance and are left
    out of the standardized residual sums.
    """
    sum_weighted = 0.0
    sum_weight = 0.0
    sum_standardized = 0.0
    sum_squared_error = 0.0

    for response in responses:
        p = probability(response.estimated_theta, item)
        residual = (1.0 if response.is_correct else 0.0) - p
        variance = p * (1 - p)

        if variance > 0.001:
            z_squared = residual ** 2 / variance
            sum_weighted += variance * z_squared
            sum_weight += variance
            sum_standardized += z_squared

        sum_squared_error += residual ** 2

    n = len(responses)
    return FitStatistics(
        infit=sum_weighted / sum_weight if sum_weight > 0 else 1.0,
        outfit=sum_standardized / n if n > 0 else 1.0,
        rmse=math.sqrt(sum_squared_error / n) if n > 0 else 0.0
    )


# ==================== Item Bank ====================

def calibrate_item_bank(all_responses: List[ResponseRecord], ability_by_learner: Dict[str, float],
                        existing_items: ItemBank,
                        config: ItemBankConfig = DEFAULT_ITEM_BANK_CONFIG,
                        now: Optional[int] = None) -> List[CalibrationResult]:
    """
    Calibrate every item with enough responses.

    Learners without an ability estimate are treated as theta = 0. Skill
    tags and problem type carry over from the existing parameters.
    """
    if now is None:
        now = int(time.time() * 1000)

    by_item: Dict[str, ItemResponseData] = {}
    for response in all_responses:
        data = by_item.setdefault(response.item_id, ItemResponseData(item_id=response.item_id))
        data.responses.append(CalibrationResponse(
            is_correct=response.is_correct,
            estimated_theta=ability_by_learner.get(response.learner_id, 0.0)
        ))

    results = []
    for item_id, data in by_item.items():
        result = calibrate_item(data, config, now=now)
        if result is None:
            continue

        old = existing_items.get(item_id)
        if old is not None:
            result.old_parameters = old
            result.new_parameters = replace(
                result.new_parameters,
                skill_tags=old.skill_tags,
                problem_type=old.problem_type
            )
        results.append(result)

    logger.info("Calibrated %d of %d items", len(results), len(by_item))
    return results


# ==================== Cold Start ====================

def generate_initial_item_parameters(operand1: int, operand2: int, item_id: str) -> ItemParameters:
    """
    Heuristic parameters for an addition item that has no response data.

    Bands:
        single digit, sum <= 10   b in [-2, -1]
        bridge ten (sum 11-20)    b in [-0.5, 0.5]
        units-column carrying     b in [0.5, 1.5]
        large operands (>= 50)    b in [1, 2]
    """
    total = operand1 + operand2
    largest = max(operand1, operand2)

    is_single_digit = largest <= 9
    needs_carrying = (operand1 % 10) + (operand2 % 10) >= 10
    is_bridge_ten = 10 < total <= 20 and is_single_digit
    is_large = largest >= 50

    if is_single_digit and total <= 10:
        difficulty = -2 + total * 0.1
    elif is_bridge_ten:
        difficulty = -0.5 + (total - 10) * 0.1
    elif needs_carrying:
        difficulty = 0.5 + largest * 0.01
    elif is_large:
        difficulty = 1 + (largest - 50) * 0.02
    else:
        difficulty = largest * 0.03 - 0.5

    if needs_carrying:
        discrimination = 1.3
    elif is_bridge_ten:
        discrimination = 1.2
    elif is_single_digit and total <= 5:
        discrimination = 0.7
    else:
        discrimination = 1.0

    skill_tags = {"basic-addition"}
    if is_single_digit:
        skill_tags.add("single-digit")
    if is_single_digit and total == 10:
        skill_tags.add("sum-to-ten")
    if needs_carrying:
        skill_tags.add("carrying")
    if is_bridge_ten:
        skill_tags.add("bridge-ten")
    if 10 <= largest < 20:
        skill_tags.add("teens")
    if largest >= 20:
        skill_tags.add("two-digit")
    if is_large:
        skill_tags.add("large-numbers")

    if needs_carrying:
        problem_type = "carrying"
    elif is_bridge_ten:
        problem_type = "bridge-ten"
    elif is_single_digit:
        problem_type = "single-digit"
    elif is_large:
        problem_type = "large-numbers"
    else:
        problem_type = "two-digit"

    return ItemParameters(
        item_id=item_id,
        discrimination=clamp(discrimination, 0.5, 2.0),
        difficulty=clamp(difficulty, -3.0, 3.0),
        guessing=0.05,  # Blind guesses rarely hit a free-response sum
        skill_tags=frozenset(skill_tags),
        problem_type=problem_type,
        provenance=ColdStart()
    )


def needs_recalibration(item: ItemParameters, config: ItemBankConfig = DEFAULT_ITEM_BANK_CONFIG,
                        now: Optional[int] = None) -> bool:
    """True if the item was never calibrated, is under-sampled, or is stale."""
    if not item.is_calibrated:
        return True

    if item.sample_size < config.min_calibration_sample:
        return True

    if now is None:
        now = int(time.time() * 1000)

    days_since = (now - item.last_calibrated) / MS_PER_DAY
    return days_since > config.recalibration_interval
