"""
Ability Estimator - Latent ability (theta) from binary responses.

Features:
    - Maximum Likelihood Estimation (Newton-Raphson)
    - Expected A Posteriori estimation (fixed-grid quadrature)
    - Boundary estimates for all-correct / all-incorrect sets
    - High-uncertainty defaults when no usable responses exist

Estimates are pure functions of (responses, item bank). `updated_at` is the
newest response timestamp, so rebuilding from the same snapshot is exact.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .irt_model import (
    D, SE_SENTINEL, MIN_THETA, MAX_THETA, clamp_theta, log_likelihood, probability, standard_error,
)
from .models import AbilityEstimate, ItemBank, ResponseRecord

logger = logging.getLogger(__name__)

# Newton-Raphson
MAX_ITERATIONS = 50
TOLERANCE = 0.001
MIN_SECOND_DERIVATIVE = 0.0001

# Degenerate response sets have no interior maximum
ALL_CORRECT_THETA = 3.0
ALL_INCORRECT_THETA = -3.0


@dataclass(frozen=True)
class QuadratureGrid:
    """Evenly spaced quadrature nodes for EAP integration."""
    points: int = 41
    theta_min: float = MIN_THETA
    theta_max: float = MAX_THETA

    @property
    def step(self) -> float:
        return (self.theta_max - self.theta_min) / (self.points - 1)

    def nodes(self) -> List[float]:
        return [self.theta_min + i * self.step for i in range(self.points)]


DEFAULT_QUADRATURE = QuadratureGrid()


# ==================== Helpers ====================

def _valid_responses(responses: List[ResponseRecord], item_bank: ItemBank) -> List[ResponseRecord]:
    """Drop responses to items the bank does not know."""
    return [r for r in responses if r.item_id in item_bank]


def _learner_id(responses: List[ResponseRecord]) -> str:
    return responses[0].learner_id if responses else ""


def _latest_timestamp(responses: List[ResponseRecord]) -> int:
    return max((r.timestamp for r in responses), default=0)


def _confidence95(theta: float, se: float) -> Tuple[float, float]:
    return (theta - 1.96 * se, theta + 1.96 * se)


def _build_estimate(learner_id: str, theta: float, valid: List[ResponseRecord],
                    item_bank: ItemBank) -> AbilityEstimate:
    """Estimate with SE taken from test information at theta."""
    items = [item_bank[r.item_id] for r in valid]
    se = standard_error(theta, items)

    return AbilityEstimate(
        learner_id=learner_id,
        theta=theta,
        standard_error=se,
        confidence95=_confidence95(theta, se),
        updated_at=_latest_timestamp(valid),
        response_count=len(valid)
    )


# ==================== MLE ====================

def estimate_mle(responses: List[ResponseRecord], item_bank: ItemBank,
                 initial_theta: float = 0.0) -> AbilityEstimate:
    """
    Maximum likelihood estimate of theta via Newton-Raphson.

    Args:
        responses: Response log (any order, any length)
        item_bank: item_id -> ItemParameters
        initial_theta: Starting point for the iteration

    Returns:
        AbilityEstimate. With no usable responses: theta 0, SE sentinel,
        response_count 0.
    """
    learner_id = _learner_id(responses)
    valid = _valid_responses(responses, item_bank)

    if not valid:
        return AbilityEstimate(
            learner_id=learner_id,
            theta=0.0,
            standard_error=SE_SENTINEL,
            confidence95=(-3.0, 3.0),
            updated_at=_latest_timestamp(responses),
            response_count=0
        )

    if all(r.is_correct for r in valid):
        logger.debug("All %d responses correct for %s, using boundary theta", len(valid), learner_id)
        return _build_estimate(learner_id, ALL_CORRECT_THETA, valid, item_bank)

    if not any(r.is_correct for r in valid):
        logger.debug("All %d responses incorrect for %s, using boundary theta", len(valid), learner_id)
        return _build_estimate(learner_id, ALL_INCORRECT_THETA, valid, item_bank)

    theta = initial_theta

    for iteration in range(MAX_ITERATIONS):
        first_derivative = 0.0
        second_derivative = 0.0

        for response in valid:
            item = item_bank[response.item_id]
            a, c = item.discrimination, item.guessing
            p = probability(theta, item)
            q = 1 - p
            u = 1.0 if response.is_correct else 0.0

            if p <= 0:
                continue

            w = D * a * (p - c) / (1 - c)
            first_derivative += w * (u - p) / p
            second_derivative -= w * w * q / p

        if abs(second_derivative) < MIN_SECOND_DERIVATIVE:
            logger.debug("Flat likelihood at theta=%.3f after %d iterations", theta, iteration)
            break

        delta = first_derivative / second_derivative
        theta = clamp_theta(theta - delta)

        if abs(delta) < TOLERANCE:
            break
    else:
        logger.debug("MLE did not converge in %d iterations for %s", MAX_ITERATIONS, learner_id)

    return _build_estimate(learner_id, theta, valid, item_bank)


# ==================== EAP ====================

def _log_normal_prior(theta: float) -> float:
    return -0.5 * theta * theta - 0.5 * math.log(2 * math.pi)


def estimate_eap(responses: List[ResponseRecord], item_bank: ItemBank,
                 quadrature: Optional[QuadratureGrid] = None) -> AbilityEstimate:
    """
    Expected a posteriori estimate of theta under a standard normal prior.

    More stable than MLE on short response logs. Integration is a Riemann
    sum over `quadrature` (41 nodes on [-4, 4] by default). The posterior is
    accumulated in log space and rescaled by its maximum, so logs of any
    length stay finite.

    Returns:
        AbilityEstimate. With no usable responses: theta 0, SE 1,
        response_count 0.
    """
    grid = quadrature or DEFAULT_QUADRATURE
    learner_id = _learner_id(responses)
    valid = _valid_responses(responses, item_bank)

    if not valid:
        return AbilityEstimate(
            learner_id=learner_id,
            theta=0.0,
            standard_error=1.0,
            confidence95=(-2.0, 2.0),
            updated_at=_latest_timestamp(responses),
            response_count=0
        )

    nodes = grid.nodes()
    log_posterior = [log_likelihood(node, valid, item_bank) + _log_normal_prior(node) for node in nodes]
    peak = max(log_posterior)

    step = grid.step
    numerator = 0.0
    denominator = 0.0
    second_moment = 0.0

    for node, log_p in zip(nodes, log_posterior):
        posterior = math.exp(log_p - peak)

        numerator += node * posterior * step
        denominator += posterior * step
        second_moment += node * node * posterior * step

    # The peak node contributes exp(0) * step, so denominator > 0
    theta = numerator / denominator
    variance = second_moment / denominator - theta * theta
    se = math.sqrt(max(0.01, variance))

    return AbilityEstimate(
        learner_id=learner_id,
        theta=clamp_theta(theta),
        standard_error=se,
        confidence95=_confidence95(theta, se),
        updated_at=_latest_timestamp(valid),
        response_count=len(valid)
    )
