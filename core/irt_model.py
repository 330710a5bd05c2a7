"""
IRT Model - 3-Parameter Logistic item response functions.

Features:
    - Item characteristic curve P(theta)
    - Item and test information
    - Standard error of measurement
    - Log-likelihood of a response set
    - Theta to population percentile

All functions are pure; nothing here holds state.
"""

import math
from typing import Iterable, List

from .models import ItemParameters, ItemBank, ResponseRecord

D = 1.702  # Logistic approximation to the normal ogive
SE_SENTINEL = 999.0  # "Cannot measure precisely here"
MIN_THETA = -4.0
MAX_THETA = 4.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_theta(theta: float) -> float:
    return clamp(theta, MIN_THETA, MAX_THETA)


def probability(theta: float, item: ItemParameters) -> float:
    """
    3PL item characteristic curve.

        P(theta) = c + (1 - c) / (1 + exp(-D * a * (theta - b)))

    Args:
        theta: Learner ability
        item: Item parameters

    Returns:
        Probability of a correct response [0, 1]
    """
    a, b, c = item.discrimination, item.difficulty, item.guessing
    exponent = -D * a * (theta - b)

    # exp overflows past ~709; P is c there anyway
    if exponent > 700:
        p = c
    else:
        p = c + (1 - c) / (1 + math.exp(exponent))

    return clamp(p, 0.0, 1.0)


def item_information(theta: float, item: ItemParameters) -> float:
    """
    Fisher information of one item at theta.

        I(theta) = D^2 a^2 (P - c)^2 (1 - P) / ((1 - c)^2 P)

    Zero when P sits on its bounds (P <= c or P >= 1).
    """
    a, c = item.discrimination, item.guessing
    p = probability(theta, item)

    if p <= c or p >= 1:
        return 0.0

    numerator = D * D * a * a * (p - c) ** 2 * (1 - p)
    denominator = (1 - c) ** 2 * p

    return numerator / denominator if denominator > 0 else 0.0


def test_information(theta: float, items: Iterable[ItemParameters]) -> float:
    """Sum of item information across items."""
    return sum(item_information(theta, item) for item in items)


def standard_error(theta: float, items: Iterable[ItemParameters]) -> float:
    """
    SE(theta) = 1 / sqrt(I(theta)).

    Returns SE_SENTINEL when the items carry no information at theta.
    """
    information = test_information(theta, items)
    return 1.0 / math.sqrt(information) if information > 0 else SE_SENTINEL


def log_likelihood(theta: float, responses: List[ResponseRecord], item_bank: ItemBank) -> float:
    """
    L(theta) = sum(u * log(P) + (1 - u) * log(1 - P))

    Responses to items missing from the bank are skipped.
    """
    ll = 0.0

    for response in responses:
        item = item_bank.get(response.item_id)
        if item is None:
            continue

        p = clamp(probability(theta, item), 0.0001, 0.9999)
        if response.is_correct:
            ll += math.log(p)
        else:
            ll += math.log(1 - p)

    return ll


def normal_cdf(z: float) -> float:
    """Standard normal CDF (Abramowitz & Stegun 7.1.26 erf approximation)."""
    a1 = 0.254829592
    a2 = -0.284496736
    a3 = 1.421413741
    a4 = -1.453152027
    a5 = 1.061405429
    p = 0.3275911

    sign = -1 if z < 0 else 1
    x = abs(z) / math.sqrt(2)

    t = 1.0 / (1.0 + p * x)
    y = 1.0 - (((((a5 * t + a4) * t) + a3) * t + a2) * t + a1) * t * math.exp(-x * x)

    return 0.5 * (1.0 + sign * y)


def theta_to_percentile(theta: float) -> int:
    """
    Percentile rank of theta, assuming abilities are standard normal.

    Returns integer in [0, 100].
    """
    return int(math.floor(normal_cdf(theta) * 100 + 0.5))
