"""
Adaptive Tester - Computerized Adaptive Testing (CAT).

Features:
    - Maximum Information item selection
    - EAP re-estimation after every response
    - Stopping rules (SE threshold, min/max items, exhausted pool)
"""

import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from .ability_estimator import estimate_eap
from .irt_model import item_information
from .models import AbilityEstimate, ItemBank, ItemParameters, ResponseRecord


@dataclass
class ItemCandidate:
    """An item with its information at the current ability."""
    item: ItemParameters
    information: float


def select_next_item(theta: float, available_items: Iterable[ItemParameters],
                     used_item_ids: Set[str]) -> Optional[ItemParameters]:
    """
    Pick the unused item with maximum Fisher information at theta.

    Ties go to the item encountered first. Returns None when every item has
    been used; callers fall back to generating fresh items.
    """
    best: Optional[ItemCandidate] = None

    for item in available_items:
        if item.item_id in used_item_ids:
            continue
        info = item_information(theta, item)
        if best is None or info > best.information:
            best = ItemCandidate(item=item, information=info)

    return best.item if best else None


class AdaptiveTester:
    """
    One adaptive testing session for a single learner.

    Serves items from a fixed bank, re-estimating ability after every
    response. The session keeps its own response list; persisting it is the
    caller's job.
    """

    # Stopping criteria
    MAX_QUESTIONS = 20
    MIN_QUESTIONS = 5
    SE_THRESHOLD = 0.3  # Stop when standard error is below this

    def __init__(self, item_bank: ItemBank, learner_id: str,
                 history: Optional[List[ResponseRecord]] = None):
        self.item_bank = item_bank
        self.learner_id = learner_id
        self.history: List[ResponseRecord] = list(history or [])
        self.responses: List[ResponseRecord] = []
        self.asked_ids: Set[str] = {r.item_id for r in self.history}

    # ==================== Ability ====================

    def current_estimate(self) -> AbilityEstimate:
        return estimate_eap(self.history + self.responses, self.item_bank)

    # ==================== Item Selection ====================

    def next_item(self) -> Optional[ItemParameters]:
        theta = self.current_estimate().theta
        return select_next_item(theta, self.item_bank.values(), self.asked_ids)

    # ==================== Response Processing ====================

    def record_response(self, item_id: str, is_correct: bool, response_time_ms: int = 0,
                        timestamp: Optional[int] = None) -> AbilityEstimate:
        """Record a response and return the updated estimate."""
        if timestamp is None:
            timestamp = int(time.time() * 1000)

        self.responses.append(ResponseRecord(
            learner_id=self.learner_id,
            item_id=item_id,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            timestamp=timestamp
        ))
        self.asked_ids.add(item_id)

        return self.current_estimate()

    # ==================== Stopping Rules ====================

    def should_stop(self) -> Tuple[bool, str]:
        """
        Check if testing should stop.

        Returns (should_stop, reason).
        """
        num_asked = len(self.responses)

        if num_asked >= self.MAX_QUESTIONS:
            return True, "max_reached"

        if all(item_id in self.asked_ids for item_id in self.item_bank):
            return True, "pool_exhausted"

        if num_asked < self.MIN_QUESTIONS:
            return False, "min_not_reached"

        if self.current_estimate().standard_error < self.SE_THRESHOLD:
            return True, "precision_reached"

        return False, "continue"

    def get_result(self) -> dict:
        """Summary of the session so far."""
        estimate = self.current_estimate()
        correct = sum(1 for r in self.responses if r.is_correct)
        total = len(self.responses)

        return {
            "total_questions": total,
            "correct": correct,
            "accuracy": correct / total if total > 0 else 0.0,
            "theta": estimate.theta,
            "standard_error": estimate.standard_error,
        }
