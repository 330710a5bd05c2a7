"""
Skill Mastery - Per-skill accuracy and trend from the response log.

Mastery is accuracy discounted by a sample-size confidence factor, so a
skill is not reported as mastered until at least 10 observations exist.
"""

import math
from dataclasses import dataclass
from typing import Dict, List

from .models import ItemBank, ResponseRecord, SkillMastery

FULL_CONFIDENCE_RESPONSES = 10
RECENT_FRACTION = 0.3
MAX_RECENT_WINDOW = 20
MIN_RECENT_FOR_TREND = 3
TREND_THRESHOLD = 0.1


@dataclass
class _SkillStats:
    correct: int = 0
    total: int = 0
    recent_correct: int = 0
    recent_total: int = 0


def recent_window_size(total_responses: int) -> int:
    """Number of newest responses compared against the overall accuracy."""
    return min(MAX_RECENT_WINDOW, int(math.floor(total_responses * RECENT_FRACTION)))


def analyze_skill_mastery(responses: List[ResponseRecord], item_bank: ItemBank) -> Dict[str, SkillMastery]:
    """
    Aggregate accuracy, recent accuracy and trend for every skill tag seen.

    Args:
        responses: Response log (sorted chronologically here)
        item_bank: item_id -> ItemParameters; unknown items are ignored

    Returns:
        skill_tag -> SkillMastery, keys in sorted order
    """
    ordered = sorted(responses, key=lambda r: r.timestamp)
    recent_start = len(ordered) - recent_window_size(len(responses))

    stats: Dict[str, _SkillStats] = {}

    for index, response in enumerate(ordered):
        item = item_bank.get(response.item_id)
        if item is None:
            continue

        is_recent = index >= recent_start

        for skill in sorted(item.skill_tags):
            s = stats.setdefault(skill, _SkillStats())
            s.total += 1
            if response.is_correct:
                s.correct += 1

            if is_recent:
                s.recent_total += 1
                if response.is_correct:
                    s.recent_correct += 1

    result = {}
    for skill in sorted(stats):
        s = stats[skill]
        accuracy = s.correct / s.total if s.total > 0 else 0.0
        recent_accuracy = s.recent_correct / s.recent_total if s.recent_total > 0 else accuracy

        trend = "stable"
        if s.recent_total >= MIN_RECENT_FOR_TREND:
            diff = recent_accuracy - accuracy
            if diff > TREND_THRESHOLD:
                trend = "improving"
            elif diff < -TREND_THRESHOLD:
                trend = "declining"

        confidence = min(1.0, s.total / FULL_CONFIDENCE_RESPONSES)

        result[skill] = SkillMastery(
            skill_tag=skill,
            mastery_level=accuracy * confidence,
            confidence=confidence,
            response_count=s.total,
            recent_accuracy=recent_accuracy,
            trend=trend
        )

    return result
