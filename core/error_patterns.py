"""
Error Pattern Detection

Every wrong answer tells a story. A learner who writes 32 for 23 has not
failed to add; they have swapped the digits. This module names those slips.

Patterns (non-exclusive, one answer can match several):
    - off-by-one: counting slip, |correct - submitted| = 1
    - carrying-error: forgot or doubled a carry, difference of 9, 10 or 11
    - digit-reversal: two-digit answer written backwards
    - place-value-error: tens digit dropped
    - operation-confusion: subtracted or multiplied instead of adding
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .models import ErrorPattern, ProblemDetails, ResponseRecord

PATTERN_TYPES = [
    "off-by-one",
    "carrying-error",
    "digit-reversal",
    "place-value-error",
    "operation-confusion",
]

MAX_EXAMPLES = 3


@dataclass(frozen=True)
class PatternInfo:
    """Display metadata for an error pattern."""
    name: str
    description: str
    remediation: str


PATTERN_INFO: Dict[str, PatternInfo] = {
    "off-by-one": PatternInfo(
        name="Off by one",
        description="Answer is one more or one less than the correct sum",
        remediation="Count on from the larger number and say each step aloud"
    ),
    "carrying-error": PatternInfo(
        name="Carrying error",
        description="Answer is off by about ten, a carry was lost or added twice",
        remediation="Write the carried 1 above the tens column before adding it"
    ),
    "digit-reversal": PatternInfo(
        name="Digit reversal",
        description="Digits of the answer were written in reverse order",
        remediation="Say the tens digit first, then write it first"
    ),
    "place-value-error": PatternInfo(
        name="Place value confusion",
        description="Only the units digit of the sum was written",
        remediation="Use a tens/units chart to place each digit"
    ),
    "operation-confusion": PatternInfo(
        name="Operation confusion",
        description="Subtracted or multiplied instead of adding",
        remediation="Circle the operation sign before starting each problem"
    ),
}


def severity_for(count: int) -> str:
    if count >= 5:
        return "high"
    if count >= 2:
        return "medium"
    return "low"


class ErrorPatternDetector:
    """Classifies wrong answers to arithmetic items into error patterns."""

    def classify(self, correct: int, submitted: int,
                 details: Optional[ProblemDetails] = None) -> List[str]:
        """
        Return every pattern the wrong answer matches, in PATTERN_TYPES order.

        Digit reversal compares the full decimal strings, so only exact
        reversals are caught (23 -> 32); multi-digit transpositions such as
        123 -> 132, or reversals that need a leading zero, are not.
        """
        if correct == submitted:
            return []

        matches = []
        diff = abs(correct - submitted)

        if diff == 1:
            matches.append("off-by-one")

        if diff in (9, 10, 11):
            matches.append("carrying-error")

        if correct >= 10 and submitted >= 10 and str(submitted) == str(correct)[::-1]:
            matches.append("digit-reversal")

        if correct >= 10 and submitted < 10 and submitted == correct % 10:
            matches.append("place-value-error")

        if details is not None and self._is_operation_confusion(details, submitted):
            matches.append("operation-confusion")

        return matches

    def _is_operation_confusion(self, details: ProblemDetails, submitted: int) -> bool:
        a, b = details.operand1, details.operand2
        if details.correct_answer != a + b:
            return False
        others = {abs(a - b), a * b}
        others.discard(details.correct_answer)
        return submitted in others

    def format_example(self, details: ProblemDetails) -> str:
        return (f"{details.operand1}+{details.operand2}={details.submitted_answer} "
                f"(correct: {details.correct_answer})")

    def analyze(self, responses: List[ResponseRecord],
                problem_details: Mapping[str, ProblemDetails]) -> List[ErrorPattern]:
        """
        Aggregate error patterns across a response log.

        Only incorrect responses with known submitted answers are classified,
        but frequency is taken over all incorrect responses.
        """
        counts = {p: 0 for p in PATTERN_TYPES}
        examples: Dict[str, List[str]] = {p: [] for p in PATTERN_TYPES}

        incorrect = [r for r in responses if not r.is_correct]

        for response in incorrect:
            details = problem_details.get(response.item_id)
            if details is None or details.submitted_answer is None:
                continue

            for pattern in self.classify(details.correct_answer, details.submitted_answer, details):
                counts[pattern] += 1
                if len(examples[pattern]) < MAX_EXAMPLES:
                    examples[pattern].append(self.format_example(details))

        total_errors = len(incorrect)
        patterns = [
            ErrorPattern(
                pattern_type=p,
                frequency=counts[p] / total_errors if total_errors > 0 else 0.0,
                examples=tuple(examples[p]),
                severity=severity_for(counts[p])
            )
            for p in PATTERN_TYPES if counts[p] > 0
        ]

        # Stable: equal frequencies keep PATTERN_TYPES order
        patterns.sort(key=lambda e: e.frequency, reverse=True)
        return patterns


def analyze_error_patterns(responses: List[ResponseRecord],
                           problem_details: Mapping[str, ProblemDetails]) -> List[ErrorPattern]:
    """Error patterns across a response log, most frequent first."""
    return ErrorPatternDetector().analyze(responses, problem_details)
