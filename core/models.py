"""
Models - Shared data types for the assessment engine.

Features:
    - 3PL item parameters with tagged provenance (calibrated vs cold start)
    - Immutable response records
    - Derived results: ability, skill mastery, error patterns, reports
    - Plain-dict serialization for storage
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple, Union


# ==================== Item Provenance ====================

@dataclass(frozen=True)
class ColdStart:
    """Heuristic parameters assigned before any response data exists."""
    kind: str = "cold_start"


@dataclass(frozen=True)
class Calibrated:
    """Parameters fitted from pooled response data."""
    sample_size: int
    last_calibrated: int  # Epoch milliseconds
    kind: str = "calibrated"


Provenance = Union[Calibrated, ColdStart]


def provenance_from_dict(data: Optional[dict]) -> Provenance:
    if not data or data.get("kind") != "calibrated":
        return ColdStart()
    return Calibrated(
        sample_size=int(data.get("sample_size", 0)),
        last_calibrated=int(data.get("last_calibrated", 0))
    )


# ==================== Item Bank ====================

@dataclass(frozen=True)
class ItemParameters:
    """
    3PL item parameters.

    discrimination (a): how sharply the item separates ability levels
    difficulty (b): ability at which P = 0.5 ignoring guessing
    guessing (c): floor probability, low for free-response arithmetic
    """
    item_id: str
    discrimination: float
    difficulty: float
    guessing: float = 0.05
    skill_tags: frozenset = frozenset()
    problem_type: str = ""
    provenance: Provenance = ColdStart()

    def __post_init__(self):
        if not 0 <= self.guessing < 1:
            raise ValueError(f"guessing must be in [0, 1), got {self.guessing}")
        if not isinstance(self.skill_tags, frozenset):
            object.__setattr__(self, "skill_tags", frozenset(self.skill_tags))

    @property
    def is_calibrated(self) -> bool:
        return isinstance(self.provenance, Calibrated)

    @property
    def sample_size(self) -> int:
        return self.provenance.sample_size if self.is_calibrated else 0

    @property
    def last_calibrated(self) -> int:
        return self.provenance.last_calibrated if self.is_calibrated else 0

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "discrimination": self.discrimination,
            "difficulty": self.difficulty,
            "guessing": self.guessing,
            "skill_tags": sorted(self.skill_tags),
            "problem_type": self.problem_type,
            "provenance": asdict(self.provenance),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ItemParameters":
        return cls(
            item_id=data["item_id"],
            discrimination=float(data["discrimination"]),
            difficulty=float(data["difficulty"]),
            guessing=float(data.get("guessing", 0.05)),
            skill_tags=frozenset(data.get("skill_tags", [])),
            problem_type=data.get("problem_type", ""),
            provenance=provenance_from_dict(data.get("provenance"))
        )


ItemBank = Dict[str, ItemParameters]


@dataclass(frozen=True)
class ItemBankConfig:
    """Calibration policy for the item bank."""
    min_calibration_sample: int = 30
    recalibration_interval: int = 30  # Days
    default_discrimination: float = 1.0
    default_difficulty: float = 0.0
    default_guessing: float = 0.05

    @classmethod
    def from_env(cls) -> "ItemBankConfig":
        """Build config from IRT_* environment variables."""
        return cls(
            min_calibration_sample=int(os.getenv("IRT_MIN_CALIBRATION_SAMPLE", 30)),
            recalibration_interval=int(os.getenv("IRT_RECALIBRATION_INTERVAL_DAYS", 30))
        )


DEFAULT_ITEM_BANK_CONFIG = ItemBankConfig()


# ==================== Responses ====================

@dataclass(frozen=True)
class ResponseRecord:
    """One answered problem. Never mutated once recorded."""
    learner_id: str
    item_id: str
    is_correct: bool
    response_time_ms: int
    timestamp: int  # Epoch milliseconds

    def __post_init__(self):
        if self.response_time_ms < 0:
            raise ValueError(f"response_time_ms must be >= 0, got {self.response_time_ms}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ResponseRecord":
        return cls(
            learner_id=data["learner_id"],
            item_id=data["item_id"],
            is_correct=bool(data["is_correct"]),
            response_time_ms=int(data.get("response_time_ms", 0)),
            timestamp=int(data.get("timestamp", 0))
        )


@dataclass(frozen=True)
class ProblemDetails:
    """Operands and answers of an arithmetic item, used for error analysis."""
    operand1: int
    operand2: int
    correct_answer: int
    submitted_answer: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProblemDetails":
        submitted = data.get("submitted_answer")
        return cls(
            operand1=int(data["operand1"]),
            operand2=int(data["operand2"]),
            correct_answer=int(data["correct_answer"]),
            submitted_answer=int(submitted) if submitted is not None else None
        )


# ==================== Derived Results ====================

@dataclass(frozen=True)
class AbilityEstimate:
    learner_id: str
    theta: float
    standard_error: float
    confidence95: Tuple[float, float]
    updated_at: int
    response_count: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["confidence95"] = list(self.confidence95)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AbilityEstimate":
        low, high = data.get("confidence95", (-2.0, 2.0))
        return cls(
            learner_id=data.get("learner_id", ""),
            theta=float(data.get("theta", 0.0)),
            standard_error=float(data.get("standard_error", 1.0)),
            confidence95=(float(low), float(high)),
            updated_at=int(data.get("updated_at", 0)),
            response_count=int(data.get("response_count", 0))
        )


@dataclass(frozen=True)
class SkillMastery:
    skill_tag: str
    mastery_level: float  # accuracy * confidence factor
    confidence: float
    response_count: int
    recent_accuracy: float
    trend: str  # "improving", "stable", "declining"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SkillMastery":
        return cls(**data)


@dataclass(frozen=True)
class ErrorPattern:
    pattern_type: str
    frequency: float  # Share of all incorrect answers
    examples: Tuple[str, ...]
    severity: str  # "low", "medium", "high"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["examples"] = list(self.examples)
        return data


@dataclass(frozen=True)
class LearningRecommendation:
    skill_tag: str
    priority: str  # "high", "medium", "low"
    current_level: float
    target_level: float
    suggested_practice: str
    estimated_problems_to_master: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DiagnosticResult:
    overall_ability: float
    ability_percentile: int
    skill_profile: Tuple[SkillMastery, ...]
    error_patterns: Tuple[ErrorPattern, ...]
    learning_recommendations: Tuple[LearningRecommendation, ...]
    next_optimal_items: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "overall_ability": self.overall_ability,
            "ability_percentile": self.ability_percentile,
            "skill_profile": [s.to_dict() for s in self.skill_profile],
            "error_patterns": [p.to_dict() for p in self.error_patterns],
            "learning_recommendations": [r.to_dict() for r in self.learning_recommendations],
            "next_optimal_items": list(self.next_optimal_items),
        }


@dataclass(frozen=True)
class LearningHistoryEntry:
    date: str  # ISO calendar day, UTC
    theta: float
    accuracy: float
    problems_attempted: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LearningHistoryEntry":
        return cls(
            date=data["date"],
            theta=float(data["theta"]),
            accuracy=float(data["accuracy"]),
            problems_attempted=int(data["problems_attempted"])
        )


@dataclass(frozen=True)
class StudentProfile:
    learner_id: str
    ability: AbilityEstimate
    skill_mastery: Dict[str, SkillMastery]
    learning_history: Tuple[LearningHistoryEntry, ...]
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommended_focus: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "learner_id": self.learner_id,
            "ability": self.ability.to_dict(),
            "skill_mastery": {k: v.to_dict() for k, v in self.skill_mastery.items()},
            "learning_history": [h.to_dict() for h in self.learning_history],
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "recommended_focus": list(self.recommended_focus),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StudentProfile":
        return cls(
            learner_id=data["learner_id"],
            ability=AbilityEstimate.from_dict(data["ability"]),
            skill_mastery={
                k: SkillMastery.from_dict(v) for k, v in data.get("skill_mastery", {}).items()
            },
            learning_history=tuple(
                LearningHistoryEntry.from_dict(h) for h in data.get("learning_history", [])
            ),
            strengths=list(data.get("strengths", [])),
            weaknesses=list(data.get("weaknesses", [])),
            recommended_focus=list(data.get("recommended_focus", []))
        )
