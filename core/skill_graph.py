"""
Skill Graph - Arithmetic skill dependency DAG.

Features:
    - Static skill definitions (display name, description, relative difficulty)
    - Prerequisite relationships as directed edges
    - Prerequisite checks against a mastery map
    - Learning path ordering for practice sequencing
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx


@dataclass(frozen=True)
class SkillDefinition:
    skill_id: str
    name: str
    description: str
    prerequisites: Tuple[str, ...]
    difficulty: float  # 0-1, used to order practice


SKILL_DEFINITIONS: Dict[str, SkillDefinition] = {
    s.skill_id: s for s in [
        SkillDefinition("single-digit", "Single-digit addition",
                        "Adding two numbers between 1 and 9", (), 0.1),
        SkillDefinition("sum-to-ten", "Making ten",
                        "Pairs of numbers that add up to exactly 10", ("single-digit",), 0.2),
        SkillDefinition("bridge-ten", "Bridging ten",
                        "Single-digit sums that cross 10 (e.g. 7 + 5)", ("sum-to-ten",), 0.3),
        SkillDefinition("teens", "Teen numbers",
                        "Addition involving 10-19", ("bridge-ten",), 0.4),
        SkillDefinition("two-digit", "Two-digit addition",
                        "Addition with 20-99 without carrying", ("teens",), 0.5),
        SkillDefinition("carrying", "Carrying",
                        "Two-digit addition that carries into the tens", ("two-digit", "bridge-ten"), 0.7),
        SkillDefinition("large-numbers", "Large numbers",
                        "Addition with operands from 50 to 99", ("carrying",), 0.8),
        SkillDefinition("speed-challenge", "Speed challenge",
                        "Finishing calculations within a time limit", ("carrying",), 0.9),
    ]
}

DEFAULT_SKILL_DIFFICULTY = 0.5
PREREQUISITE_MASTERY = 0.7


class SkillGraph:
    """
    Directed acyclic graph of skills with prerequisites.

    Edges point from prerequisite to dependent skill. A prerequisite only
    counts once it has been observed, so every skill here needs items tagged
    with it (cold-start items tag sum-to-ten on single-digit sums of 10).
    """

    def __init__(self, definitions: Optional[Dict[str, SkillDefinition]] = None):
        self.definitions = definitions if definitions is not None else SKILL_DEFINITIONS
        self.graph = nx.DiGraph()

        for skill_id, definition in self.definitions.items():
            self.graph.add_node(skill_id, difficulty=definition.difficulty)
            for prereq in definition.prerequisites:
                self.graph.add_edge(prereq, skill_id)

        if not nx.is_directed_acyclic_graph(self.graph):
            raise ValueError("Skill prerequisites must not form a cycle")

    # ==================== Query Methods ====================

    def get_skill(self, skill_id: str) -> Optional[SkillDefinition]:
        return self.definitions.get(skill_id)

    def display_name(self, skill_id: str) -> str:
        """Human-readable name, falling back to the raw tag."""
        definition = self.definitions.get(skill_id)
        return definition.name if definition else skill_id

    def difficulty(self, skill_id: str) -> float:
        definition = self.definitions.get(skill_id)
        return definition.difficulty if definition else DEFAULT_SKILL_DIFFICULTY

    def get_prerequisites(self, skill_id: str) -> List[str]:
        """Immediate prerequisites, in definition order."""
        definition = self.definitions.get(skill_id)
        return list(definition.prerequisites) if definition else []

    def get_all_prerequisites(self, skill_id: str) -> Set[str]:
        if skill_id not in self.graph:
            return set()
        return nx.ancestors(self.graph, skill_id)

    # ==================== Mastery Checks ====================

    def prerequisites_met(self, skill_id: str, mastery: Dict[str, float],
                          threshold: float = PREREQUISITE_MASTERY) -> bool:
        """Every immediate prerequisite has been observed at >= threshold."""
        return all(
            prereq in mastery and mastery[prereq] >= threshold
            for prereq in self.get_prerequisites(skill_id)
        )

    def get_learning_path(self, target_skill: str, mastery: Dict[str, float],
                          threshold: float = PREREQUISITE_MASTERY) -> List[str]:
        """
        Ordered skills to practice before (and including) the target.

        Only skills below threshold are included; prerequisites come first.
        """
        needed = self.get_all_prerequisites(target_skill) | {target_skill}
        weak = {s for s in needed if mastery.get(s, 0.0) < threshold}

        order = nx.lexicographical_topological_sort(self.graph, key=self.difficulty_key)
        return [s for s in order if s in weak]

    def difficulty_key(self, skill_id: str) -> str:
        return f"{self.difficulty(skill_id):.3f}:{skill_id}"


DEFAULT_SKILL_GRAPH = SkillGraph()
