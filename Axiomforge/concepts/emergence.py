"""Cross-source emergence analysis.

An axiom backed by many signals from many memory categories is more likely
to describe identity than one repeated in a single diary. Strength rewards
breadth logarithmically: strength = N * log2(categories + 1).
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, List

from ..beliefs.store import PrincipleStore
from ..core.types import Axiom, Dimension

logger = getLogger("AXIOMFORGE.Emergence")

CORE_IDENTITY_DIMENSIONS = 3


def cross_source_strength(n_count: int, category_count: int) -> float:
    return n_count * math.log2(category_count + 1)


@dataclass
class EmergentAxiom:
    axiom: Axiom
    source_categories: List[str]
    strength: float
    dimensions: List[str] = field(default_factory=list)

    @property
    def is_core_identity(self) -> bool:
        return len(self.dimensions) >= CORE_IDENTITY_DIMENSIONS


@dataclass
class EmergenceStats:
    total_axioms: int = 0
    cross_source_axioms: int = 0
    core_identity_axioms: int = 0
    avg_source_categories: float = 0.0
    category_distribution: Dict[str, int] = field(default_factory=dict)
    dimension_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_axioms": self.total_axioms,
            "cross_source_axioms": self.cross_source_axioms,
            "core_identity_axioms": self.core_identity_axioms,
            "avg_source_categories": self.avg_source_categories,
            "category_distribution": dict(self.category_distribution),
            "dimension_distribution": dict(self.dimension_distribution),
        }


def detect_emergent_axioms(store: PrincipleStore) -> List[EmergentAxiom]:
    """Every axiom of ``store`` with its source breadth, strongest first."""
    emergent: List[EmergentAxiom] = []
    for axiom in store.axioms.values():
        principle = store.get(axiom.principle_id)
        if principle is None:
            logger.warning(f"Axiom {axiom.id} refers to missing principle {axiom.principle_id}")
            emergent.append(EmergentAxiom(axiom, [], 0.0))
            continue

        dimensions: List[str] = []
        for d in [principle.dimension] + [s.dimension for s in principle.signals]:
            if d is not None and d.value not in dimensions:
                dimensions.append(d.value)
        for raw in principle.dimension_conflicts:
            if raw in {d.value for d in Dimension} and raw not in dimensions:
                dimensions.append(raw)

        categories = principle.categories
        emergent.append(EmergentAxiom(
            axiom=axiom,
            source_categories=categories,
            strength=cross_source_strength(principle.reinforcement_count, len(categories)),
            dimensions=dimensions,
        ))

    emergent.sort(key=lambda e: -e.strength)
    return emergent


def emergence_stats(emergent: List[EmergentAxiom]) -> EmergenceStats:
    categories: Dict[str, int] = defaultdict(int)
    dimensions: Dict[str, int] = {d.value: 0 for d in Dimension}
    total_categories = 0

    stats = EmergenceStats(total_axioms=len(emergent))
    for e in emergent:
        total_categories += len(e.source_categories)
        if len(e.source_categories) > 1:
            stats.cross_source_axioms += 1
        if e.is_core_identity:
            stats.core_identity_axioms += 1
        for c in e.source_categories:
            categories[c] += 1
        for d in e.dimensions:
            dimensions[d] = dimensions.get(d, 0) + 1

    stats.avg_source_categories = total_categories / len(emergent) if emergent else 0.0
    stats.category_distribution = dict(categories)
    stats.dimension_distribution = dimensions
    return stats


def format_emergence_report(emergent: List[EmergentAxiom], stats: EmergenceStats) -> str:
    lines = [
        "# Axiom Emergence Report",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total axioms | {stats.total_axioms} |",
        f"| Cross-source axioms | {stats.cross_source_axioms} |",
        f"| Core identity axioms | {stats.core_identity_axioms} |",
        f"| Avg source categories | {stats.avg_source_categories:.2f} |",
        "",
        "## Axioms",
        "",
        "| Notation | N | Categories | Strength |",
        "|----------|---|------------|----------|",
    ]
    for e in emergent:
        lines.append(
            f"| {e.axiom.canonical.notation} | {e.axiom.reinforcement_count} | "
            f"{', '.join(e.source_categories)} | {e.strength:.2f} |"
        )

    lines += ["", "## Category Distribution", "", "| Category | Axiom Count |", "|----------|-------------|"]
    for category, count in sorted(stats.category_distribution.items()):
        lines.append(f"| {category} | {count} |")

    lines += ["", "## Dimension Distribution", "", "| Dimension | Axiom Count |", "|-----------|-------------|"]
    for dimension, count in stats.dimension_distribution.items():
        if count > 0:
            lines.append(f"| {dimension} | {count} |")

    core = [e for e in emergent if e.is_core_identity]
    if core:
        lines += ["", f"## Core Identity Axioms ({CORE_IDENTITY_DIMENSIONS}+ dimensions)", ""]
        for e in core:
            lines += [
                f"### {e.axiom.canonical.notation or e.axiom.id}",
                "",
                f"- **Text**: {e.axiom.text}",
                f"- **Strength**: {e.strength:.2f}",
                f"- **Sources**: {', '.join(e.source_categories)}",
                f"- **Dimensions**: {', '.join(e.dimensions)}",
                "",
            ]

    return "\n".join(lines)


__all__ = [
    "EmergentAxiom",
    "EmergenceStats",
    "cross_source_strength",
    "detect_emergent_axioms",
    "emergence_stats",
    "format_emergence_report",
]
