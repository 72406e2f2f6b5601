"""Single-axiom provenance: axiom -> principle -> the signals behind it."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..beliefs.store import PrincipleStore
from ..core.types import Axiom, SourceRef


def find_axiom(store: PrincipleStore, key: str) -> Optional[Axiom]:
    """Look an axiom up by id, else by canonical anchor (first in store order)."""
    key = (key or "").strip()
    if not key:
        return None
    if key in store.axioms:
        return store.axioms[key]
    for axiom in store.axioms.values():
        if axiom.canonical.anchor == key:
            return axiom
    return None


def source_location(source: SourceRef) -> str:
    return f"{source.file}:{source.line}" if source.line is not None else source.file


def trace_axiom(store: PrincipleStore, axiom: Axiom) -> Dict[str, Any]:
    principle = store.get(axiom.principle_id)
    signals = sorted(principle.signals, key=lambda s: s.order) if principle else []
    return {
        "axiom_id": axiom.id,
        "notation": axiom.canonical.notation or axiom.text,
        "principle_id": axiom.principle_id,
        "principle_text": principle.text if principle else None,
        "n_count": principle.reinforcement_count if principle else 0,
        "categories": principle.categories if principle else [],
        "sources": [source_location(s.source) for s in signals],
    }


def format_trace(trace: Dict[str, Any]) -> str:
    """Tree view of one trace:

        💎 誠: be honest about capabilities
        └── "Be honest about capabilities" (N=2; diary, goals)
            ├── memory/diary/2024-03-15.md:45
            └── memory/goals/plan.md
    """
    lines: List[str] = [trace["notation"]]
    if trace["principle_text"] is None:
        lines.append(f"└── (principle {trace['principle_id']} not in store)")
        return "\n".join(lines)

    lines.append(
        f"└── \"{trace['principle_text']}\" (N={trace['n_count']}; {', '.join(trace['categories'])})"
    )
    sources = trace["sources"]
    for i, location in enumerate(sources):
        branch = "└──" if i == len(sources) - 1 else "├──"
        lines.append(f"    {branch} {location}")
    return "\n".join(lines)


__all__ = ["find_axiom", "source_location", "trace_axiom", "format_trace"]
