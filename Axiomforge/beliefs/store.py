"""PrincipleStore: ordered principles, their axioms and signal ownership."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional

from ..core.types import Axiom, Dimension, Principle, Promoted, Signal

logger = logging.getLogger("AXIOMFORGE.Store")

SNAPSHOT_FORMAT = 1


class PrincipleStore:
	"""Principles keyed by id in insertion order, plus every axiom ever awarded.

	- `principles_in(dimension)` returns principles in creation order
	- `owner_of(signal_id)` finds the principle currently holding a signal
	- `copy()` gives an independent store (signals are shared, they are immutable)
	- `to_dict()` / `from_dict()` for the persistence boundary
	"""

	def __init__(self):
		self.principles: "OrderedDict[str, Principle]" = OrderedDict()
		self.axioms: "OrderedDict[str, Axiom]" = OrderedDict()
		self.conflicts: List[Any] = []
		self._next_order = 0
		self._owners: Dict[str, str] = {}  # signal id -> principle id

	def __len__(self) -> int:
		return len(self.principles)

	def __iter__(self) -> Iterator[Principle]:
		return iter(self.principles.values())

	def __contains__(self, principle_id: object) -> bool:
		return principle_id in self.principles

	@property
	def next_order(self) -> int:
		return self._next_order

	def allocate_order(self) -> int:
		order = self._next_order
		self._next_order += 1
		return order

	def get(self, principle_id: str) -> Optional[Principle]:
		return self.principles.get(principle_id)

	def add(self, principle: Principle) -> Principle:
		if principle.id in self.principles:
			raise KeyError(f"Principle already present: {principle.id}")
		self.principles[principle.id] = principle
		self._next_order = max(self._next_order, principle.order + 1)
		for s in principle.signals:
			self._owners[s.id] = principle.id
		return principle

	def replace(self, principle: Principle) -> Principle:
		"""Swap in an updated copy of a principle already in the store, keeping its position."""
		if principle.id not in self.principles:
			raise KeyError(f"Principle not present: {principle.id}")
		self.principles[principle.id] = principle
		for s in principle.signals:
			self._owners[s.id] = principle.id
		return principle

	def claim(self, principle: Principle, signal: Signal) -> None:
		"""Register that ``principle`` now holds ``signal``."""
		self._owners[signal.id] = principle.id

	def owner_of(self, signal_id: str) -> Optional[str]:
		return self._owners.get(signal_id)

	def principles_in(self, dimension: Optional[Dimension]) -> List[Principle]:
		return sorted(
			(p for p in self.principles.values() if p.dimension == dimension),
			key=lambda p: p.order,
		)

	def dimensions(self) -> List[Optional[Dimension]]:
		seen: List[Optional[Dimension]] = []
		for p in self.principles.values():
			if p.dimension not in seen:
				seen.append(p.dimension)
		return seen

	def add_axiom(self, axiom: Axiom) -> Axiom:
		self.axioms[axiom.id] = axiom
		return axiom

	def axiom_for(self, principle: Principle) -> Optional[Axiom]:
		if isinstance(principle.promotion, Promoted):
			return self.axioms.get(principle.promotion.axiom_id)
		return None

	def promoted(self) -> List[Principle]:
		return [p for p in self.principles.values() if p.is_promoted]

	def signal_count(self) -> int:
		return sum(p.reinforcement_count for p in self.principles.values())

	def copy(self) -> "PrincipleStore":
		clone = PrincipleStore()
		for p in self.principles.values():
			clone.add(p.copy())
		for a in self.axioms.values():
			clone.add_axiom(a)
		clone.conflicts = list(self.conflicts)
		clone._next_order = self._next_order
		return clone

	def stats(self) -> Dict[str, Any]:
		by_dimension: Dict[str, int] = {}
		for p in self.principles.values():
			key = p.dimension.value if p.dimension else "unclassified"
			by_dimension[key] = by_dimension.get(key, 0) + 1
		return {
			"principles": len(self.principles),
			"axioms": len(self.axioms),
			"promoted_principles": len(self.promoted()),
			"signals": self.signal_count(),
			"by_dimension": by_dimension,
		}

	def to_dict(self) -> Dict[str, Any]:
		return {
			"format": SNAPSHOT_FORMAT,
			"next_order": self._next_order,
			"principles": [p.to_dict() for p in self.principles.values()],
			"axioms": [a.to_dict() for a in self.axioms.values()],
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "PrincipleStore":
		store = cls()
		for raw in data.get("principles", []):
			store.add(Principle.from_dict(raw))
		for raw in data.get("axioms", []):
			store.add_axiom(Axiom.from_dict(raw))
		store._next_order = max(store._next_order, int(data.get("next_order", 0) or 0))
		return store


__all__ = ["PrincipleStore", "SNAPSHOT_FORMAT"]
