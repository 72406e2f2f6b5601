"""Source category detection.

The category is the grouping key for cross-category strength: the directory
directly beneath the memory root, never the file itself.
"""

from __future__ import annotations

import re
from typing import Optional

from ..llm.gateway import MEMORY_CATEGORIES


def category_from_path(path: str, root: str = "memory", strict: bool = False) -> str:
	"""Return the memory category of ``path``.

	With ``strict`` only the known memory categories are returned; any other
	directory maps to "unknown".

	memory/diary/2024-01-01.md       -> diary
	/ws/memory/goals/q3/plan.md      -> goals
	notes/knowledge/rust.md          -> knowledge  (no root: parent dir)
	README.md                        -> unknown
	"""
	parts = [p for p in re.split(r"[\\/]+", (path or "").strip()) if p and p != "."]
	if len(parts) < 2:
		return "unknown"

	category: Optional[str] = None
	if root in parts[:-1]:
		idx = parts.index(root)
		if idx + 1 < len(parts) - 1:
			category = parts[idx + 1]
	else:
		category = parts[-2]

	if not category:
		return "unknown"
	category = category.lower()
	if strict and category not in MEMORY_CATEGORIES:
		return "unknown"
	return category


__all__ = ["category_from_path"]
