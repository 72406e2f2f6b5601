"""Command handlers for the Axiomforge workbench REPL."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..beliefs.merge import StoreMerger
from ..beliefs.store import PrincipleStore
from ..concepts.emergence import detect_emergent_axioms, emergence_stats, format_emergence_report
from ..concepts.provenance import find_axiom, format_trace, trace_axiom
from ..config.settings import AxiomforgeConfig
from ..core.gate import GreenfieldGate, run_checks
from ..core.types import GreenfieldState
from ..memory.persistence import SnapshotManager, read_snapshot, write_snapshot


@dataclass
class Workbench:
	"""REPL session: one working store and the active greenfield policy."""
	config: AxiomforgeConfig = field(default_factory=AxiomforgeConfig)
	store: PrincipleStore = field(default_factory=PrincipleStore)
	gate: Optional[GreenfieldGate] = None
	source: Optional[str] = None

	def __post_init__(self) -> None:
		if self.gate is None:
			self.gate = GreenfieldGate(GreenfieldState.parse(self.config.greenfield.state))

	@property
	def policy(self) -> GreenfieldState:
		return self.gate.policy


def _say(msg: str) -> None:
	print(f"[AXIOMFORGE] {msg}")


def handle_command(bench: Workbench, cmd: str) -> Tuple[bool, Dict[str, Any]]:
	"""Handle a single REPL command.

	Returns (should_continue, debug_info).
	"""
	cmd = (cmd or "").strip()
	if not cmd:
		return True, {}

	parts = cmd.split(None, 1)
	verb = parts[0].lower()
	arg = parts[1].strip() if len(parts) > 1 else ""

	if verb in {"exit", "quit"}:
		return False, {}

	if verb == "load":
		if not arg:
			print("Usage: load <snapshot>")
			return True, {}
		bench.store = read_snapshot(arg)
		bench.source = arg
		_say(f"Loaded {len(bench.store)} principles, {len(bench.store.axioms)} axioms from {arg}")
		return True, bench.store.stats()

	if verb == "save":
		target = arg or bench.source or bench.config.storage.snapshot_path
		write_snapshot(bench.store, target, compression=bench.config.storage.compression)
		bench.source = target
		_say(f"Saved to {target}")
		return True, {"path": target}

	if verb == "merge":
		if not arg:
			print("Usage: merge <snapshot>")
			return True, {}
		incoming = read_snapshot(arg)
		merger = StoreMerger(bench.config.merge.merge_threshold, bench.config.merge.allow_cross_dimension)
		report = merger.merge(bench.store, incoming)
		bench.store = report.store
		summary = report.summary()
		_say(f"Merged {arg}: {summary['matched']} matched, {summary['inserted']} inserted, {summary['absorbed']} absorbed")
		for c in report.conflicts:
			print(f"  [{c.type}] {c.principle_id} <- {c.incoming_id}: {c.details}")
		return True, summary

	if verb == "policy":
		if not arg:
			_say(f"Policy: {bench.policy.value}")
			return True, {"policy": bench.policy.value}
		bench.gate.set_policy(arg)
		_say(f"Policy set to {bench.policy.value}")
		return True, {"policy": bench.policy.value}

	if verb == "status":
		stats = bench.store.stats()
		stats["policy"] = bench.policy.value
		stats["would_reject"] = bench.gate.telemetry()
		print(json.dumps(stats, indent=2, ensure_ascii=False))
		return True, stats

	if verb == "validate":
		outcomes = run_checks(len(bench.store.axioms), bench.store.signal_count(), bench.config.promotion.axiom_threshold)
		result = bench.gate.validate(outcomes)
		if result.valid and result.would_reject:
			_say(f"VALID ({result.policy.value}), would reject: {result.would_reject}")
		elif result.valid:
			_say(f"VALID ({result.policy.value})")
		else:
			_say(f"INVALID ({result.policy.value}): {result.reason}")
		for w in result.warnings:
			print(f"  warning: {w}")
		return True, result.to_dict()

	if verb == "report":
		emergent = detect_emergent_axioms(bench.store)
		stats = emergence_stats(emergent)
		print(format_emergence_report(emergent, stats))
		return True, stats.to_dict()

	if verb == "trace":
		if not arg:
			print("Usage: trace <axiom-id|anchor>")
			return True, {}
		axiom = find_axiom(bench.store, arg)
		if axiom is None:
			_say(f"No axiom matches {arg}")
			return True, {}
		trace = trace_axiom(bench.store, axiom)
		print(format_trace(trace))
		return True, trace

	if verb == "checkpoint":
		manager = SnapshotManager.from_config(bench.config.storage)
		checkpoint = manager.save(bench.store, description=arg)
		_say(f"Checkpoint v{checkpoint.version} written")
		return True, checkpoint.to_dict()

	if verb == "restore":
		if arg and not arg.isdigit():
			print("Usage: restore [version]")
			return True, {}
		manager = SnapshotManager.from_config(bench.config.storage)
		bench.store = manager.load(int(arg) if arg else None)
		_say(f"Restored checkpoint {arg or 'latest'}: {len(bench.store)} principles")
		return True, bench.store.stats()

	print(f"Unknown command: {verb}")
	return True, {}


__all__ = ["Workbench", "handle_command"]
