"""Interactive workbench REPL."""

from __future__ import annotations

from typing import Optional

from .commands import Workbench, handle_command
from ..utils.errors import AxiomforgeException


def run_repl(bench: Optional[Workbench] = None) -> None:
    if bench is None:
        from ..config.logging_config import setup_logging_from_config
        from ..config.settings import get_config

        config = get_config()
        setup_logging_from_config(config.logging)
        bench = Workbench(config=config)

    print("\nCommands:")
    print("  load <snapshot>        → replace the working store with a snapshot")
    print("  save [snapshot]        → write the working store")
    print("  merge <snapshot>       → merge a snapshot into the working store")
    print("  policy [state]         → show or set bootstrap|learn|enforce")
    print("  status                 → principle/axiom counts and would-reject telemetry")
    print("  validate               → run the greenfield checks under the current policy")
    print("  report                 → axiom emergence report (markdown)")
    print("  trace <axiom|anchor>   → signals behind one axiom, with file:line")
    print("  checkpoint [note]      → save a numbered checkpoint")
    print("  restore [version]      → load a checkpoint (latest by default)")
    print("  exit")

    while True:
        try:
            cmd = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        try:
            should_continue, _debug = handle_command(bench, cmd)
            if not should_continue:
                break
        except AxiomforgeException as e:
            print(f"[AXIOMFORGE] Command failed: {e}")
