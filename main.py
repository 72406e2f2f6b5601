"""Entry point for the Axiomforge workbench."""

from __future__ import annotations


def main() -> None:
    from Axiomforge.cli.repl import run_repl

    run_repl()


if __name__ == "__main__":
    main()
