"""Module entrypoint for ``python -m agent_hierarchy``."""

from __future__ import annotations

from agent_hierarchy.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
