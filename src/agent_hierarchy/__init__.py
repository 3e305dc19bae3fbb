"""
agent-hierarchy — package root

File: src/agent_hierarchy/__init__.py

Purpose
- Reconcile an agent roster, a structural config document, agent markdown documents, and
  runtime tool policies into one deterministic organizational graph.

Import boundary rules
- Must not have side effects at import time (no config loading, no logging init).
- Heavy submodules are imported by callers directly, e.g.
  ``from agent_hierarchy.orchestrator import HierarchyService``.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
