"""CLI surface: argument routing and plain-text rendering."""

from agent_hierarchy.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIRenderer", "create_renderer"]
