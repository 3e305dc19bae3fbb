"""Output rendering abstraction for the agent-hierarchy CLI.

File: src/agent_hierarchy/ui/render.py

Purpose
- Provide a thin plain-text rendering layer for CLI output.
- Respect NO_COLOR environment variable and --no-color CLI flag.

Functional requirements
- All public methods must be safe to call in any environment.
- Output is deterministic for a given graph.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from agent_hierarchy.domain.models import CAPABILITIES, NodeKind, SourceId

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_hierarchy.domain.models import HierarchyGraph, Node, SourceStatusReport

_ANSI_BOLD = "\033[1m"
_ANSI_YELLOW = "\033[33m"
_ANSI_RESET = "\033[0m"


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Thin CLI output renderer.

    Produces clean, deterministic plain-text output. Color is limited to headings and
    warnings, and only on a TTY.
    """

    def __init__(self, *, no_color: bool = False, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._color = _color_allowed(no_color, self._stream)

    def _print(self, line: str = "") -> None:
        print(line, file=self._stream)

    def heading(self, text: str) -> None:
        self._print(f"{_ANSI_BOLD}{text}{_ANSI_RESET}" if self._color else text)

    def kv(self, key: str, value: object) -> None:
        self._print(f"{key}: {value}")

    def text(self, line: str) -> None:
        self._print(line)

    def section(self, title: str) -> None:
        self._print()
        self.heading(title)

    def warning(self, text: str) -> None:
        rendered = f"{_ANSI_YELLOW}{text}{_ANSI_RESET}" if self._color else text
        self._print(f"  Warning: {rendered}")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print a left-aligned ASCII table; nothing is printed for zero rows."""

        if not rows:
            return

        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(cell))

        def _pad(cells: Sequence[str]) -> str:
            return "  ".join(
                (cells[index] if index < len(cells) else "").ljust(width)
                for index, width in enumerate(widths)
            ).rstrip()

        self._print(f"  {_pad(headers)}")
        self._print(f"  {'  '.join('-' * width for width in widths)}")
        for row in rows:
            self._print(f"  {_pad(row)}")

    # ------------------------------------------------------------------ graph views

    def graph(self, graph: HierarchyGraph) -> None:
        agents = sum(1 for node in graph.nodes if node.kind is NodeKind.AGENT)
        self.heading("Agent hierarchy")
        self.kv("Agents", agents)
        self.kv("External references", len(graph.nodes) - agents)
        self.kv("Edges", len(graph.edges))
        self.kv("Warnings", len(graph.warnings))

        if graph.nodes:
            self.section("Nodes")
            self.table(
                ("ID", "KIND", "LABEL", "CAPS", "SOURCES"),
                [
                    (
                        node.id,
                        node.kind.value,
                        node.label,
                        _capability_flags(node),
                        ",".join(source.value for source in node.sources),
                    )
                    for node in graph.nodes
                ],
            )

        if graph.edges:
            self.section("Edges")
            self.table(
                ("TYPE", "FROM", "TO", "CONFIDENCE", "SOURCE"),
                [
                    (
                        edge.type.value,
                        edge.from_id,
                        edge.to_id,
                        edge.confidence.value,
                        edge.source.value,
                    )
                    for edge in graph.edges
                ],
            )

        if graph.warnings:
            self.section("Warnings")
            for warning in graph.warnings:
                self.warning(f"[{warning.code.value}] {warning.message}")

        self.sources(graph.sources)

    def sources(self, report: SourceStatusReport) -> None:
        self.section("Sources")
        rows: list[tuple[str, str, str, str]] = []
        for source in SourceId:
            status = report.get(source)
            rows.append(
                (
                    source.value,
                    status.availability.value,
                    "-" if status.count is None else str(status.count),
                    status.location or "-",
                )
            )
        self.table(("SOURCE", "STATUS", "COUNT", "LOCATION"), rows)
        for source in SourceId:
            error = report.get(source).error
            if error:
                self.text(f"  {source.value}: {error}")


def _capability_flags(node: Node) -> str:
    """``dmew`` style flags; a dash marks a capability the node does not have."""

    return "".join(
        capability.value[0] if node.can(capability) else "-" for capability in CAPABILITIES
    )


def create_renderer(*, no_color: bool = False, stream: TextIO | None = None) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
