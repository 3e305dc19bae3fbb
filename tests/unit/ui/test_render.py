"""Unit tests for the plain-text CLI renderer."""

from __future__ import annotations

import io

import pytest

from agent_hierarchy.domain.models import (
    Capability,
    HierarchyWarning,
    RosterAgent,
    SourceAvailability,
    SourceId,
    SourceStatus,
    SourceStatusReport,
    WarningCode,
)
from agent_hierarchy.extraction.records import AgentRelationRecord, StructuralExtraction
from agent_hierarchy.graph.builder import build_from_records
from agent_hierarchy.ui.render import CLIRenderer, create_renderer


class _TTY(io.StringIO):
    def isatty(self) -> bool:
        return True


@pytest.mark.unit
def test_graph_view_lists_nodes_edges_and_warnings() -> None:
    graph = build_from_records(
        [RosterAgent(id="a", name="alpha", display_name="Alpha")],
        StructuralExtraction(
            source=SourceId.CONFIG_DOCUMENT,
            agents=(
                AgentRelationRecord(
                    id="alpha",
                    reports_to="boss",
                    capabilities={Capability.DELEGATE: True, Capability.WRITE: True},
                ),
            ),
        ),
        warnings=[HierarchyWarning(code=WarningCode.PARSE_ERROR, message="bad line")],
    )
    stream = io.StringIO()

    CLIRenderer(no_color=True, stream=stream).graph(graph)

    output = stream.getvalue()
    assert "Agents: 1" in output
    assert "External references: 1" in output
    assert "a     agent     Alpha  d--w  config_document,roster" in output
    assert "reports_to  a     boss  high" in output
    assert "Warning: [parse_error] bad line" in output
    assert "\033[" not in output


@pytest.mark.unit
def test_sources_view_shows_status_count_and_error() -> None:
    report = SourceStatusReport(
        roster=SourceStatus(
            availability=SourceAvailability.AVAILABLE, location="roster.json", count=3
        ),
        runtime_inventory=SourceStatus(
            availability=SourceAvailability.UNAVAILABLE,
            location="config.agents.list.json",
            error="command not found: openclaw",
        ),
    )
    stream = io.StringIO()

    create_renderer(no_color=True, stream=stream).sources(report)

    lines = stream.getvalue().splitlines()
    assert any(line.split()[:3] == ["roster", "available", "3"] for line in lines)
    assert "  runtime_inventory: command not found: openclaw" in lines


@pytest.mark.unit
def test_color_only_on_tty_without_opt_out(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    tty = _TTY()
    CLIRenderer(stream=tty).heading("Agent hierarchy")
    assert tty.getvalue().startswith("\033[1m")

    plain = _TTY()
    CLIRenderer(no_color=True, stream=plain).heading("Agent hierarchy")
    assert plain.getvalue() == "Agent hierarchy\n"

    monkeypatch.setenv("NO_COLOR", "1")
    env_plain = _TTY()
    CLIRenderer(stream=env_plain).heading("Agent hierarchy")
    assert env_plain.getvalue() == "Agent hierarchy\n"


@pytest.mark.unit
def test_table_prints_nothing_for_zero_rows() -> None:
    stream = io.StringIO()

    CLIRenderer(stream=stream).table(("A", "B"), [])

    assert stream.getvalue() == ""
