"""
agent-hierarchy — integration tests for source acquisition and build orchestration

File: tests/integration/test_hierarchy_service.py

Purpose
- Exercise ``HierarchyService`` against real files in a temporary workspace with injected
  roster and runtime collaborators.

What this test file should cover
- Structural source selection (config document vs agent documents).
- Overlay selection (runtime inventory vs fallback policy) and the fallback-used warning.
- Silent expected absence vs ``source_unavailable`` failures.
- Per-source status reporting.
- The three reference scenarios end to end.

Functional requirements
- Offline only; ``load`` never raises.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from agent_hierarchy.config.schema import default_config
from agent_hierarchy.domain.models import (
    Capability,
    Confidence,
    EdgeType,
    NodeKind,
    RosterAgent,
    SourceAvailability,
    SourceId,
    WarningCode,
)
from agent_hierarchy.orchestrator import HierarchyService, ServiceSettings, build_hierarchy
from agent_hierarchy.sources.roster import StaticRosterProvider
from agent_hierarchy.sources.runtime import RuntimeCommandResult


class _FakeRuntime:
    def __init__(self, result: RuntimeCommandResult) -> None:
        self.result = result
        self.calls: list[tuple[str, float]] = []

    def fetch(self, command_id: str, *, timeout_seconds: float) -> RuntimeCommandResult:
        self.calls.append((command_id, timeout_seconds))
        return self.result


class _ExplodingRuntime:
    def fetch(self, command_id: str, *, timeout_seconds: float) -> RuntimeCommandResult:
        raise RuntimeError("socket closed")


class _ExplodingRoster:
    def list_agents(self) -> Sequence[RosterAgent]:
        raise ConnectionError("database offline")


_GATEWAY_DOWN = RuntimeCommandResult(
    error="config.agents.list.json exited with code 1: gateway offline", exit_code=1
)
_NOT_INSTALLED = RuntimeCommandResult(error="command not found: openclaw")


def _config(workspace: Path, *, runtime: bool = True) -> dict[str, Any]:
    config: dict[str, Any] = dict(default_config())
    config["sources"]["workspace_root"] = workspace.as_posix()
    config["runtime"]["enabled"] = runtime
    return config


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _service(
    workspace: Path,
    *,
    roster: Sequence[RosterAgent] | None = None,
    runtime: RuntimeCommandResult | None = None,
) -> HierarchyService:
    return HierarchyService.from_config(
        _config(workspace, runtime=runtime is not None),
        roster_provider=StaticRosterProvider(roster) if roster is not None else None,
        runtime_client=_FakeRuntime(runtime) if runtime is not None else None,
    )


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_fallback_used_with_allow_listed_messaging(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "agents:\n  A:\n    reports_to: B\n")
    _write(
        tmp_path / "openclaw" / "openclaw.json5",
        "{ tools: { agentToAgent: { enabled: true, allow: ['A'] } } }",
    )
    roster = [RosterAgent(id="A", name="A", display_name="A", runtime_agent_id="agentA")]

    graph = _service(tmp_path, roster=roster, runtime=_GATEWAY_DOWN).load()

    agent = graph.node("agentA")
    external = graph.node("B")
    assert [node.kind for node in graph.nodes] == [NodeKind.AGENT, NodeKind.EXTERNAL]
    assert agent is not None and external is not None
    assert agent.label == "A"
    assert external.kind is NodeKind.EXTERNAL
    assert [(edge.type, edge.from_id, edge.to_id, edge.confidence) for edge in graph.edges] == [
        (EdgeType.CAN_MESSAGE, "agentA", "B", Confidence.MEDIUM),
        (EdgeType.REPORTS_TO, "agentA", "B", Confidence.HIGH),
    ]
    assert agent.can(Capability.MESSAGE) is True
    assert agent.capabilities[Capability.MESSAGE].source is SourceId.FALLBACK_POLICY
    assert [warning.code for warning in graph.warnings] == [
        WarningCode.RUNTIME_UNAVAILABLE_FALLBACK_USED
    ]
    assert graph.warnings[0].source is SourceId.FALLBACK_POLICY
    assert "gateway offline" in graph.warnings[0].message
    assert graph.sources.runtime_inventory.error == _GATEWAY_DOWN.error
    assert graph.sources.fallback_policy.used


@pytest.mark.integration
def test_self_reporting_agent_is_dropped(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "agents:\n  A:\n    reports_to: A\n")

    graph = _service(tmp_path).load()

    assert graph.edges == ()
    assert [(warning.code, warning.related_node_id) for warning in graph.warnings] == [
        (WarningCode.SELF_LOOP_DROPPED, "A")
    ]


@pytest.mark.integration
def test_document_heading_fallback(tmp_path: Path) -> None:
    _write(
        tmp_path / "agents" / "build.md",
        "# ClawControlBuild\n\nReports to: ClawControlCEO\n",
    )

    graph = _service(tmp_path).load()

    assert [(edge.type, edge.from_id, edge.to_id, edge.source) for edge in graph.edges] == [
        (EdgeType.REPORTS_TO, "ClawControlBuild", "ClawControlCEO", SourceId.AGENT_DOCUMENTS)
    ]
    assert graph.warnings == ()
    assert graph.sources.agent_documents.availability is SourceAvailability.AVAILABLE
    assert graph.sources.agent_documents.count == 1
    assert graph.sources.config_document.availability is SourceAvailability.UNAVAILABLE


# ---------------------------------------------------------------------------
# Source selection and status
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_empty_workspace_builds_empty_graph_silently(tmp_path: Path) -> None:
    graph = _service(tmp_path).load()

    assert graph.nodes == ()
    assert graph.edges == ()
    assert graph.warnings == ()
    assert all(not status.available for status in (graph.sources.get(s) for s in SourceId))
    assert graph.sources.runtime_inventory.error == "runtime inventory disabled by configuration"


@pytest.mark.integration
def test_config_document_wins_over_documents(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "agents:\n  build:\n    reports_to: ceo\n")
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")

    graph = _service(tmp_path).load()

    assert graph.sources.config_document.availability is SourceAvailability.AVAILABLE
    assert graph.sources.config_document.count == 1
    assert graph.sources.agent_documents.availability is SourceAvailability.AVAILABLE_UNUSED
    assert graph.node("ClawcontrolOps") is None


@pytest.mark.integration
def test_config_without_agents_falls_back_to_documents(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "version: 1\n")
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")

    graph = _service(tmp_path).load()

    assert graph.sources.config_document.availability is SourceAvailability.AVAILABLE_UNUSED
    assert graph.sources.agent_documents.used
    assert graph.edges[0].from_id == "ClawcontrolOps"
    assert [warning.code for warning in graph.warnings] == [WarningCode.INVALID_RELATION]


@pytest.mark.integration
def test_malformed_config_is_reported_and_documents_used(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "agents: [unclosed\n")
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")

    graph = _service(tmp_path).load()

    warning = graph.warnings_of(WarningCode.SOURCE_UNAVAILABLE)[0]
    assert warning.source is SourceId.CONFIG_DOCUMENT
    assert warning.message.startswith("Config document unavailable:")
    assert graph.sources.config_document.error is not None
    assert graph.sources.agent_documents.used


@pytest.mark.integration
def test_unreadable_document_is_a_parse_error(tmp_path: Path) -> None:
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")
    (tmp_path / "agents" / "broken.md").write_bytes(b"\xff\xfe\xfa")

    graph = _service(tmp_path).load()

    assert [warning.code for warning in graph.warnings] == [WarningCode.PARSE_ERROR]
    assert "agents/broken.md" in graph.warnings[0].message
    assert len(graph.edges) == 1


@pytest.mark.integration
def test_unlistable_agent_folder_is_a_parse_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")
    (tmp_path / "agents" / "locked").mkdir()
    original_iterdir = Path.iterdir

    def guarded_iterdir(self: Path) -> Iterator[Path]:
        if self.name == "locked":
            raise PermissionError(13, "Permission denied", str(self))
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", guarded_iterdir)

    graph = _service(tmp_path).load()

    assert [warning.code for warning in graph.warnings] == [WarningCode.PARSE_ERROR]
    assert "agents/locked" in graph.warnings[0].message
    assert [(edge.from_id, edge.to_id) for edge in graph.edges] == [
        ("ClawcontrolOps", "ClawcontrolCEO")
    ]


@pytest.mark.integration
def test_deeply_nested_sources_degrade_to_source_unavailable(tmp_path: Path) -> None:
    _write(tmp_path / "clawcontrol.config.yaml", "agents: " + "[" * 5000 + "]" * 5000)
    _write(tmp_path / "openclaw" / "openclaw.json5", "[" * 5000 + "]" * 5000)
    _write(tmp_path / "agents" / "ops" / "SOUL.md", "Reports to: ClawcontrolCEO\n")

    graph = _service(tmp_path, runtime=_NOT_INSTALLED).load()

    assert [(warning.code, warning.source) for warning in graph.warnings] == [
        (WarningCode.SOURCE_UNAVAILABLE, SourceId.CONFIG_DOCUMENT),
        (WarningCode.SOURCE_UNAVAILABLE, SourceId.FALLBACK_POLICY),
    ]
    assert graph.sources.agent_documents.used
    assert graph.sources.fallback_policy.error is not None
    assert len(graph.edges) == 1


@pytest.mark.integration
def test_runtime_inventory_wins_over_fallback(tmp_path: Path) -> None:
    _write(tmp_path / "openclaw" / "openclaw.json5", "{ agents: { list: [{ id: 'ops' }] } }")
    runtime = RuntimeCommandResult(
        data=[{"id": "ops", "tools": {"allow": ["exec"], "exec": {"security": "deny"}}}]
    )

    graph = _service(tmp_path, runtime=runtime).load()

    node = graph.node("ops")
    assert node is not None
    assert node.can(Capability.EXEC) is False
    assert node.tool_policy is not None
    assert node.tool_policy.source is SourceId.RUNTIME_INVENTORY
    assert graph.sources.runtime_inventory.count == 1
    assert graph.sources.fallback_policy.availability is SourceAvailability.AVAILABLE_UNUSED
    assert graph.warnings == ()


@pytest.mark.integration
def test_missing_runtime_uses_fallback_without_warning(tmp_path: Path) -> None:
    _write(
        tmp_path / "openclaw" / "openclaw.json5",
        "{ agents: { list: [{ id: 'ops', tools: { allow: ['write'] } }] },"
        " tools: { agentToAgent: { enabled: false } } }",
    )

    graph = _service(tmp_path, runtime=_NOT_INSTALLED).load()

    node = graph.node("ops")
    assert node is not None
    assert node.can(Capability.WRITE) is True
    assert node.can(Capability.MESSAGE) is False
    assert graph.warnings == ()
    assert graph.sources.fallback_policy.used
    assert graph.sources.runtime_inventory.error == "command not found: openclaw"


@pytest.mark.integration
def test_broken_runtime_without_fallback_is_source_unavailable(tmp_path: Path) -> None:
    graph = _service(tmp_path, runtime=_GATEWAY_DOWN).load()

    assert [(warning.code, warning.source) for warning in graph.warnings] == [
        (WarningCode.SOURCE_UNAVAILABLE, SourceId.RUNTIME_INVENTORY)
    ]


@pytest.mark.integration
def test_runtime_client_exception_is_contained(tmp_path: Path) -> None:
    service = HierarchyService.from_config(
        _config(tmp_path), runtime_client=_ExplodingRuntime()
    )

    graph = service.load()

    assert graph.sources.runtime_inventory.error == "RuntimeError: socket closed"
    assert graph.warnings_of(WarningCode.SOURCE_UNAVAILABLE)


@pytest.mark.integration
def test_roster_failure_is_reported_and_missing_roster_file_is_silent(tmp_path: Path) -> None:
    failing = HierarchyService.from_config(
        _config(tmp_path, runtime=False), roster_provider=_ExplodingRoster()
    )
    config = _config(tmp_path, runtime=False)
    config["sources"]["roster_file"] = "roster.json"
    missing = HierarchyService.from_config(config)

    failed_graph = failing.load()
    missing_graph = missing.load()

    assert [warning.message for warning in failed_graph.warnings] == [
        "Roster unavailable: database offline"
    ]
    assert missing_graph.warnings == ()
    assert missing_graph.sources.roster.location == (tmp_path / "roster.json").as_posix()


@pytest.mark.integration
def test_roster_file_from_config(tmp_path: Path) -> None:
    _write(
        tmp_path / "roster.json",
        json.dumps({"agents": [{"id": "a1", "name": "build", "runtimeAgentId": "agentBuild"}]}),
    )
    _write(tmp_path / "clawcontrol.config.yaml", "agents:\n  build:\n    reports_to: ceo\n")
    config = _config(tmp_path, runtime=False)
    config["sources"]["roster_file"] = "roster.json"

    graph = build_hierarchy(config)

    assert graph.sources.roster.count == 1
    assert graph.edges[0].from_id == "agentBuild"
    assert graph.node("agentBuild").roster_agent_id == "a1"


@pytest.mark.integration
def test_runtime_client_receives_configured_command_id_and_timeout(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config["runtime"]["timeout_seconds"] = 4.5
    runtime = _FakeRuntime(RuntimeCommandResult(data=[]))

    HierarchyService.from_config(config, runtime_client=runtime).load()

    assert runtime.calls == [("config.agents.list.json", 4.5)]


@pytest.mark.integration
def test_repeated_loads_are_byte_identical(tmp_path: Path) -> None:
    _write(
        tmp_path / "clawcontrol.config.yaml",
        "agents:\n"
        "  lead:\n    delegates_to: [b, a]\n    permissions: {can_send_messages: true}\n"
        "  a:\n    reports_to: lead\n"
        "  b:\n    reports_to: lead\n",
    )
    service = _service(tmp_path)

    assert service.load().to_json() == service.load().to_json()


@pytest.mark.unit
def test_settings_resolve_relative_paths_against_workspace(tmp_path: Path) -> None:
    settings = ServiceSettings.from_config(_config(tmp_path))

    assert settings.config_document == tmp_path / "clawcontrol.config.yaml"
    assert settings.fallback_document == tmp_path / "openclaw" / "openclaw.json5"
    assert settings.roster_file is None
    assert settings.heuristics.agent_prefix == "Clawcontrol"
