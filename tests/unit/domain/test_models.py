"""
agent-hierarchy — unit tests for domain models

File: tests/unit/domain/test_models.py

Purpose
- Validate record construction, serialization shape, and lookup helpers of the graph model.
"""

from __future__ import annotations

import json

import pytest

from agent_hierarchy.constants import PRECEDENCE_FALLBACK, PRECEDENCE_UNSET
from agent_hierarchy.domain.models import (
    CAPABILITIES,
    Capability,
    CapabilityValue,
    Confidence,
    Edge,
    EdgeType,
    HierarchyGraph,
    HierarchyWarning,
    Node,
    NodeKind,
    RosterAgent,
    SourceAvailability,
    SourceId,
    SourceStatus,
    SourceStatusReport,
    WarningCode,
)


def _node(node_id: str, *, kind: NodeKind = NodeKind.AGENT) -> Node:
    return Node(
        id=node_id,
        normalized_id=node_id.lower(),
        kind=kind,
        label=node_id,
        roster_agent_id=None,
        role=None,
        station=None,
        status=None,
        agent_kind=None,
        runtime_agent_id=None,
        capabilities={capability: CapabilityValue.unset() for capability in CAPABILITIES},
        tool_policy=None,
        sources=(SourceId.CONFIG_DOCUMENT,),
    )


@pytest.mark.unit
def test_roster_agent_from_mapping_accepts_camel_case_keys() -> None:
    agent = RosterAgent.from_mapping(
        {
            "id": " a1 ",
            "name": "Build",
            "displayName": "Build Agent",
            "runtimeAgentId": "agentBuild",
            "slug": "build",
            "role": "worker",
        }
    )

    assert agent.id == "a1"
    assert agent.display_name == "Build Agent"
    assert agent.runtime_agent_id == "agentBuild"
    assert agent.slug == "build"
    assert agent.station == "unknown"
    assert agent.kind == "worker"


@pytest.mark.unit
def test_roster_agent_defaults_name_and_display_name_to_id() -> None:
    agent = RosterAgent.from_mapping({"id": "ops"})

    assert agent.name == "ops"
    assert agent.display_name == "ops"
    assert agent.runtime_agent_id is None


@pytest.mark.unit
def test_roster_agent_requires_id() -> None:
    with pytest.raises(ValueError, match="id"):
        RosterAgent.from_mapping({"name": "nameless"})


@pytest.mark.unit
def test_capability_value_claim_carries_source_precedence() -> None:
    unset = CapabilityValue.unset()
    claimed = CapabilityValue.claim(True, SourceId.FALLBACK_POLICY)

    assert unset.is_set is False
    assert unset.precedence == PRECEDENCE_UNSET
    assert claimed.is_set is True
    assert claimed.precedence == PRECEDENCE_FALLBACK
    assert claimed.to_dict() == {"value": True, "source": "fallback_policy", "precedence": 2}


@pytest.mark.unit
def test_source_precedence_ordering() -> None:
    assert (
        SourceId.ROSTER.precedence
        < SourceId.CONFIG_DOCUMENT.precedence
        == SourceId.AGENT_DOCUMENTS.precedence
        < SourceId.FALLBACK_POLICY.precedence
        < SourceId.RUNTIME_INVENTORY.precedence
    )


@pytest.mark.unit
def test_edge_id_and_serialization() -> None:
    edge = Edge(
        type=EdgeType.REPORTS_TO,
        from_id="agentA",
        to_id="B",
        from_key="agenta",
        to_key="b",
        confidence=Confidence.HIGH,
        source=SourceId.CONFIG_DOCUMENT,
        sources=(SourceId.CONFIG_DOCUMENT,),
    )

    assert edge.id == "reports_to:agentA->B"
    payload = edge.to_dict()
    assert payload["from"] == "agentA"
    assert payload["to"] == "B"
    assert payload["confidence"] == "high"


@pytest.mark.unit
def test_warning_serialization_omits_empty_optional_fields() -> None:
    bare = HierarchyWarning(code=WarningCode.PARSE_ERROR, message="bad")
    full = HierarchyWarning(
        code=WarningCode.SELF_LOOP_DROPPED,
        message="loop",
        source=SourceId.CONFIG_DOCUMENT,
        related_node_id="A",
    )

    assert bare.to_dict() == {"code": "parse_error", "message": "bad"}
    assert full.to_dict()["related_node_id"] == "A"
    assert bare == HierarchyWarning(code=WarningCode.PARSE_ERROR, message="bad")


@pytest.mark.unit
def test_source_status_flags() -> None:
    used = SourceStatus(availability=SourceAvailability.AVAILABLE, location="x", count=2)
    unused = SourceStatus(availability=SourceAvailability.AVAILABLE_UNUSED, location="y")
    missing = SourceStatus(availability=SourceAvailability.UNAVAILABLE, location="z")

    assert (used.available, used.used) == (True, True)
    assert (unused.available, unused.used) == (True, False)
    assert (missing.available, missing.used) == (False, False)
    assert used.to_dict()["count"] == 2
    assert "error" not in missing.to_dict()


@pytest.mark.unit
def test_default_report_lists_every_source_unavailable() -> None:
    report = SourceStatusReport()

    payload = report.to_dict()
    assert sorted(payload) == sorted(source.value for source in SourceId)
    assert all(entry["availability"] == "unavailable" for entry in payload.values())
    assert report.get(SourceId.ROSTER).location == "roster"


@pytest.mark.unit
def test_graph_lookup_and_canonical_json() -> None:
    graph = HierarchyGraph(
        nodes=(_node("ClawcontrolBuild"), _node("Outsider", kind=NodeKind.EXTERNAL)),
        edges=(),
        sources=SourceStatusReport(),
        warnings=(HierarchyWarning(code=WarningCode.PARSE_ERROR, message="bad"),),
    )

    assert graph.node("clawcontrolbuild") is graph.nodes[0]
    assert graph.node("ClawcontrolBuild") is graph.nodes[0]
    assert graph.node("missing") is None
    assert graph.warnings_of(WarningCode.PARSE_ERROR) == graph.warnings
    assert graph.edges_of(EdgeType.CAN_MESSAGE) == ()

    rendered = graph.to_json()
    assert rendered == json.dumps(
        json.loads(rendered), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    assert graph.to_api_payload()["data"]["schema_version"] == 1
    assert graph.to_dict()["nodes"][0]["capabilities"] == {
        capability.value: False for capability in Capability
    }
