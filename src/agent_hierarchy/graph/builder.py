"""
agent-hierarchy — graph builder

File: src/agent_hierarchy/graph/builder.py

Purpose
- Reconcile roster, structural, and overlay records into one deterministic hierarchy graph.

What is included in this file
- An arena of mutable node/edge slots addressed by integer index, with key -> index tables.
- Node creation, alias claiming, capability and tool-policy writes under source precedence.
- Edge insertion with endpoint classification, self-loop dropping, and upsert merging.
- Derived ``can_message`` edges and final ordering.

Functional requirements
- Processing order is fixed: roster, then the structural source, then exactly one overlay.
- A node's kind is ``agent`` once any agent-classifying record names it and never reverts.
- Capability values and tool policies are written iff the writer's precedence is >= recorded.
- No self-loops; at most one edge per (type, from_key, to_key).

Non-functional requirements
- Identical inputs produce byte-identical output.
- Never raises on well-typed inputs; data defects become warnings.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from agent_hierarchy.constants import PRECEDENCE_UNSET
from agent_hierarchy.domain.identity import IdentityNormalizer, normalize_identifier
from agent_hierarchy.domain.models import (
    CAPABILITIES,
    STRUCTURAL_EDGE_TYPES,
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
    SourceId,
    SourceStatusReport,
    ToolPolicy,
    WarningCode,
    sorted_sources,
)
from agent_hierarchy.extraction.payload import compact_string
from agent_hierarchy.extraction.records import OverlayExtraction, StructuralExtraction
from agent_hierarchy.graph.warnings import WarningCollector
from agent_hierarchy.inference.capabilities import resolve_capability, should_replace

if TYPE_CHECKING:
    from collections.abc import Iterable

_STRUCTURAL_CONFIDENCE: dict[SourceId, Confidence] = {
    SourceId.CONFIG_DOCUMENT: Confidence.HIGH,
    SourceId.AGENT_DOCUMENTS: Confidence.MEDIUM,
}


@dataclass(frozen=True, slots=True)
class HierarchyInputs:
    """Everything one build consumes; each field may be empty."""

    roster: Sequence[RosterAgent] = ()
    structural: StructuralExtraction | None = None
    overlay: OverlayExtraction | None = None
    sources: SourceStatusReport = field(default_factory=SourceStatusReport)
    warnings: Sequence[HierarchyWarning] = ()


@dataclass(slots=True)
class _NodeSlot:
    key: str
    id: str
    label: str
    kind: NodeKind = NodeKind.EXTERNAL
    roster_agent_id: str | None = None
    role: str | None = None
    station: str | None = None
    status: str | None = None
    agent_kind: str | None = None
    runtime_agent_id: str | None = None
    capabilities: dict[Capability, CapabilityValue] = field(
        default_factory=lambda: {capability: CapabilityValue.unset() for capability in CAPABILITIES}
    )
    tool_policy: ToolPolicy | None = None
    tool_policy_precedence: int = PRECEDENCE_UNSET
    sources: set[SourceId] = field(default_factory=set)

    def freeze(self) -> Node:
        return Node(
            id=self.id,
            normalized_id=self.key,
            kind=self.kind,
            label=self.label,
            roster_agent_id=self.roster_agent_id,
            role=self.role,
            station=self.station,
            status=self.status,
            agent_kind=self.agent_kind,
            runtime_agent_id=self.runtime_agent_id,
            capabilities=dict(self.capabilities),
            tool_policy=self.tool_policy,
            sources=sorted_sources(self.sources),
        )


@dataclass(slots=True)
class _EdgeSlot:
    type: EdgeType
    from_index: int
    to_index: int
    confidence: Confidence
    source: SourceId
    sources: set[SourceId]


class GraphBuilder:
    """Single-use reconciliation arena. Feed records in processing order, then ``build``."""

    def __init__(self, *, logger: Any | None = None) -> None:
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._identity = IdentityNormalizer()
        self._nodes: list[_NodeSlot] = []
        self._node_index: dict[str, int] = {}
        self._edges: list[_EdgeSlot] = []
        self._edge_index: dict[tuple[EdgeType, str, str], int] = {}
        self._warnings = WarningCollector()

    @property
    def identity(self) -> IdentityNormalizer:
        return self._identity

    @property
    def warnings(self) -> WarningCollector:
        return self._warnings

    # ------------------------------------------------------------------ records

    def add_roster_agent(self, agent: RosterAgent) -> None:
        primary = (
            compact_string(agent.runtime_agent_id)
            or compact_string(agent.slug)
            or compact_string(agent.id)
        )
        if primary is None:
            self._warnings.add(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=SourceId.ROSTER,
                    message="Skipped roster agent without a usable identifier",
                )
            )
            return

        key = normalize_identifier(primary)
        for alias in (
            primary,
            agent.id,
            agent.runtime_agent_id,
            agent.slug,
            agent.display_name,
            agent.name,
        ):
            self._identity.register_alias(alias, key)

        label = compact_string(agent.display_name) or compact_string(agent.name) or primary
        slot = self._nodes[self.ensure_node(primary, source=SourceId.ROSTER, agent=True)]
        slot.label = label
        slot.roster_agent_id = agent.id
        slot.role = compact_string(agent.role) or slot.role
        slot.station = compact_string(agent.station) or slot.station
        slot.status = compact_string(agent.status) or slot.status
        slot.agent_kind = compact_string(agent.kind) or slot.agent_kind
        slot.runtime_agent_id = compact_string(agent.runtime_agent_id) or slot.runtime_agent_id

    def apply_structural(self, extraction: StructuralExtraction) -> None:
        source = extraction.source
        confidence = _STRUCTURAL_CONFIDENCE.get(source, Confidence.MEDIUM)
        self._warnings.extend(extraction.warnings)

        for record in extraction.agents:
            if not self._claim_record(record.id, source):
                continue
            index = self.ensure_node(record.id, source=source, agent=True, label=record.label)
            slot = self._nodes[index]
            if record.role is not None:
                slot.role = record.role
            self._apply_capabilities(slot, record.capabilities, source)

            self.add_edge(EdgeType.REPORTS_TO, record.id, record.reports_to, source, confidence)
            for target in record.delegates_to:
                self.add_edge(EdgeType.DELEGATES_TO, record.id, target, source, confidence)
            for sender in record.receives_from:
                self.add_edge(EdgeType.RECEIVES_FROM, sender, record.id, source, confidence)

    def apply_overlay(self, extraction: OverlayExtraction) -> None:
        source = extraction.source
        self._warnings.extend(extraction.warnings)

        for record in extraction.agents:
            if not self._claim_record(record.id, source):
                continue
            index = self.ensure_node(record.id, source=source, agent=True, label=record.label)
            slot = self._nodes[index]
            self._apply_capabilities(slot, record.capabilities, source)
            if record.tool_policy is not None and should_replace(
                slot.tool_policy_precedence, source.precedence
            ):
                slot.tool_policy = record.tool_policy
                slot.tool_policy_precedence = source.precedence

    def _claim_record(self, record_id: str, source: SourceId) -> bool:
        key = normalize_identifier(record_id)
        if not key:
            self._warnings.add(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=source,
                    message=f"Skipped {source.value} record without an agent id",
                )
            )
            return False
        self._identity.register_alias(record_id, key)
        return True

    # ------------------------------------------------------------------ arena

    def ensure_node(
        self,
        reference: str,
        *,
        source: SourceId,
        agent: bool,
        label: str | None = None,
    ) -> int:
        """Return the slot index for ``reference``, creating the node on first sight."""

        display = reference.strip()
        key = self._identity.resolve(display)
        index = self._node_index.get(key)
        if index is None:
            index = len(self._nodes)
            self._nodes.append(_NodeSlot(key=key, id=display or key, label=display or key))
            self._node_index[key] = index

        slot = self._nodes[index]
        if slot.id == key and display:
            slot.id = display
        if slot.label == slot.key:
            slot.label = slot.id
        if agent:
            slot.kind = NodeKind.AGENT
        if label and slot.label in {slot.id, slot.key}:
            slot.label = label
        slot.sources.add(source)
        return index

    def add_edge(
        self,
        edge_type: EdgeType,
        from_reference: str | None,
        to_reference: str | None,
        source: SourceId,
        confidence: Confidence,
    ) -> bool:
        """Insert or merge one edge. Returns ``True`` when an edge exists afterwards."""

        if from_reference is None or to_reference is None:
            return False
        if not normalize_identifier(from_reference) or not normalize_identifier(to_reference):
            self._warnings.add(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=source,
                    message=f"Dropped invalid {edge_type.value} relation with empty endpoint",
                )
            )
            return False

        from_index = self.ensure_node(
            from_reference, source=source, agent=self._identity.is_known(from_reference)
        )
        to_index = self.ensure_node(
            to_reference, source=source, agent=self._identity.is_known(to_reference)
        )
        return self._upsert_edge(edge_type, from_index, to_index, source, confidence)

    def _upsert_edge(
        self,
        edge_type: EdgeType,
        from_index: int,
        to_index: int,
        source: SourceId,
        confidence: Confidence,
    ) -> bool:
        from_slot = self._nodes[from_index]
        to_slot = self._nodes[to_index]
        if from_slot.key == to_slot.key:
            self._warnings.add(
                HierarchyWarning(
                    code=WarningCode.SELF_LOOP_DROPPED,
                    source=source,
                    related_node_id=from_slot.id,
                    message=f"Dropped {edge_type.value} self-loop on {from_slot.id}",
                )
            )
            return False

        edge_key = (edge_type, from_slot.key, to_slot.key)
        existing = self._edge_index.get(edge_key)
        if existing is None:
            self._edge_index[edge_key] = len(self._edges)
            self._edges.append(
                _EdgeSlot(
                    type=edge_type,
                    from_index=from_index,
                    to_index=to_index,
                    confidence=confidence,
                    source=source,
                    sources={source},
                )
            )
            return True

        slot = self._edges[existing]
        slot.sources.add(source)
        if confidence.rank > slot.confidence.rank:
            slot.confidence = confidence
            slot.source = source
        return True

    def _apply_capabilities(
        self, slot: _NodeSlot, claims: Mapping[Capability, bool], source: SourceId
    ) -> None:
        for capability in CAPABILITIES:
            value = claims.get(capability)
            if value is None:
                continue
            slot.capabilities[capability] = resolve_capability(
                slot.capabilities[capability], CapabilityValue.claim(value, source)
            )

    # ------------------------------------------------------------------ output

    def derive_messaging_edges(self) -> None:
        """Add ``can_message`` edges along outgoing structural edges of messaging agents."""

        outgoing: dict[int, set[int]] = {}
        for edge in self._edges:
            if edge.type in STRUCTURAL_EDGE_TYPES:
                outgoing.setdefault(edge.from_index, set()).add(edge.to_index)

        for index, slot in enumerate(self._nodes):
            if slot.kind is not NodeKind.AGENT:
                continue
            message = slot.capabilities[Capability.MESSAGE]
            if not message.value:
                continue
            message_source = message.source or SourceId.CONFIG_DOCUMENT

            targets = outgoing.get(index)
            if not targets:
                self._warnings.add(
                    HierarchyWarning(
                        code=WarningCode.MESSAGING_TARGETS_AMBIGUOUS,
                        source=message_source,
                        related_node_id=slot.id,
                        message=(
                            f"Messaging capability inferred for {slot.id}, "
                            "but exact target set is unknown"
                        ),
                    )
                )
                continue

            for target_index in sorted(targets, key=lambda item: self._nodes[item].key):
                self._upsert_edge(
                    EdgeType.CAN_MESSAGE, index, target_index, message_source, Confidence.MEDIUM
                )

    def build(self, sources: SourceStatusReport | None = None) -> HierarchyGraph:
        self.derive_messaging_edges()

        nodes = tuple(
            slot.freeze()
            for slot in sorted(
                self._nodes,
                key=lambda slot: (
                    slot.kind is not NodeKind.AGENT,
                    slot.label.casefold(),
                    slot.label,
                    slot.key,
                ),
            )
        )
        edges = tuple(
            self._freeze_edge(slot)
            for slot in sorted(
                self._edges,
                key=lambda slot: (
                    slot.type.value,
                    self._nodes[slot.from_index].key,
                    self._nodes[slot.to_index].key,
                ),
            )
        )
        graph = HierarchyGraph(
            nodes=nodes,
            edges=edges,
            sources=sources if sources is not None else SourceStatusReport(),
            warnings=self._warnings.sorted(),
        )
        self._logger.info(
            "hierarchy_graph_built",
            nodes=len(graph.nodes),
            agents=sum(1 for node in graph.nodes if node.kind is NodeKind.AGENT),
            edges=len(graph.edges),
            warnings=len(graph.warnings),
        )
        return graph

    def _freeze_edge(self, slot: _EdgeSlot) -> Edge:
        from_slot = self._nodes[slot.from_index]
        to_slot = self._nodes[slot.to_index]
        return Edge(
            type=slot.type,
            from_id=from_slot.id,
            to_id=to_slot.id,
            from_key=from_slot.key,
            to_key=to_slot.key,
            confidence=slot.confidence,
            source=slot.source,
            sources=sorted_sources(slot.sources),
        )


def build_hierarchy_graph(inputs: HierarchyInputs, *, logger: Any | None = None) -> HierarchyGraph:
    """Run one full reconciliation: roster, structural source, overlay, derived edges."""

    builder = GraphBuilder(logger=logger)
    builder.warnings.extend(inputs.warnings)
    for agent in inputs.roster:
        builder.add_roster_agent(agent)
    if inputs.structural is not None:
        builder.apply_structural(inputs.structural)
    if inputs.overlay is not None:
        builder.apply_overlay(inputs.overlay)
    return builder.build(inputs.sources)


def build_from_records(
    roster: Iterable[RosterAgent] = (),
    structural: StructuralExtraction | None = None,
    overlay: OverlayExtraction | None = None,
    *,
    warnings: Iterable[HierarchyWarning] = (),
) -> HierarchyGraph:
    """Convenience wrapper used by tests and embedding callers without source statuses."""

    return build_hierarchy_graph(
        HierarchyInputs(
            roster=tuple(roster),
            structural=structural,
            overlay=overlay,
            warnings=tuple(warnings),
        )
    )


__all__ = ["GraphBuilder", "HierarchyInputs", "build_from_records", "build_hierarchy_graph"]
