"""Frozen dataclass models for the reconciled agent hierarchy and its diagnostics."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from agent_hierarchy.constants import (
    GRAPH_SCHEMA_VERSION,
    PRECEDENCE_FALLBACK,
    PRECEDENCE_ROSTER,
    PRECEDENCE_RUNTIME,
    PRECEDENCE_STRUCTURAL,
    PRECEDENCE_UNSET,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class NodeKind(StrEnum):
    AGENT = "agent"
    EXTERNAL = "external"


class EdgeType(StrEnum):
    REPORTS_TO = "reports_to"
    DELEGATES_TO = "delegates_to"
    RECEIVES_FROM = "receives_from"
    CAN_MESSAGE = "can_message"


STRUCTURAL_EDGE_TYPES: Final[frozenset[EdgeType]] = frozenset(
    {EdgeType.REPORTS_TO, EdgeType.DELEGATES_TO, EdgeType.RECEIVES_FROM}
)


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def rank(self) -> int:
        return 2 if self is Confidence.HIGH else 1


class SourceId(StrEnum):
    ROSTER = "roster"
    CONFIG_DOCUMENT = "config_document"
    AGENT_DOCUMENTS = "agent_documents"
    RUNTIME_INVENTORY = "runtime_inventory"
    FALLBACK_POLICY = "fallback_policy"

    @property
    def precedence(self) -> int:
        return SOURCE_PRECEDENCE[self]


SOURCE_PRECEDENCE: Final[dict[SourceId, int]] = {
    SourceId.ROSTER: PRECEDENCE_ROSTER,
    SourceId.CONFIG_DOCUMENT: PRECEDENCE_STRUCTURAL,
    SourceId.AGENT_DOCUMENTS: PRECEDENCE_STRUCTURAL,
    SourceId.FALLBACK_POLICY: PRECEDENCE_FALLBACK,
    SourceId.RUNTIME_INVENTORY: PRECEDENCE_RUNTIME,
}


class WarningCode(StrEnum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    PARSE_ERROR = "parse_error"
    INVALID_RELATION = "invalid_relation"
    SELF_LOOP_DROPPED = "self_loop_dropped"
    MESSAGING_TARGETS_AMBIGUOUS = "messaging_targets_ambiguous"
    RUNTIME_UNAVAILABLE_FALLBACK_USED = "runtime_unavailable_fallback_used"


class SourceAvailability(StrEnum):
    UNAVAILABLE = "unavailable"
    AVAILABLE = "available"
    AVAILABLE_UNUSED = "available_unused"


class Capability(StrEnum):
    DELEGATE = "delegate"
    MESSAGE = "message"
    EXEC = "exec"
    WRITE = "write"


CAPABILITIES: Final[tuple[Capability, ...]] = (
    Capability.DELEGATE,
    Capability.MESSAGE,
    Capability.EXEC,
    Capability.WRITE,
)

CapabilityClaims = Mapping[Capability, bool]


def canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class CapabilityValue:
    """A capability flag together with the source and precedence that set it."""

    value: bool
    source: SourceId | None
    precedence: int

    @classmethod
    def unset(cls) -> CapabilityValue:
        return cls(value=False, source=None, precedence=PRECEDENCE_UNSET)

    @classmethod
    def claim(cls, value: bool, source: SourceId) -> CapabilityValue:
        return cls(value=value, source=source, precedence=source.precedence)

    @property
    def is_set(self) -> bool:
        return self.source is not None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "value": self.value,
            "source": None if self.source is None else self.source.value,
            "precedence": self.precedence,
        }


@dataclass(frozen=True, slots=True)
class ToolPolicy:
    """Allow/deny tool tokens plus the exec security flag reported by an overlay."""

    allow: tuple[str, ...]
    deny: tuple[str, ...]
    exec_security: str | None
    source: SourceId

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "allow": list(self.allow),
            "deny": list(self.deny),
            "exec_security": self.exec_security,
            "source": self.source.value,
        }


@dataclass(frozen=True, slots=True)
class RosterAgent:
    """One authoritative agent record supplied by the roster collaborator."""

    id: str
    name: str
    display_name: str
    runtime_agent_id: str | None = None
    slug: str | None = None
    role: str = "unknown"
    station: str = "unknown"
    status: str = "unknown"
    kind: str = "worker"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> RosterAgent:
        """Build a roster record from a loosely shaped mapping (snake or camel case keys)."""

        agent_id = _first_text(payload, "id")
        if agent_id is None:
            raise ValueError("roster agent record requires a non-empty 'id'")
        name = _first_text(payload, "name") or agent_id
        return cls(
            id=agent_id,
            name=name,
            display_name=_first_text(payload, "display_name", "displayName") or name,
            runtime_agent_id=_first_text(payload, "runtime_agent_id", "runtimeAgentId"),
            slug=_first_text(payload, "slug"),
            role=_first_text(payload, "role") or "unknown",
            station=_first_text(payload, "station") or "unknown",
            status=_first_text(payload, "status") or "unknown",
            kind=_first_text(payload, "kind") or "worker",
        )


@dataclass(frozen=True, slots=True)
class Node:
    """Reconciled agent (or unresolved external reference)."""

    id: str
    normalized_id: str
    kind: NodeKind
    label: str
    roster_agent_id: str | None
    role: str | None
    station: str | None
    status: str | None
    agent_kind: str | None
    runtime_agent_id: str | None
    capabilities: Mapping[Capability, CapabilityValue]
    tool_policy: ToolPolicy | None
    sources: tuple[SourceId, ...]

    def can(self, capability: Capability) -> bool:
        return self.capabilities[capability].value

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "normalized_id": self.normalized_id,
            "kind": self.kind.value,
            "label": self.label,
            "roster_agent_id": self.roster_agent_id,
            "role": self.role,
            "station": self.station,
            "status": self.status,
            "agent_kind": self.agent_kind,
            "runtime_agent_id": self.runtime_agent_id,
            "capabilities": {
                capability.value: self.capabilities[capability].value
                for capability in CAPABILITIES
            },
            "capability_sources": {
                capability.value: self.capabilities[capability].to_dict()
                for capability in CAPABILITIES
                if self.capabilities[capability].is_set
            },
            "tool_policy": None if self.tool_policy is None else self.tool_policy.to_dict(),
            "sources": [source.value for source in self.sources],
        }


@dataclass(frozen=True, slots=True)
class Edge:
    type: EdgeType
    from_id: str
    to_id: str
    from_key: str
    to_key: str
    confidence: Confidence
    source: SourceId
    sources: tuple[SourceId, ...]

    @property
    def id(self) -> str:
        return f"{self.type.value}:{self.from_id}->{self.to_id}"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "type": self.type.value,
            "from": self.from_id,
            "to": self.to_id,
            "from_key": self.from_key,
            "to_key": self.to_key,
            "confidence": self.confidence.value,
            "source": self.source.value,
            "sources": [source.value for source in self.sources],
        }


@dataclass(frozen=True, slots=True)
class HierarchyWarning:
    """Diagnostic record; value equality on all fields is its dedup identity."""

    code: WarningCode
    message: str
    source: SourceId | None = None
    related_node_id: str | None = None

    def sort_key(self) -> tuple[str, str, str, str]:
        return (
            self.message,
            self.code.value,
            "" if self.source is None else self.source.value,
            self.related_node_id or "",
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"code": self.code.value, "message": self.message}
        if self.source is not None:
            payload["source"] = self.source.value
        if self.related_node_id is not None:
            payload["related_node_id"] = self.related_node_id
        return payload


@dataclass(frozen=True, slots=True)
class SourceStatus:
    availability: SourceAvailability
    location: str
    error: str | None = None
    count: int | None = None

    @property
    def available(self) -> bool:
        return self.availability is not SourceAvailability.UNAVAILABLE

    @property
    def used(self) -> bool:
        return self.availability is SourceAvailability.AVAILABLE

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "availability": self.availability.value,
            "available": self.available,
            "used": self.used,
            "location": self.location,
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.count is not None:
            payload["count"] = self.count
        return payload


def _unavailable(location: str) -> SourceStatus:
    return SourceStatus(availability=SourceAvailability.UNAVAILABLE, location=location)


@dataclass(frozen=True, slots=True)
class SourceStatusReport:
    """Per-source acquisition outcome; observational only."""

    roster: SourceStatus = field(default_factory=lambda: _unavailable("roster"))
    config_document: SourceStatus = field(default_factory=lambda: _unavailable(""))
    agent_documents: SourceStatus = field(default_factory=lambda: _unavailable(""))
    runtime_inventory: SourceStatus = field(default_factory=lambda: _unavailable(""))
    fallback_policy: SourceStatus = field(default_factory=lambda: _unavailable(""))

    def get(self, source: SourceId) -> SourceStatus:
        return getattr(self, source.value)

    def to_dict(self) -> dict[str, JSONValue]:
        return {source.value: self.get(source).to_dict() for source in SourceId}


@dataclass(frozen=True, slots=True)
class HierarchyGraph:
    """The engine's entire public result."""

    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    sources: SourceStatusReport
    warnings: tuple[HierarchyWarning, ...]

    def node(self, node_id: str) -> Node | None:
        """Return the node whose display id or canonical key matches ``node_id``."""

        lowered = node_id.strip().lower()
        for node in self.nodes:
            if node.id == node_id or node.normalized_id == lowered:
                return node
        return None

    def edges_of(self, edge_type: EdgeType) -> tuple[Edge, ...]:
        return tuple(edge for edge in self.edges if edge.type is edge_type)

    def warnings_of(self, code: WarningCode) -> tuple[HierarchyWarning, ...]:
        return tuple(warning for warning in self.warnings if warning.code is code)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "schema_version": GRAPH_SCHEMA_VERSION,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "meta": {
                "sources": self.sources.to_dict(),
                "warnings": [warning.to_dict() for warning in self.warnings],
            },
        }

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    def to_api_payload(self) -> dict[str, JSONValue]:
        return {"data": self.to_dict()}


def sorted_sources(sources: Iterable[SourceId]) -> tuple[SourceId, ...]:
    return tuple(sorted(set(sources), key=lambda source: source.value))


def _first_text(payload: Mapping[str, object], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


__all__ = [
    "CAPABILITIES",
    "Capability",
    "CapabilityClaims",
    "CapabilityValue",
    "Confidence",
    "Edge",
    "EdgeType",
    "HierarchyGraph",
    "HierarchyWarning",
    "JSONScalar",
    "JSONValue",
    "Node",
    "NodeKind",
    "RosterAgent",
    "SOURCE_PRECEDENCE",
    "STRUCTURAL_EDGE_TYPES",
    "SourceAvailability",
    "SourceId",
    "SourceStatus",
    "SourceStatusReport",
    "ToolPolicy",
    "WarningCode",
    "canonical_json",
    "sorted_sources",
]
