"""Domain types for the reconciled agent hierarchy."""

from agent_hierarchy.domain.identity import IdentityNormalizer, normalize_identifier
from agent_hierarchy.domain.models import (
    CAPABILITIES,
    SOURCE_PRECEDENCE,
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
    SourceAvailability,
    SourceId,
    SourceStatus,
    SourceStatusReport,
    ToolPolicy,
    WarningCode,
)

__all__ = [
    "CAPABILITIES",
    "Capability",
    "CapabilityValue",
    "Confidence",
    "Edge",
    "EdgeType",
    "HierarchyGraph",
    "HierarchyWarning",
    "IdentityNormalizer",
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
    "normalize_identifier",
]
