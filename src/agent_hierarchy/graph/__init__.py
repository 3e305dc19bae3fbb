"""Graph reconciliation: builder arena and warning collection."""

from agent_hierarchy.graph.builder import (
    GraphBuilder,
    HierarchyInputs,
    build_from_records,
    build_hierarchy_graph,
)
from agent_hierarchy.graph.warnings import WarningCollector

__all__ = [
    "GraphBuilder",
    "HierarchyInputs",
    "WarningCollector",
    "build_from_records",
    "build_hierarchy_graph",
]
