"""Per-source extraction records handed from the extractors to the graph builder."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from agent_hierarchy.domain.models import Capability, HierarchyWarning, SourceId, ToolPolicy


@dataclass(frozen=True, slots=True)
class AgentRelationRecord:
    """Structural claims about one agent from the config document or the document corpus."""

    id: str
    label: str | None = None
    role: str | None = None
    reports_to: str | None = None
    delegates_to: tuple[str, ...] = ()
    receives_from: tuple[str, ...] = ()
    capabilities: Mapping[Capability, bool] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolOverlayRecord:
    """Tool policy and inferred capabilities for one agent from an overlay source."""

    id: str
    label: str | None = None
    tool_policy: ToolPolicy | None = None
    capabilities: Mapping[Capability, bool] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StructuralExtraction:
    source: SourceId
    agents: tuple[AgentRelationRecord, ...] = ()
    warnings: tuple[HierarchyWarning, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.agents


@dataclass(frozen=True, slots=True)
class OverlayExtraction:
    source: SourceId
    agents: tuple[ToolOverlayRecord, ...] = ()
    warnings: tuple[HierarchyWarning, ...] = ()


__all__ = [
    "AgentRelationRecord",
    "OverlayExtraction",
    "StructuralExtraction",
    "ToolOverlayRecord",
]
