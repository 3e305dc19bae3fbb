"""Source extractors: parsed payloads in, per-source records and warnings out."""

from agent_hierarchy.extraction.config_document import extract_config_hierarchy
from agent_hierarchy.extraction.documents import (
    DocumentHeuristics,
    MarkdownDocument,
    RelationMatch,
    extract_document_hierarchy,
    match_relation_phrases,
    named_entity_candidates,
    resolve_document_identity,
    strip_markup,
)
from agent_hierarchy.extraction.overlays import (
    extract_fallback_overlay,
    extract_runtime_overlay,
    read_tool_policy,
)
from agent_hierarchy.extraction.records import (
    AgentRelationRecord,
    OverlayExtraction,
    StructuralExtraction,
    ToolOverlayRecord,
)

__all__ = [
    "AgentRelationRecord",
    "DocumentHeuristics",
    "MarkdownDocument",
    "OverlayExtraction",
    "RelationMatch",
    "StructuralExtraction",
    "ToolOverlayRecord",
    "extract_config_hierarchy",
    "extract_document_hierarchy",
    "extract_fallback_overlay",
    "extract_runtime_overlay",
    "match_relation_phrases",
    "named_entity_candidates",
    "read_tool_policy",
    "resolve_document_identity",
    "strip_markup",
]
