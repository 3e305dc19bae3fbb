"""Structured-config extractor for the ``agents`` block of ``clawcontrol.config.yaml``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from agent_hierarchy.domain.models import Capability, HierarchyWarning, SourceId, WarningCode
from agent_hierarchy.extraction.payload import (
    as_mapping,
    compact_string,
    optional_bool,
    string_list,
)
from agent_hierarchy.extraction.records import AgentRelationRecord, StructuralExtraction

_SOURCE: Final[SourceId] = SourceId.CONFIG_DOCUMENT

_PERMISSION_KEYS: Final[tuple[tuple[Capability, str], ...]] = (
    (Capability.DELEGATE, "can_delegate"),
    (Capability.MESSAGE, "can_send_messages"),
    (Capability.EXEC, "can_execute_code"),
    (Capability.WRITE, "can_modify_files"),
)


def extract_config_hierarchy(parsed: object) -> StructuralExtraction:
    """Extract relation and permission records from a parsed config document.

    Never raises: a malformed root or missing ``agents`` section yields an empty result with a
    warning, and malformed entries are skipped one by one.
    """

    root = as_mapping(parsed)
    if root is None:
        return StructuralExtraction(
            source=_SOURCE,
            warnings=(
                HierarchyWarning(
                    code=WarningCode.PARSE_ERROR,
                    source=_SOURCE,
                    message="Parsed config document root is not a mapping",
                ),
            ),
        )

    agents_node = as_mapping(root.get("agents"))
    if agents_node is None:
        return StructuralExtraction(
            source=_SOURCE,
            warnings=(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=_SOURCE,
                    message="No agents section found in config document",
                ),
            ),
        )

    agents: list[AgentRelationRecord] = []
    warnings: list[HierarchyWarning] = []

    for raw_id, raw_agent in agents_node.items():
        agent = as_mapping(raw_agent)
        agent_id = compact_string(raw_id)
        if agent is None or agent_id is None:
            warnings.append(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=_SOURCE,
                    message=f"Invalid agent entry in config document: {raw_id!s}",
                )
            )
            continue
        agents.append(_agent_record(agent_id, agent))

    return StructuralExtraction(source=_SOURCE, agents=tuple(agents), warnings=tuple(warnings))


def _agent_record(agent_id: str, entry: Mapping[str, object]) -> AgentRelationRecord:
    permissions = as_mapping(entry.get("permissions"))

    capabilities: dict[Capability, bool] = {}
    for capability, key in _PERMISSION_KEYS:
        value = optional_bool(permissions, key)
        if value is not None:
            capabilities[capability] = value

    delegates_to = string_list(entry.get("delegates_to"))
    if Capability.DELEGATE not in capabilities and delegates_to:
        capabilities[Capability.DELEGATE] = True

    return AgentRelationRecord(
        id=agent_id,
        label=compact_string(entry.get("name")),
        role=compact_string(entry.get("role")),
        reports_to=compact_string(entry.get("reports_to")),
        delegates_to=delegates_to,
        receives_from=string_list(entry.get("receives_from")),
        capabilities=capabilities,
    )


__all__ = ["extract_config_hierarchy"]
