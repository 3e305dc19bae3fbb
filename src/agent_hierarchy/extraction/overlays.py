"""
agent-hierarchy — runtime and fallback tool-policy overlays

File: src/agent_hierarchy/extraction/overlays.py

Purpose
- Read per-agent tool policies from the live runtime inventory (a JSON array) or, when the
  runtime is unavailable, from the static fallback policy document (JSON5).

Functional requirements
- An empty tools block yields no policy (``None``), never an empty policy object.
- Runtime ``permissions.can_delegate`` / ``permissions.can_send_messages`` override inference.
- The fallback document's global ``tools.agentToAgent`` policy decides messaging:
  disabled forces ``message=False`` on listed agents; an allow list decides membership.
- Allow-listed ids with no per-agent entry become ``message=True`` placeholder records.
- Enabled without an allow list is reported once per document as ambiguous.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from agent_hierarchy.domain.identity import normalize_identifier
from agent_hierarchy.domain.models import (
    Capability,
    HierarchyWarning,
    SourceId,
    ToolPolicy,
    WarningCode,
)
from agent_hierarchy.extraction.payload import (
    as_mapping,
    compact_string,
    optional_bool,
    string_list,
)
from agent_hierarchy.extraction.records import OverlayExtraction, ToolOverlayRecord
from agent_hierarchy.inference.capabilities import infer_capabilities

_RUNTIME: Final[SourceId] = SourceId.RUNTIME_INVENTORY
_FALLBACK: Final[SourceId] = SourceId.FALLBACK_POLICY

_RUNTIME_PERMISSION_KEYS: Final[tuple[tuple[Capability, str], ...]] = (
    (Capability.DELEGATE, "can_delegate"),
    (Capability.MESSAGE, "can_send_messages"),
)


def read_tool_policy(source: SourceId, raw_tools: object) -> ToolPolicy | None:
    tools = as_mapping(raw_tools)
    if tools is None:
        return None

    allow = string_list(tools.get("allow"))
    deny = string_list(tools.get("deny"))
    exec_block = as_mapping(tools.get("exec"))
    exec_security = compact_string(exec_block.get("security")) if exec_block is not None else None

    if not allow and not deny and exec_security is None:
        return None
    return ToolPolicy(allow=allow, deny=deny, exec_security=exec_security, source=source)


def extract_runtime_overlay(data: object) -> OverlayExtraction:
    """Extract tool policies from the runtime inventory payload."""

    if not isinstance(data, list):
        return OverlayExtraction(
            source=_RUNTIME,
            warnings=(
                HierarchyWarning(
                    code=WarningCode.PARSE_ERROR,
                    source=_RUNTIME,
                    message="Runtime agent inventory payload is not an array",
                ),
            ),
        )

    agents: list[ToolOverlayRecord] = []
    warnings: list[HierarchyWarning] = []

    for index, row in enumerate(data):
        item = as_mapping(row)
        agent_id = compact_string(item.get("id")) if item is not None else None
        if item is None or agent_id is None:
            warnings.append(
                HierarchyWarning(
                    code=WarningCode.INVALID_RELATION,
                    source=_RUNTIME,
                    message=f"Skipped runtime agent entry without id at index {index}",
                )
            )
            continue

        tool_policy = read_tool_policy(_RUNTIME, item.get("tools"))
        capabilities = infer_capabilities(tool_policy) if tool_policy is not None else {}

        permissions = as_mapping(item.get("permissions"))
        for capability, key in _RUNTIME_PERMISSION_KEYS:
            value = optional_bool(permissions, key)
            if value is not None:
                capabilities[capability] = value

        agents.append(
            ToolOverlayRecord(
                id=agent_id,
                label=compact_string(item.get("name")) or _identity_name(item),
                tool_policy=tool_policy,
                capabilities=capabilities,
            )
        )

    return OverlayExtraction(source=_RUNTIME, agents=tuple(agents), warnings=tuple(warnings))


def extract_fallback_overlay(data: object) -> OverlayExtraction:
    """Extract tool policies and the global agent-to-agent policy from the fallback document."""

    root = as_mapping(data)
    if root is None:
        return OverlayExtraction(
            source=_FALLBACK,
            warnings=(
                HierarchyWarning(
                    code=WarningCode.PARSE_ERROR,
                    source=_FALLBACK,
                    message="Fallback policy document root is not a mapping",
                ),
            ),
        )

    agents_root = as_mapping(root.get("agents"))
    raw_list = agents_root.get("list") if agents_root is not None else None
    rows = raw_list if isinstance(raw_list, list) else []

    global_tools = as_mapping(root.get("tools")) or {}
    agent_to_agent = as_mapping(global_tools.get("agentToAgent"))
    messaging_enabled = agent_to_agent is None or agent_to_agent.get("enabled") is not False
    allow_list = string_list(agent_to_agent.get("allow")) if agent_to_agent is not None else ()
    allow_set = {normalize_identifier(agent_id) for agent_id in allow_list}

    agents: list[ToolOverlayRecord] = []
    seen: set[str] = set()

    for row in rows:
        item = as_mapping(row)
        agent_id = compact_string(item.get("id")) if item is not None else None
        if item is None or agent_id is None:
            continue

        tool_policy = read_tool_policy(_FALLBACK, item.get("tools"))
        capabilities = infer_capabilities(tool_policy) if tool_policy is not None else {}

        normalized = normalize_identifier(agent_id)
        if not messaging_enabled:
            capabilities[Capability.MESSAGE] = False
        elif allow_set:
            capabilities[Capability.MESSAGE] = normalized in allow_set

        seen.add(normalized)
        agents.append(
            ToolOverlayRecord(
                id=agent_id,
                label=_identity_name(item) or compact_string(item.get("name")),
                tool_policy=tool_policy,
                capabilities=capabilities,
            )
        )

    for allowed_id in allow_list:
        normalized = normalize_identifier(allowed_id)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        agents.append(
            ToolOverlayRecord(
                id=allowed_id,
                capabilities={Capability.MESSAGE: True},
            )
        )

    warnings: list[HierarchyWarning] = []
    if messaging_enabled and not allow_set:
        warnings.append(
            HierarchyWarning(
                code=WarningCode.MESSAGING_TARGETS_AMBIGUOUS,
                source=_FALLBACK,
                message=(
                    "Fallback policy enables tools.agentToAgent but does not declare "
                    "an explicit allow list"
                ),
            )
        )

    return OverlayExtraction(source=_FALLBACK, agents=tuple(agents), warnings=tuple(warnings))


def _identity_name(item: Mapping[str, object]) -> str | None:
    identity = as_mapping(item.get("identity"))
    if identity is None:
        return None
    return compact_string(identity.get("name"))


__all__ = ["extract_fallback_overlay", "extract_runtime_overlay", "read_tool_policy"]
