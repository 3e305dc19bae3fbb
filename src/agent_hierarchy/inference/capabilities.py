"""
agent-hierarchy — capability and tool-policy inference

File: src/agent_hierarchy/inference/capabilities.py

Purpose
- Derive delegate/message/exec/write flags from overlay tool policies.
- Own the single precedence comparison used for every capability and policy write.

Functional requirements
- A capability is ``False`` when the wildcard or one of its tokens is denied, ``True`` when
  the wildcard or one of its tokens is allowed, and unknown otherwise.
- Unknown capabilities are absent from the inferred mapping and never override a value.
- ``exec.security == "deny"`` forces exec off; any other security flag defaults exec on.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from agent_hierarchy.constants import (
    EXEC_SECURITY_DENY,
    EXEC_TOKENS,
    MESSAGE_TOKENS,
    WILDCARD_TOKEN,
    WRITE_TOKENS,
)
from agent_hierarchy.domain.identity import normalize_identifier
from agent_hierarchy.domain.models import Capability, CapabilityValue, ToolPolicy


@dataclass(frozen=True, slots=True)
class TokenGroup:
    """Named set of tool tokens that grant or revoke one capability."""

    capability: Capability
    tokens: frozenset[str]


WRITE_GROUP: Final[TokenGroup] = TokenGroup(Capability.WRITE, frozenset(WRITE_TOKENS))
EXEC_GROUP: Final[TokenGroup] = TokenGroup(Capability.EXEC, frozenset(EXEC_TOKENS))
MESSAGE_GROUP: Final[TokenGroup] = TokenGroup(Capability.MESSAGE, frozenset(MESSAGE_TOKENS))
TOKEN_GROUPS: Final[tuple[TokenGroup, ...]] = (WRITE_GROUP, EXEC_GROUP, MESSAGE_GROUP)


def normalize_tokens(tokens: Iterable[str]) -> frozenset[str]:
    return frozenset(token for token in (normalize_identifier(raw) for raw in tokens) if token)


def _has_any_token(tokens: frozenset[str], group: TokenGroup) -> bool:
    if WILDCARD_TOKEN in tokens:
        return True
    return not tokens.isdisjoint(group.tokens)


def infer_from_tokens(
    allow: frozenset[str], deny: frozenset[str], group: TokenGroup
) -> bool | None:
    """Tri-state inference for one token group; deny beats allow."""

    if _has_any_token(deny, group):
        return False
    if _has_any_token(allow, group):
        return True
    return None


def infer_capabilities(policy: ToolPolicy) -> dict[Capability, bool]:
    """Return only the capabilities the policy actually determines."""

    allow = normalize_tokens(policy.allow)
    deny = normalize_tokens(policy.deny)

    inferred: dict[Capability, bool] = {}
    for group in TOKEN_GROUPS:
        value = infer_from_tokens(allow, deny, group)
        if group.capability is Capability.EXEC:
            value = _apply_exec_security(value, policy.exec_security)
        if value is not None:
            inferred[group.capability] = value
    return inferred


def _apply_exec_security(value: bool | None, exec_security: str | None) -> bool | None:
    security = normalize_identifier(exec_security)
    if security == EXEC_SECURITY_DENY:
        return False
    if value is None and security:
        return True
    return value


def resolve_capability(current: CapabilityValue, proposed: CapabilityValue) -> CapabilityValue:
    """Return the value that survives a write of ``proposed`` over ``current``.

    Equal precedence overwrites; a lower precedence never downgrades.
    """

    if proposed.precedence >= current.precedence:
        return proposed
    return current


def should_replace(current_precedence: int, proposed_precedence: int) -> bool:
    return proposed_precedence >= current_precedence


__all__ = [
    "EXEC_GROUP",
    "MESSAGE_GROUP",
    "TOKEN_GROUPS",
    "TokenGroup",
    "WRITE_GROUP",
    "infer_capabilities",
    "infer_from_tokens",
    "normalize_tokens",
    "resolve_capability",
    "should_replace",
]
