"""Capability inference from overlay tool policies."""

from agent_hierarchy.inference.capabilities import (
    TOKEN_GROUPS,
    TokenGroup,
    infer_capabilities,
    infer_from_tokens,
    normalize_tokens,
    resolve_capability,
    should_replace,
)

__all__ = [
    "TOKEN_GROUPS",
    "TokenGroup",
    "infer_capabilities",
    "infer_from_tokens",
    "normalize_tokens",
    "resolve_capability",
    "should_replace",
]
