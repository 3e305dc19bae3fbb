"""
agent-hierarchy — identity normalization

File: src/agent_hierarchy/domain/identity.py

Purpose
- Canonicalize free-text agent identifiers and own the alias -> canonical-key table.

Functional requirements
- ``normalize`` trims and lowercases; blank input yields the empty key, which is never bound.
- First binding wins: re-registering an alias is a no-op, whatever key is offered.
- Unbound references resolve to their own normalized form.

Non-functional requirements
- Pure in-memory state, created fresh per build.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


def normalize_identifier(value: str | None) -> str:
    """Return the canonical form of ``value`` (trimmed, lowercased)."""

    if value is None:
        return ""
    return value.strip().lower()


class IdentityNormalizer:
    """Alias registry used by every component that merges agent references."""

    __slots__ = ("_aliases",)

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}

    @staticmethod
    def normalize(value: str | None) -> str:
        return normalize_identifier(value)

    def register_alias(self, alias: str | None, key: str) -> bool:
        """Bind ``alias`` to ``key`` unless it is blank or already bound.

        Returns ``True`` only when a new binding was recorded.
        """

        normalized = normalize_identifier(alias)
        if not normalized or normalized in self._aliases:
            return False
        self._aliases[normalized] = key
        return True

    def resolve(self, alias: str | None) -> str:
        normalized = normalize_identifier(alias)
        return self._aliases.get(normalized, normalized)

    def is_known(self, alias: str | None) -> bool:
        normalized = normalize_identifier(alias)
        return bool(normalized) and normalized in self._aliases

    def aliases(self) -> Mapping[str, str]:
        return MappingProxyType(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)


__all__ = ["IdentityNormalizer", "normalize_identifier"]
