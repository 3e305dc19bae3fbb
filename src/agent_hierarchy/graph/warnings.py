"""Order-insensitive, deduplicating accumulator for hierarchy warnings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agent_hierarchy.domain.models import HierarchyWarning

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class WarningCollector:
    """Collects warnings keyed by value; output order never depends on insertion order."""

    __slots__ = ("_warnings",)

    def __init__(self, initial: Iterable[HierarchyWarning] = ()) -> None:
        self._warnings: dict[HierarchyWarning, None] = {}
        self.extend(initial)

    def add(self, warning: HierarchyWarning) -> bool:
        """Record ``warning``; returns ``False`` when an equal warning is already present."""

        if warning in self._warnings:
            return False
        self._warnings[warning] = None
        return True

    def extend(self, warnings: Iterable[HierarchyWarning]) -> None:
        for warning in warnings:
            self.add(warning)

    def sorted(self) -> tuple[HierarchyWarning, ...]:
        return tuple(sorted(self._warnings, key=HierarchyWarning.sort_key))

    def __contains__(self, warning: object) -> bool:
        return warning in self._warnings

    def __iter__(self) -> Iterator[HierarchyWarning]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._warnings)


__all__ = ["WarningCollector"]
