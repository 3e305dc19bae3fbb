"""Roster providers: the authoritative agent list behind the hierarchy."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import yaml

from agent_hierarchy.domain.models import RosterAgent
from agent_hierarchy.sources.files import SourceReadError


class RosterProvider(Protocol):
    """Injectable roster query; implementations may raise, callers tolerate failure."""

    def list_agents(self) -> Sequence[RosterAgent]: ...


class StaticRosterProvider:
    """In-memory roster, for embedding callers and tests."""

    def __init__(self, agents: Sequence[RosterAgent] = ()) -> None:
        self._agents = tuple(agents)

    def list_agents(self) -> Sequence[RosterAgent]:
        return self._agents


class FileRosterProvider:
    """Roster read from a JSON or YAML file.

    The file holds either a list of agent records or a mapping with an ``agents`` list.
    Records use snake_case or camelCase keys (``runtime_agent_id`` / ``runtimeAgentId``).
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def list_agents(self) -> Sequence[RosterAgent]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(self._path, f"unable to read roster: {exc}") from exc

        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SourceReadError(self._path, f"invalid roster document: {exc}") from exc

        if isinstance(payload, dict):
            payload = payload.get("agents")
        if payload is None:
            return ()
        if not isinstance(payload, list):
            raise SourceReadError(self._path, "roster must be a list of agent records")

        agents: list[RosterAgent] = []
        for index, row in enumerate(payload):
            if not isinstance(row, dict):
                raise SourceReadError(self._path, f"roster entry {index} is not a mapping")
            try:
                agents.append(RosterAgent.from_mapping(row))
            except ValueError as exc:
                raise SourceReadError(self._path, f"roster entry {index}: {exc}") from exc
        return tuple(agents)


__all__ = ["FileRosterProvider", "RosterProvider", "StaticRosterProvider"]
