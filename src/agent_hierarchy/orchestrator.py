"""
agent-hierarchy — source acquisition and build orchestration.

File: src/agent_hierarchy/orchestrator.py

Purpose
- Acquire every source independently, choose the structural source and the overlay, record
  per-source status, and hand the result to the graph builder.

Functional requirements
- Each acquisition is fault-isolated: expected absence is silent (status only), any other
  failure becomes a ``source_unavailable`` warning and the source contributes nothing.
- Structural source: the config document when it declares agents, else the document corpus.
- Overlay: the runtime inventory when available, else the fallback policy document.
- ``runtime_unavailable_fallback_used`` is emitted when the fallback is used and the runtime
  failure was not an expected absence (missing executable, or runtime disabled).
- ``HierarchyService.load`` never raises.

Non-functional requirements
- Sources are acquired sequentially in a fixed order; one structlog event per outcome.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from agent_hierarchy.config.schema import default_config
from agent_hierarchy.domain.models import (
    HierarchyGraph,
    HierarchyWarning,
    RosterAgent,
    SourceAvailability,
    SourceId,
    SourceStatus,
    SourceStatusReport,
    WarningCode,
)
from agent_hierarchy.extraction.config_document import extract_config_hierarchy
from agent_hierarchy.extraction.documents import DocumentHeuristics, extract_document_hierarchy
from agent_hierarchy.extraction.overlays import extract_fallback_overlay, extract_runtime_overlay
from agent_hierarchy.extraction.records import OverlayExtraction, StructuralExtraction
from agent_hierarchy.graph.builder import HierarchyInputs, build_hierarchy_graph
from agent_hierarchy.sources.files import (
    DocumentCorpus,
    SourceReadError,
    read_agent_documents,
    read_config_document,
    read_fallback_document,
)
from agent_hierarchy.sources.roster import FileRosterProvider, RosterProvider
from agent_hierarchy.sources.runtime import (
    RuntimeCommandResult,
    RuntimeInventoryClient,
    SubprocessInventoryClient,
    is_runtime_unavailable_error,
)

_RUNTIME_DISABLED = "runtime inventory disabled by configuration"


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    """Typed view of the ``sources`` / ``runtime`` / ``documents`` config sections."""

    workspace_root: Path
    config_document: Path
    documents_dir: Path
    fallback_document: Path
    roster_file: Path | None = None
    runtime_enabled: bool = True
    runtime_command: tuple[str, ...] = ()
    runtime_command_id: str = ""
    runtime_timeout_seconds: float = 30.0
    excluded_filenames: tuple[str, ...] = ()
    heuristics: DocumentHeuristics = field(default_factory=DocumentHeuristics)

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> ServiceSettings:
        """Build settings from a loaded config; relative paths resolve against the workspace."""

        effective = config if config is not None else default_config()
        sources = effective["sources"]
        runtime = effective["runtime"]
        documents = effective["documents"]

        workspace_root = Path(sources["workspace_root"])

        def _resolve(raw: str) -> Path:
            candidate = Path(raw).expanduser()
            return candidate if candidate.is_absolute() else workspace_root / candidate

        roster_file = sources.get("roster_file") or ""
        return cls(
            workspace_root=workspace_root,
            config_document=_resolve(sources["config_document"]),
            documents_dir=_resolve(sources["documents_dir"]),
            fallback_document=_resolve(sources["fallback_document"]),
            roster_file=_resolve(roster_file) if roster_file else None,
            runtime_enabled=bool(runtime["enabled"]),
            runtime_command=tuple(runtime["command"]),
            runtime_command_id=runtime["command_id"],
            runtime_timeout_seconds=float(runtime["timeout_seconds"]),
            excluded_filenames=tuple(documents["excluded_filenames"]),
            heuristics=DocumentHeuristics.from_mapping(documents),
        )


@dataclass(slots=True)
class _Acquisition:
    status: SourceStatus
    warnings: list[HierarchyWarning] = field(default_factory=list)


class HierarchyService:
    """Loads every source and builds one ``HierarchyGraph`` per ``load`` call."""

    def __init__(
        self,
        settings: ServiceSettings,
        *,
        roster_provider: RosterProvider | None = None,
        runtime_client: RuntimeInventoryClient | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        if roster_provider is None and settings.roster_file is not None:
            roster_provider = FileRosterProvider(settings.roster_file)
        self._roster_provider = roster_provider
        if runtime_client is None and settings.runtime_enabled and settings.runtime_command:
            runtime_client = SubprocessInventoryClient(
                settings.runtime_command, cwd=settings.workspace_root
            )
        self._runtime_client = runtime_client if settings.runtime_enabled else None

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None = None,
        *,
        roster_provider: RosterProvider | None = None,
        runtime_client: RuntimeInventoryClient | None = None,
        logger: Any | None = None,
    ) -> HierarchyService:
        return cls(
            ServiceSettings.from_config(config),
            roster_provider=roster_provider,
            runtime_client=runtime_client,
            logger=logger,
        )

    @property
    def settings(self) -> ServiceSettings:
        return self._settings

    def load(self) -> HierarchyGraph:
        settings = self._settings
        warnings: list[HierarchyWarning] = []

        roster, roster_state = self._acquire_roster()
        parsed_config, config_state = self._acquire_file(
            SourceId.CONFIG_DOCUMENT, settings.config_document, read_config_document
        )
        corpus, documents_state = self._acquire_documents()
        runtime_result, runtime_state = self._acquire_runtime()
        parsed_fallback, fallback_state = self._acquire_file(
            SourceId.FALLBACK_POLICY, settings.fallback_document, read_fallback_document
        )
        for state in (roster_state, config_state, documents_state, fallback_state):
            warnings.extend(state.warnings)

        structural, config_status, documents_status = self._select_structural(
            parsed_config, config_state.status, corpus, documents_state.status, warnings
        )
        overlay, runtime_status, fallback_status = self._select_overlay(
            runtime_result, runtime_state.status, parsed_fallback, fallback_state.status, warnings
        )

        sources = SourceStatusReport(
            roster=roster_state.status,
            config_document=config_status,
            agent_documents=documents_status,
            runtime_inventory=runtime_status,
            fallback_policy=fallback_status,
        )
        return build_hierarchy_graph(
            HierarchyInputs(
                roster=roster,
                structural=structural,
                overlay=overlay,
                sources=sources,
                warnings=tuple(warnings),
            ),
            logger=self._logger,
        )

    # ------------------------------------------------------------------ acquisition

    def _acquire_roster(self) -> tuple[Sequence[RosterAgent], _Acquisition]:
        provider = self._roster_provider
        location = str(self._settings.roster_file) if self._settings.roster_file else "roster"
        if provider is None:
            self._logger.debug("hierarchy_source_missing", source=SourceId.ROSTER.value)
            return (), _Acquisition(_status(SourceAvailability.UNAVAILABLE, location))

        try:
            agents = tuple(provider.list_agents())
        except FileNotFoundError:
            self._logger.debug(
                "hierarchy_source_missing", source=SourceId.ROSTER.value, location=location
            )
            return (), _Acquisition(_status(SourceAvailability.UNAVAILABLE, location))
        except Exception as exc:  # noqa: BLE001 - roster failures are tolerated by contract
            return (), self._failed(SourceId.ROSTER, location, str(exc), label="Roster")

        self._logger.info(
            "hierarchy_source_loaded", source=SourceId.ROSTER.value, count=len(agents)
        )
        return agents, _Acquisition(
            _status(SourceAvailability.AVAILABLE, location, count=len(agents))
        )

    def _acquire_file(
        self, source: SourceId, path: Path, reader: Any
    ) -> tuple[object | None, _Acquisition]:
        location = path.as_posix()
        try:
            parsed = reader(path)
        except FileNotFoundError:
            self._logger.debug("hierarchy_source_missing", source=source.value, location=location)
            return None, _Acquisition(_status(SourceAvailability.UNAVAILABLE, location))
        except SourceReadError as exc:
            label = "Config document" if source is SourceId.CONFIG_DOCUMENT else "Fallback policy"
            return None, self._failed(source, location, str(exc), label=label)

        self._logger.info("hierarchy_source_loaded", source=source.value, location=location)
        return parsed, _Acquisition(_status(SourceAvailability.AVAILABLE, location))

    def _acquire_documents(self) -> tuple[DocumentCorpus | None, _Acquisition]:
        settings = self._settings
        location = settings.documents_dir.as_posix()
        try:
            corpus = read_agent_documents(
                settings.documents_dir,
                identity_filename=settings.heuristics.identity_filename,
                excluded_filenames=settings.excluded_filenames,
            )
        except FileNotFoundError:
            self._logger.debug(
                "hierarchy_source_missing",
                source=SourceId.AGENT_DOCUMENTS.value,
                location=location,
            )
            return None, _Acquisition(_status(SourceAvailability.UNAVAILABLE, location))
        except SourceReadError as exc:
            return None, self._failed(
                SourceId.AGENT_DOCUMENTS, location, str(exc), label="Agent documents"
            )

        self._logger.info(
            "hierarchy_source_loaded",
            source=SourceId.AGENT_DOCUMENTS.value,
            location=location,
            documents=len(corpus.documents),
        )
        return corpus, _Acquisition(_status(SourceAvailability.AVAILABLE, location))

    def _acquire_runtime(self) -> tuple[RuntimeCommandResult, _Acquisition]:
        settings = self._settings
        location = settings.runtime_command_id
        client = self._runtime_client
        if client is None:
            result = RuntimeCommandResult(error=_RUNTIME_DISABLED)
        else:
            try:
                result = client.fetch(
                    settings.runtime_command_id, timeout_seconds=settings.runtime_timeout_seconds
                )
            except Exception as exc:  # noqa: BLE001 - injected clients must not break a build
                result = RuntimeCommandResult(error=f"{type(exc).__name__}: {exc}")

        if result.error is not None:
            event = (
                "hierarchy_source_missing"
                if _is_expected_runtime_absence(result.error)
                else "hierarchy_source_failed"
            )
            self._logger.info(
                event,
                source=SourceId.RUNTIME_INVENTORY.value,
                location=location,
                error=result.error,
            )
            return result, _Acquisition(
                _status(SourceAvailability.UNAVAILABLE, location, error=result.error)
            )

        self._logger.info(
            "hierarchy_source_loaded", source=SourceId.RUNTIME_INVENTORY.value, location=location
        )
        return result, _Acquisition(_status(SourceAvailability.AVAILABLE, location))

    def _failed(self, source: SourceId, location: str, error: str, *, label: str) -> _Acquisition:
        self._logger.warning(
            "hierarchy_source_failed", source=source.value, location=location, error=error
        )
        return _Acquisition(
            status=_status(SourceAvailability.UNAVAILABLE, location, error=error),
            warnings=[
                HierarchyWarning(
                    code=WarningCode.SOURCE_UNAVAILABLE,
                    source=source,
                    message=f"{label} unavailable: {error}",
                )
            ],
        )

    # ------------------------------------------------------------------ selection

    def _select_structural(
        self,
        parsed_config: object | None,
        config_status: SourceStatus,
        corpus: DocumentCorpus | None,
        documents_status: SourceStatus,
        warnings: list[HierarchyWarning],
    ) -> tuple[StructuralExtraction | None, SourceStatus, SourceStatus]:
        if config_status.available:
            config_extraction = extract_config_hierarchy(parsed_config)
            warnings.extend(config_extraction.warnings)
            if not config_extraction.is_empty:
                config_status = _with(
                    config_status, SourceAvailability.AVAILABLE, len(config_extraction.agents)
                )
                if documents_status.available:
                    documents_status = _with(
                        documents_status, SourceAvailability.AVAILABLE_UNUSED
                    )
                return config_extraction, config_status, documents_status
            config_status = _with(config_status, SourceAvailability.AVAILABLE_UNUSED, 0)

        if corpus is None:
            return None, config_status, documents_status

        for path, error in corpus.unreadable:
            warnings.append(
                HierarchyWarning(
                    code=WarningCode.PARSE_ERROR,
                    source=SourceId.AGENT_DOCUMENTS,
                    message=f"Unable to read agent document {path}: {error}",
                )
            )
        extraction = extract_document_hierarchy(corpus.documents, self._settings.heuristics)
        documents_status = _with(
            documents_status, SourceAvailability.AVAILABLE, len(extraction.agents)
        )
        return extraction, config_status, documents_status

    def _select_overlay(
        self,
        runtime_result: RuntimeCommandResult,
        runtime_status: SourceStatus,
        parsed_fallback: object | None,
        fallback_status: SourceStatus,
        warnings: list[HierarchyWarning],
    ) -> tuple[OverlayExtraction | None, SourceStatus, SourceStatus]:
        if runtime_status.available:
            overlay = extract_runtime_overlay(runtime_result.data)
            runtime_status = _with(
                runtime_status, SourceAvailability.AVAILABLE, len(overlay.agents)
            )
            if fallback_status.available:
                fallback_status = _with(fallback_status, SourceAvailability.AVAILABLE_UNUSED)
            return overlay, runtime_status, fallback_status

        runtime_error = runtime_result.error
        expected_absence = _is_expected_runtime_absence(runtime_error)

        if not fallback_status.available:
            if not expected_absence:
                warnings.append(
                    HierarchyWarning(
                        code=WarningCode.SOURCE_UNAVAILABLE,
                        source=SourceId.RUNTIME_INVENTORY,
                        message=f"Runtime agent inventory unavailable: {runtime_error}",
                    )
                )
            return None, runtime_status, fallback_status

        overlay = extract_fallback_overlay(parsed_fallback)
        fallback_status = _with(
            fallback_status, SourceAvailability.AVAILABLE, len(overlay.agents)
        )
        # This warning carries the runtime error; no separate source_unavailable is added.
        if not expected_absence:
            warnings.append(
                HierarchyWarning(
                    code=WarningCode.RUNTIME_UNAVAILABLE_FALLBACK_USED,
                    source=SourceId.FALLBACK_POLICY,
                    message=(
                        "Runtime agent inventory unavailable; using fallback policy document "
                        f"({runtime_error})"
                    ),
                )
            )
        return overlay, runtime_status, fallback_status


def build_hierarchy(
    config: Mapping[str, Any] | None = None,
    *,
    roster_provider: RosterProvider | None = None,
    runtime_client: RuntimeInventoryClient | None = None,
    logger: Any | None = None,
) -> HierarchyGraph:
    """One-shot convenience: configure a service and load the graph."""

    service = HierarchyService.from_config(
        config, roster_provider=roster_provider, runtime_client=runtime_client, logger=logger
    )
    return service.load()


def _is_expected_runtime_absence(error: str | None) -> bool:
    return error == _RUNTIME_DISABLED or is_runtime_unavailable_error(error)


def _status(
    availability: SourceAvailability,
    location: str,
    *,
    error: str | None = None,
    count: int | None = None,
) -> SourceStatus:
    return SourceStatus(availability=availability, location=location, error=error, count=count)


def _with(
    status: SourceStatus, availability: SourceAvailability, count: int | None = None
) -> SourceStatus:
    return SourceStatus(
        availability=availability,
        location=status.location,
        error=status.error,
        count=count if count is not None else status.count,
    )


__all__ = ["HierarchyService", "ServiceSettings", "build_hierarchy"]
