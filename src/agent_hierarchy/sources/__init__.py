"""Source acquisition adapters: roster, files, and the runtime command."""

from agent_hierarchy.sources.files import (
    DocumentCorpus,
    SourceReadError,
    is_missing_file_error,
    read_agent_documents,
    read_config_document,
    read_fallback_document,
)
from agent_hierarchy.sources.roster import (
    FileRosterProvider,
    RosterProvider,
    StaticRosterProvider,
)
from agent_hierarchy.sources.runtime import (
    RuntimeCommandResult,
    RuntimeInventoryClient,
    SubprocessInventoryClient,
    is_runtime_unavailable_error,
)

__all__ = [
    "DocumentCorpus",
    "FileRosterProvider",
    "RosterProvider",
    "RuntimeCommandResult",
    "RuntimeInventoryClient",
    "SourceReadError",
    "StaticRosterProvider",
    "SubprocessInventoryClient",
    "is_missing_file_error",
    "is_runtime_unavailable_error",
    "read_agent_documents",
    "read_config_document",
    "read_fallback_document",
]
