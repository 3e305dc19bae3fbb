"""Stable constants shared across the hierarchy engine."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
GRAPH_SCHEMA_VERSION: Final[int] = 1

# Default source locations (relative to the workspace root unless overridden by config).
DEFAULT_CONFIG_DOCUMENT: Final[str] = "clawcontrol.config.yaml"
DEFAULT_DOCUMENTS_DIR: Final[str] = "agents"
DEFAULT_FALLBACK_DOCUMENT: Final[str] = "openclaw/openclaw.json5"

# Runtime inventory command.
DEFAULT_RUNTIME_COMMAND: Final[tuple[str, ...]] = ("openclaw", "config", "agents", "list", "--json")
DEFAULT_RUNTIME_COMMAND_ID: Final[str] = "config.agents.list.json"
DEFAULT_RUNTIME_TIMEOUT_SECONDS: Final[float] = 30.0

# Capability precedence per source; higher wins, equal overwrites.
PRECEDENCE_ROSTER: Final[int] = 0
PRECEDENCE_STRUCTURAL: Final[int] = 1
PRECEDENCE_FALLBACK: Final[int] = 2
PRECEDENCE_RUNTIME: Final[int] = 3
PRECEDENCE_UNSET: Final[int] = -1

# Tool policy token groups. Matching is case-insensitive.
WILDCARD_TOKEN: Final[str] = "*"
WRITE_TOKENS: Final[tuple[str, ...]] = ("write", "edit", "group:fs", "filesystem")
EXEC_TOKENS: Final[tuple[str, ...]] = ("exec", "run", "group:runtime", "shell", "terminal")
MESSAGE_TOKENS: Final[tuple[str, ...]] = (
    "message",
    "messages",
    "agenttoagent",
    "group:agenttoagent",
    "group:messages",
)
EXEC_SECURITY_DENY: Final[str] = "deny"

# Document heuristics.
DEFAULT_AGENT_PREFIX: Final[str] = "Clawcontrol"
DEFAULT_IDENTITY_FILENAME: Final[str] = "SOUL.md"
DEFAULT_EXCLUDED_FILENAMES: Final[tuple[str, ...]] = (
    "AGENTS.md",
    "CHANGELOG.md",
    "HEARTBEAT.md",
    "MEMORY.md",
    "README.md",
    "TOOLS.md",
    "USER.md",
)
DEFAULT_ROLE_TOKENS: Final[tuple[str, ...]] = (
    "build",
    "ceo",
    "manager",
    "ops",
    "plan",
    "qa",
    "research",
    "review",
    "security",
    "ui",
)
DEFAULT_STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "a",
        "agent",
        "agents",
        "all",
        "an",
        "and",
        "any",
        "anyone",
        "as",
        "by",
        "directly",
        "for",
        "from",
        "human",
        "humans",
        "main",
        "n/a",
        "no",
        "none",
        "nobody",
        "of",
        "only",
        "operator",
        "or",
        "the",
        "task",
        "tasks",
        "team",
        "to",
        "user",
        "via",
        "when",
        "with",
        "work",
        "you",
        "your",
    }
)

# Substrings that mark the runtime command as simply absent rather than broken.
RUNTIME_UNAVAILABLE_MARKERS: Final[tuple[str, ...]] = (
    "cli not found",
    "cli not available",
    "command not found",
    "spawn enoent",
    "enoent",
    "no such file or directory",
)
MISSING_FILE_MARKERS: Final[tuple[str, ...]] = ("enoent", "no such file or directory")

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_AGENT_PREFIX",
    "DEFAULT_CONFIG_DOCUMENT",
    "DEFAULT_DOCUMENTS_DIR",
    "DEFAULT_EXCLUDED_FILENAMES",
    "DEFAULT_FALLBACK_DOCUMENT",
    "DEFAULT_IDENTITY_FILENAME",
    "DEFAULT_ROLE_TOKENS",
    "DEFAULT_RUNTIME_COMMAND",
    "DEFAULT_RUNTIME_COMMAND_ID",
    "DEFAULT_RUNTIME_TIMEOUT_SECONDS",
    "DEFAULT_STOP_WORDS",
    "EXEC_SECURITY_DENY",
    "EXEC_TOKENS",
    "GRAPH_SCHEMA_VERSION",
    "MESSAGE_TOKENS",
    "MISSING_FILE_MARKERS",
    "PRECEDENCE_FALLBACK",
    "PRECEDENCE_ROSTER",
    "PRECEDENCE_RUNTIME",
    "PRECEDENCE_STRUCTURAL",
    "PRECEDENCE_UNSET",
    "RUNTIME_UNAVAILABLE_MARKERS",
    "WILDCARD_TOKEN",
    "WRITE_TOKENS",
]
