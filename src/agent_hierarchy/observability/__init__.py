"""Observability helpers."""

from agent_hierarchy.observability.logging import (
    DEFAULT_LOGGER_NAME,
    configure_from_config,
    configure_logging,
)

__all__ = ["DEFAULT_LOGGER_NAME", "configure_from_config", "configure_logging"]
