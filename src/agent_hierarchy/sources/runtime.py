"""
agent-hierarchy — runtime inventory client.

File: src/agent_hierarchy/sources/runtime.py

Purpose
- Fetch the live agent inventory by running the runtime CLI and parsing its JSON output.

Functional requirements
- The client never raises: missing executables, timeouts, non-zero exits and malformed
  output all come back as ``RuntimeCommandResult.error`` text.
- ``is_runtime_unavailable_error`` recognizes the messages that mean the runtime is simply
  not installed, so callers can keep that case silent.
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from agent_hierarchy.constants import (
    DEFAULT_RUNTIME_COMMAND,
    RUNTIME_UNAVAILABLE_MARKERS,
)

_MAX_ERROR_CHARS = 500


@dataclass(frozen=True, slots=True)
class RuntimeCommandResult:
    """Outcome of one runtime command; exactly one of ``data`` / ``error`` is meaningful."""

    data: object | None = None
    error: str | None = None
    exit_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RuntimeInventoryClient(Protocol):
    """Injectable runtime client used for deterministic/offline testing."""

    def fetch(self, command_id: str, *, timeout_seconds: float) -> RuntimeCommandResult: ...


class SubprocessInventoryClient:
    """Default runtime client backed by ``subprocess.run``."""

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_RUNTIME_COMMAND,
        *,
        cwd: Path | str | None = None,
    ) -> None:
        if not command:
            raise ValueError("runtime command must not be empty")
        self._command = tuple(command)
        self._cwd = Path(cwd) if cwd is not None else None

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    def fetch(self, command_id: str, *, timeout_seconds: float) -> RuntimeCommandResult:
        rendered = " ".join(self._command)
        try:
            completed = subprocess.run(
                list(self._command),
                cwd=self._cwd,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except FileNotFoundError:
            return RuntimeCommandResult(error=f"command not found: {self._command[0]}")
        except subprocess.TimeoutExpired:
            return RuntimeCommandResult(
                error=f"{command_id} timed out after {timeout_seconds} seconds: {rendered}"
            )
        except OSError as exc:
            return RuntimeCommandResult(error=f"{command_id} failed to start: {exc}")

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            message = f"{command_id} exited with code {completed.returncode}"
            if detail:
                message = f"{message}: {detail[:_MAX_ERROR_CHARS]}"
            return RuntimeCommandResult(error=message, exit_code=completed.returncode)

        try:
            data = json.loads(completed.stdout)
        except json.JSONDecodeError as exc:
            return RuntimeCommandResult(
                error=f"{command_id} returned invalid JSON: {exc}",
                exit_code=completed.returncode,
            )
        return RuntimeCommandResult(data=data, exit_code=completed.returncode)


def is_runtime_unavailable_error(message: str | None) -> bool:
    """True when ``message`` says the runtime CLI is absent rather than broken."""

    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in RUNTIME_UNAVAILABLE_MARKERS)


__all__ = [
    "RuntimeCommandResult",
    "RuntimeInventoryClient",
    "SubprocessInventoryClient",
    "is_runtime_unavailable_error",
]
