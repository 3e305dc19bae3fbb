"""
agent-hierarchy — unit tests for the runtime inventory client

File: tests/unit/sources/test_runtime.py

Purpose
- Validate that subprocess outcomes are reported as data or error text, never raised.

Functional requirements
- Offline only: commands are the running interpreter or a name that cannot exist.
"""

from __future__ import annotations

import sys

import pytest

from agent_hierarchy.sources.runtime import (
    RuntimeCommandResult,
    SubprocessInventoryClient,
    is_runtime_unavailable_error,
)

_COMMAND_ID = "config.agents.list.json"


def _python(code: str) -> SubprocessInventoryClient:
    return SubprocessInventoryClient((sys.executable, "-c", code))


@pytest.mark.integration
def test_parses_json_stdout() -> None:
    result = _python("print('[{\"id\": \"agentA\"}]')").fetch(_COMMAND_ID, timeout_seconds=30)

    assert result.ok
    assert result.data == [{"id": "agentA"}]
    assert result.exit_code == 0


@pytest.mark.integration
def test_missing_executable_is_reported_as_unavailable() -> None:
    client = SubprocessInventoryClient(("agent-hierarchy-no-such-runtime-cli", "list"))

    result = client.fetch(_COMMAND_ID, timeout_seconds=5)

    assert result.data is None
    assert result.error == "command not found: agent-hierarchy-no-such-runtime-cli"
    assert is_runtime_unavailable_error(result.error)


@pytest.mark.integration
def test_non_zero_exit_carries_stderr_detail() -> None:
    result = _python("import sys; sys.stderr.write('gateway offline'); sys.exit(3)").fetch(
        _COMMAND_ID, timeout_seconds=30
    )

    assert result.error == f"{_COMMAND_ID} exited with code 3: gateway offline"
    assert result.exit_code == 3
    assert not is_runtime_unavailable_error(result.error)


@pytest.mark.integration
def test_invalid_json_is_an_error() -> None:
    result = _python("print('not json')").fetch(_COMMAND_ID, timeout_seconds=30)

    assert result.error is not None
    assert result.error.startswith(f"{_COMMAND_ID} returned invalid JSON")


@pytest.mark.integration
def test_timeout_is_an_error() -> None:
    result = _python("import time; time.sleep(5)").fetch(_COMMAND_ID, timeout_seconds=0.2)

    assert result.error is not None
    assert "timed out after 0.2 seconds" in result.error


@pytest.mark.unit
def test_empty_command_is_rejected() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        SubprocessInventoryClient(())


@pytest.mark.unit
@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("openclaw CLI not found", True),
        ("spawn openclaw ENOENT", True),
        ("bash: openclaw: command not found", True),
        ("exited with code 1: gateway offline", False),
        ("", False),
        (None, False),
    ],
)
def test_runtime_unavailable_markers(message: str | None, expected: bool) -> None:
    assert is_runtime_unavailable_error(message) is expected


@pytest.mark.unit
def test_result_ok_flag() -> None:
    assert RuntimeCommandResult(data=[]).ok is True
    assert RuntimeCommandResult(error="boom").ok is False
