"""
agent-hierarchy — unit tests for config schema validation

File: tests/unit/config/test_schema.py

Purpose
- Validate defaults, deep merging, and structured validation issues.
"""

from __future__ import annotations

import pytest

from agent_hierarchy.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)


@pytest.mark.unit
def test_defaults_are_valid_and_independent_copies() -> None:
    first = default_config()
    first["runtime"]["command"].append("--extra")

    assert validate_config(default_config()).is_valid
    assert "--extra" not in default_config()["runtime"]["command"]


@pytest.mark.unit
def test_merge_replaces_lists_and_merges_mappings() -> None:
    merged = merge_config(
        default_config(),
        {"runtime": {"command": ["rt", "ls"]}, "documents": {"agent_prefix": "Acme"}},
    )

    assert merged["runtime"]["command"] == ["rt", "ls"]
    assert merged["runtime"]["enabled"] is True
    assert merged["documents"]["agent_prefix"] == "Acme"
    assert merged["documents"]["identity_filename"] == "SOUL.md"


@pytest.mark.unit
def test_validation_reports_every_issue_with_dotted_paths() -> None:
    config = merge_config(
        default_config(),
        {
            "runtime": {"command": [], "timeout_seconds": 0},
            "observability": {"log_level": "loud", "log_format": "xml"},
            "documents": {"role_tokens": ["ok", 3]},
        },
    )

    result = validate_config(config)

    assert result.config is None
    assert sorted(issue.path for issue in result.issues) == [
        "documents.role_tokens[1]",
        "observability.log_format",
        "observability.log_level",
        "runtime.command",
        "runtime.timeout_seconds",
    ]


@pytest.mark.unit
def test_missing_section_and_schema_version_mismatch() -> None:
    config = default_config()
    del config["documents"]  # type: ignore[misc]
    config["meta"]["schema_version"] = 2

    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(config)

    paths = {issue.path: issue.message for issue in excinfo.value.issues}
    assert paths["documents"] == "missing required field"
    assert "newer than supported" in paths["meta.schema_version"]


@pytest.mark.unit
def test_log_level_is_case_insensitive() -> None:
    config = merge_config(default_config(), {"observability": {"log_level": "warning"}})

    assert assert_valid_config(config)["observability"]["log_level"] == "WARNING"


@pytest.mark.unit
def test_roster_file_may_be_empty() -> None:
    config = merge_config(default_config(), {"sources": {"roster_file": "  "}})

    assert assert_valid_config(config)["sources"]["roster_file"] == ""


@pytest.mark.unit
def test_migration_guidance_messages() -> None:
    assert "older" in migration_guidance(0)
    assert migration_guidance(1) == "schema version is current"
