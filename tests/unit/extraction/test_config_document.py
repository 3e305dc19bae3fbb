"""
agent-hierarchy — unit tests for the structured-config extractor

File: tests/unit/extraction/test_config_document.py

Purpose
- Validate relation and permission extraction from a parsed ``agents`` block.

What this test file should cover
- Relations, labels, roles, and explicit permission flags.
- Delegation implied by a non-empty ``delegates_to`` list.
- Malformed roots, missing sections, and malformed entries as warnings.
"""

from __future__ import annotations

import pytest
import yaml

from agent_hierarchy.domain.models import Capability, SourceId, WarningCode
from agent_hierarchy.extraction.config_document import extract_config_hierarchy

_DOCUMENT = """
agents:
  build:
    name: Build Agent
    role: builder
    reports_to: manager
    delegates_to: [qa, "  ", review]
    receives_from:
      - plan
    permissions:
      can_execute_code: true
      can_modify_files: false
      can_send_messages: "yes"
  manager:
    delegates_to: [build]
  broken: just-a-string
"""


@pytest.mark.unit
def test_extracts_relations_and_permissions() -> None:
    extraction = extract_config_hierarchy(yaml.safe_load(_DOCUMENT))

    assert extraction.source is SourceId.CONFIG_DOCUMENT
    by_id = {record.id: record for record in extraction.agents}
    assert sorted(by_id) == ["build", "manager"]

    build = by_id["build"]
    assert build.label == "Build Agent"
    assert build.role == "builder"
    assert build.reports_to == "manager"
    assert build.delegates_to == ("qa", "review")
    assert build.receives_from == ("plan",)
    assert build.capabilities == {
        Capability.DELEGATE: True,
        Capability.EXEC: True,
        Capability.WRITE: False,
    }


@pytest.mark.unit
def test_explicit_delegate_flag_beats_implied_delegation() -> None:
    extraction = extract_config_hierarchy(
        {"agents": {"x": {"delegates_to": ["y"], "permissions": {"can_delegate": False}}}}
    )

    assert extraction.agents[0].capabilities == {Capability.DELEGATE: False}


@pytest.mark.unit
def test_malformed_entry_is_skipped_with_warning() -> None:
    extraction = extract_config_hierarchy(yaml.safe_load(_DOCUMENT))

    assert [warning.code for warning in extraction.warnings] == [WarningCode.INVALID_RELATION]
    assert "broken" in extraction.warnings[0].message


@pytest.mark.unit
def test_missing_agents_section_yields_empty_result_with_warning() -> None:
    extraction = extract_config_hierarchy({"version": 1})

    assert extraction.is_empty
    assert extraction.warnings[0].code is WarningCode.INVALID_RELATION


@pytest.mark.unit
@pytest.mark.parametrize("parsed", [None, [], "text", 42])
def test_non_mapping_root_is_a_parse_error(parsed: object) -> None:
    extraction = extract_config_hierarchy(parsed)

    assert extraction.is_empty
    assert [warning.code for warning in extraction.warnings] == [WarningCode.PARSE_ERROR]
