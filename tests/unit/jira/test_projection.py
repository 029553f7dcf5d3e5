"""Tests for response projection presets."""

import copy
from typing import Any

import pytest

from mcp_jira_cloud.jira.projection import (
    FilterPreset,
    preset_request_fields,
    project,
    project_many,
)
from tests.fixtures.jira_mocks import MOCK_JIRA_ISSUE

ORDERED_PRESETS = [
    FilterPreset.MINIMAL,
    FilterPreset.BASIC,
    FilterPreset.STANDARD,
    FilterPreset.DETAILED,
]


def is_sub_projection(small: Any, large: Any) -> bool:
    """True when every path present in ``small`` is present in ``large``."""
    if isinstance(small, dict):
        return isinstance(large, dict) and all(
            key in large and is_sub_projection(value, large[key])
            for key, value in small.items()
        )
    if isinstance(small, list) and isinstance(large, list):
        return len(small) == len(large) and all(
            is_sub_projection(a, b) for a, b in zip(small, large)
        )
    return small == large


class TestFilterPreset:
    @pytest.mark.parametrize("value", [None, ""])
    def test_default_is_standard(self, value):
        assert FilterPreset.parse(value) is FilterPreset.STANDARD

    def test_parse_is_case_insensitive(self):
        assert FilterPreset.parse(" BASIC ") is FilterPreset.BASIC

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Valid presets: minimal, basic, standard, detailed"):
            FilterPreset.parse("huge")


class TestProject:
    def test_minimal_projection_is_exact(self):
        issue = {
            "id": "10001",
            "key": "PROJ-1",
            "fields": {
                "summary": "Hello",
                "status": {"name": "To Do"},
                "description": {"type": "doc"},
            },
            "changelog": {"histories": []},
        }

        assert project(issue, "minimal") == {
            "id": "10001",
            "key": "PROJ-1",
            "fields": {"summary": "Hello"},
        }

    def test_basic_keeps_nested_names_only(self):
        projected = project(MOCK_JIRA_ISSUE, FilterPreset.BASIC)

        assert projected["fields"]["status"] == {"name": "In Progress"}
        assert projected["fields"]["issuetype"] == {"name": "Task"}
        assert "priority" not in projected["fields"]

    def test_standard_contents(self):
        fields = project(MOCK_JIRA_ISSUE, FilterPreset.STANDARD)["fields"]

        assert fields["assignee"] == {"displayName": "Test User", "accountId": "acc-123"}
        assert fields["reporter"] == {"displayName": "Reporter"}
        assert fields["labels"] == ["auth", "web"]
        assert fields["duedate"] is None
        assert "description" not in fields
        assert "customfield_10026" not in fields

    def test_missing_paths_are_skipped(self):
        issue = {"key": "PROJ-2", "fields": {"summary": "No people", "assignee": None}}

        assert project(issue, FilterPreset.STANDARD) == {
            "key": "PROJ-2",
            "fields": {"summary": "No people"},
        }

    def test_detailed_is_identity(self):
        assert project(MOCK_JIRA_ISSUE, FilterPreset.DETAILED) is MOCK_JIRA_ISSUE

    def test_projection_does_not_mutate_input(self):
        original = copy.deepcopy(MOCK_JIRA_ISSUE)
        project(MOCK_JIRA_ISSUE, FilterPreset.MINIMAL)
        assert MOCK_JIRA_ISSUE == original

    @pytest.mark.parametrize("index", range(len(ORDERED_PRESETS) - 1))
    def test_presets_are_monotonic(self, index):
        smaller = project(MOCK_JIRA_ISSUE, ORDERED_PRESETS[index])
        larger = project(MOCK_JIRA_ISSUE, ORDERED_PRESETS[index + 1])
        assert is_sub_projection(smaller, larger)

    def test_project_many(self):
        issues = [MOCK_JIRA_ISSUE, {"id": "2", "key": "CMP-2", "fields": {"summary": "B"}}]

        assert project_many(issues, "minimal") == [
            {"id": "10042", "key": "CMP-42", "fields": {"summary": "Fix login redirect"}},
            {"id": "2", "key": "CMP-2", "fields": {"summary": "B"}},
        ]


class TestRequestFields:
    def test_minimal(self):
        assert preset_request_fields("minimal") == ["summary"]

    def test_basic(self):
        assert preset_request_fields(FilterPreset.BASIC) == ["summary", "status", "issuetype"]

    def test_standard_has_no_duplicates(self):
        fields = preset_request_fields(FilterPreset.STANDARD)
        assert fields is not None
        assert fields.count("assignee") == 1
        assert "parent" in fields

    def test_detailed_requests_everything(self):
        assert preset_request_fields(FilterPreset.DETAILED) is None
