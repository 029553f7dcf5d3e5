"""Tests for the Jira Fields mixin."""

import pytest

from mcp_jira_cloud.exceptions import FieldNotResolvableError
from mcp_jira_cloud.jira.field_catalog import BindingSource, FieldScope, ManagementStyle
from tests.fixtures.jira_mocks import (
    MOCK_JIRA_FIELDS,
    stub_company_project,
    stub_team_project,
)


class TestFieldsMixin:
    @pytest.mark.asyncio
    async def test_list_fields_filters_custom(self, jira_fetcher, router):
        router.add("GET", "/rest/api/3/field", MOCK_JIRA_FIELDS)

        fields = await jira_fetcher.list_fields("custom")

        assert {f["id"] for f in fields} == {
            "customfield_10014",
            "customfield_10016",
            "customfield_10020",
            "customfield_10026",
        }
        assert all(f["custom"] for f in fields)

    @pytest.mark.asyncio
    async def test_list_fields_filters_system(self, jira_fetcher, router):
        router.add("GET", "/rest/api/3/field", MOCK_JIRA_FIELDS)

        fields = await jira_fetcher.list_fields("system")

        assert [f["id"] for f in fields] == [
            "summary",
            "description",
            "status",
            "assignee",
            "labels",
        ]

    @pytest.mark.asyncio
    async def test_issue_type_id_passthrough(self, jira_fetcher, router):
        assert await jira_fetcher.get_issue_type_id("CMP", "10003") == "10003"
        assert router.requests == []

    @pytest.mark.asyncio
    async def test_issue_type_id_by_name(self, jira_fetcher, router):
        stub_company_project(router)
        assert await jira_fetcher.get_issue_type_id("CMP", "story") == "10002"

    @pytest.mark.asyncio
    async def test_unknown_issue_type(self, jira_fetcher, router):
        stub_company_project(router)
        with pytest.raises(ValueError, match="Available: Story, Task"):
            await jira_fetcher.get_issue_type_id("CMP", "Epic")

    @pytest.mark.asyncio
    async def test_management_style(self, jira_fetcher, router):
        stub_team_project(router)
        assert await jira_fetcher.get_management_style("TEAM") is ManagementStyle.TEAM_MANAGED

    @pytest.mark.asyncio
    async def test_applicable_fields_are_paginated(self, jira_fetcher, router):
        path = "/rest/api/3/issue/createmeta/CMP/issuetypes/10002"
        router.add(
            "GET",
            path,
            {"startAt": 0, "total": 3, "fields": [{"fieldId": "summary"}, {"fieldId": "labels"}]},
            {"startAt": 2, "total": 3, "fields": [{"fieldId": "customfield_10026"}]},
        )

        field_ids = await jira_fetcher.get_applicable_field_ids("CMP", "10002")

        assert field_ids == frozenset({"summary", "labels", "customfield_10026"})
        assert [r.url.params["startAt"] for r in router.calls("GET", path)] == ["0", "2"]

    @pytest.mark.asyncio
    async def test_resolve_field_in_team_project(self, jira_fetcher, router):
        stub_team_project(router)
        scope = await jira_fetcher.field_scope("TEAM", "Story")

        binding = await jira_fetcher.resolve_field("story_points", scope)

        assert scope == FieldScope("TEAM", "10101")
        assert binding.resolved_id == "customfield_10016"
        assert binding.source is BindingSource.EXACT_MATCH

    @pytest.mark.asyncio
    async def test_metadata_loaded_once_per_scope(self, jira_fetcher, router):
        stub_company_project(router)
        scope = FieldScope("CMP", "10002")

        await jira_fetcher.resolve_field("story_points", scope)
        await jira_fetcher.resolve_field("sprint", scope)
        await jira_fetcher.resolve_field("epic_link", scope)

        assert len(router.calls("GET", "/rest/api/3/field")) == 1
        assert len(router.calls("GET", "/rest/api/3/project/CMP")) == 1

    @pytest.mark.asyncio
    async def test_unsupported_field(self, jira_fetcher, router):
        stub_team_project(router)
        with pytest.raises(FieldNotResolvableError):
            await jira_fetcher.resolve_field("epic_link", FieldScope("TEAM", "10101"))

    @pytest.mark.asyncio
    async def test_invalidate_field_cache(self, jira_fetcher, router):
        stub_company_project(router)
        await jira_fetcher.resolve_field("sprint", FieldScope("CMP", "10002"))

        assert jira_fetcher.invalidate_field_cache("CMP") == 1
        await jira_fetcher.resolve_field("sprint", FieldScope("CMP", "10002"))
        assert len(router.calls("GET", "/rest/api/3/field")) == 2

    @pytest.mark.asyncio
    async def test_issue_scope(self, jira_fetcher, router):
        router.add(
            "GET",
            "/rest/api/3/issue/TEAM-5",
            {"fields": {"project": {"key": "TEAM"}, "issuetype": {"id": "10101"}}},
        )

        scope = await jira_fetcher.get_issue_scope("TEAM-5")

        assert scope == FieldScope("TEAM", "10101")
        (request,) = router.calls("GET", "/rest/api/3/issue/TEAM-5")
        assert request.url.params["fields"] == "project,issuetype"
