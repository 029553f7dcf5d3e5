"""Tests for the semantic field catalog."""

import anyio
import pytest

from mcp_jira_cloud.exceptions import FieldNotResolvableError, TerminalUpstreamError
from mcp_jira_cloud.jira.field_catalog import (
    BindingSource,
    FieldCatalog,
    FieldMetadata,
    FieldScope,
    ManagementStyle,
    normalize_semantic_name,
)
from tests.fixtures.jira_mocks import MOCK_JIRA_FIELDS

TEAM_SCOPE = FieldScope("TEAM", "10101")
COMPANY_SCOPE = FieldScope("CMP", "10002")


def metadata_for(scope: FieldScope) -> FieldMetadata:
    if scope.project_key == "TEAM":
        return FieldMetadata(
            fields=MOCK_JIRA_FIELDS,
            management_style=ManagementStyle.TEAM_MANAGED,
            applicable_field_ids=frozenset(
                {"summary", "customfield_10016", "customfield_10020"}
            ),
        )
    if scope.project_key == "CMP":
        return FieldMetadata(
            fields=MOCK_JIRA_FIELDS,
            management_style=ManagementStyle.COMPANY_MANAGED,
            applicable_field_ids=frozenset(
                {"summary", "customfield_10014", "customfield_10020", "customfield_10026"}
            ),
        )
    return FieldMetadata(fields=MOCK_JIRA_FIELDS)


class CountingLoader:
    """Metadata loader that counts calls and can be held open."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[FieldScope] = []
        self.release = anyio.Event()
        self.hold = False
        self.error = error

    async def __call__(self, scope: FieldScope) -> FieldMetadata:
        self.calls.append(scope)
        if self.hold:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return metadata_for(scope)


class TestScopes:
    def test_scope_normalizes_project_key(self):
        assert FieldScope(" cmp ", 10002) == FieldScope("CMP", "10002")

    def test_management_style_from_project(self):
        assert ManagementStyle.from_project({"style": "next-gen"}) is ManagementStyle.TEAM_MANAGED
        assert ManagementStyle.from_project({"simplified": True}) is ManagementStyle.TEAM_MANAGED
        assert (
            ManagementStyle.from_project({"style": "classic", "simplified": False})
            is ManagementStyle.COMPANY_MANAGED
        )

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Story Points", "story_points"),
            ("story_points", "story_points"),
            ("  Epic-Link ", "epic_link"),
        ],
    )
    def test_normalize_semantic_name(self, name, expected):
        assert normalize_semantic_name(name) == expected


class TestResolve:
    @pytest.mark.asyncio
    async def test_team_managed_story_points(self):
        catalog = FieldCatalog()
        binding = await catalog.resolve("story_points", TEAM_SCOPE, CountingLoader())

        assert binding.resolved_id == "customfield_10016"
        assert binding.field_name == "Story point estimate"
        assert binding.source is BindingSource.EXACT_MATCH
        assert binding.scope == TEAM_SCOPE

    @pytest.mark.asyncio
    async def test_company_managed_story_points(self):
        catalog = FieldCatalog()
        binding = await catalog.resolve("Story Points", COMPANY_SCOPE, CountingLoader())

        assert binding.resolved_id == "customfield_10026"
        assert binding.semantic_name == "story_points"

    @pytest.mark.asyncio
    async def test_same_name_differs_per_project(self):
        catalog = FieldCatalog()
        loader = CountingLoader()
        team = await catalog.resolve("story_points", TEAM_SCOPE, loader)
        company = await catalog.resolve("story_points", COMPANY_SCOPE, loader)

        assert team.resolved_id != company.resolved_id
        assert loader.calls == [TEAM_SCOPE, COMPANY_SCOPE]

    @pytest.mark.asyncio
    async def test_instance_wide_lookup_uses_company_names(self):
        catalog = FieldCatalog()
        binding = await catalog.resolve("story_points", FieldScope(), CountingLoader())
        assert binding.resolved_id == "customfield_10026"

    @pytest.mark.asyncio
    async def test_unsupported_field_raises(self):
        catalog = FieldCatalog()
        with pytest.raises(FieldNotResolvableError) as exc_info:
            await catalog.resolve("epic_link", TEAM_SCOPE, CountingLoader())

        assert exc_info.value.semantic_name == "epic_link"
        assert exc_info.value.project_key == "TEAM"
        assert "TEAM" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fields_outside_the_create_screen_are_ignored(self):
        scope = FieldScope("CMP", "10003")

        async def loader(scope):
            return FieldMetadata(
                fields=MOCK_JIRA_FIELDS,
                management_style=ManagementStyle.COMPANY_MANAGED,
                applicable_field_ids=frozenset({"summary", "description"}),
            )

        with pytest.raises(FieldNotResolvableError):
            await FieldCatalog().resolve("story_points", scope, loader)

    @pytest.mark.asyncio
    async def test_heuristic_match(self):
        fields = [{"id": "customfield_10500", "name": "Story Points (legacy)"}]

        async def loader(scope):
            return FieldMetadata(fields=fields, management_style=ManagementStyle.COMPANY_MANAGED)

        binding = await FieldCatalog().resolve("story_points", FieldScope("OLD"), loader)

        assert binding.resolved_id == "customfield_10500"
        assert binding.source is BindingSource.HEURISTIC_MATCH

    @pytest.mark.asyncio
    async def test_override_wins(self):
        catalog = FieldCatalog(overrides={"Story Points": "customfield_99999"})
        binding = await catalog.resolve("story_points", TEAM_SCOPE, CountingLoader())

        assert binding.resolved_id == "customfield_99999"
        assert binding.source is BindingSource.USER_OVERRIDE

    @pytest.mark.asyncio
    async def test_unknown_semantic_name_matches_field_name(self):
        fields = [*MOCK_JIRA_FIELDS, {"id": "customfield_11000", "name": "Customer Tier"}]

        async def loader(scope):
            return FieldMetadata(fields=fields)

        binding = await FieldCatalog().resolve("Customer Tier", FieldScope(), loader)

        assert binding.semantic_name == "customer_tier"
        assert binding.resolved_id == "customfield_11000"

    @pytest.mark.asyncio
    async def test_unknown_name_resolves_for_every_spelling(self):
        fields = [*MOCK_JIRA_FIELDS, {"id": "customfield_11000", "name": "Customer Tier"}]

        async def loader(scope):
            return FieldMetadata(fields=fields)

        catalog = FieldCatalog()
        snake = await catalog.resolve("customer_tier", FieldScope(), loader)
        display = await catalog.resolve("Customer Tier", FieldScope(), loader)
        dashed = await catalog.resolve("customer-tier", FieldScope(), loader)

        assert {snake.resolved_id, display.resolved_id, dashed.resolved_id} == {
            "customfield_11000"
        }

    @pytest.mark.asyncio
    async def test_bindings_lists_resolved_aliases(self):
        bindings = await FieldCatalog().bindings(COMPANY_SCOPE, CountingLoader())
        by_name = {b.semantic_name: b.resolved_id for b in bindings}

        assert by_name["story_points"] == "customfield_10026"
        assert by_name["sprint"] == "customfield_10020"
        assert by_name["epic_link"] == "customfield_10014"
        assert "team" not in by_name


class TestCaching:
    @pytest.mark.asyncio
    async def test_concurrent_cold_lookups_load_once(self):
        catalog = FieldCatalog()
        loader = CountingLoader()
        loader.hold = True
        results = []

        async def resolve():
            results.append(await catalog.resolve("story_points", TEAM_SCOPE, loader))

        async with anyio.create_task_group() as tg:
            for _ in range(10):
                tg.start_soon(resolve)
            await anyio.wait_all_tasks_blocked()
            loader.release.set()

        assert len(loader.calls) == 1
        assert len(results) == 10
        assert {b.resolved_id for b in results} == {"customfield_10016"}

    @pytest.mark.asyncio
    async def test_failed_load_is_shared_and_not_cached(self):
        catalog = FieldCatalog()
        error = TerminalUpstreamError("HTTP 403", status_code=403)
        loader = CountingLoader(error=error)
        loader.hold = True
        errors = []

        async def resolve():
            try:
                await catalog.resolve("story_points", TEAM_SCOPE, loader)
            except TerminalUpstreamError as e:
                errors.append(e)

        async with anyio.create_task_group() as tg:
            for _ in range(5):
                tg.start_soon(resolve)
            await anyio.wait_all_tasks_blocked()
            loader.release.set()

        assert len(loader.calls) == 1
        assert errors == [error] * 5
        assert not catalog.is_cached(TEAM_SCOPE)

        loader.error = None
        binding = await catalog.resolve("story_points", TEAM_SCOPE, loader)
        assert binding.resolved_id == "customfield_10016"
        assert len(loader.calls) == 2

    @pytest.mark.asyncio
    async def test_cancelled_loader_hands_over_to_waiter(self):
        catalog = FieldCatalog()
        loader = CountingLoader()
        loader.hold = True
        results = []

        async def follower():
            results.append(await catalog.resolve("story_points", TEAM_SCOPE, loader))

        async with anyio.create_task_group() as tg:
            leader_scope = anyio.CancelScope()

            async def leader():
                with leader_scope:
                    await catalog.resolve("story_points", TEAM_SCOPE, loader)

            tg.start_soon(leader)
            await anyio.wait_all_tasks_blocked()
            tg.start_soon(follower)
            await anyio.wait_all_tasks_blocked()
            loader.hold = False
            leader_scope.cancel()

        assert leader_scope.cancelled_caught
        assert len(loader.calls) == 2
        assert [b.resolved_id for b in results] == ["customfield_10016"]

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl(self):
        now = [0.0]
        catalog = FieldCatalog(ttl=60, timer=lambda: now[0])
        loader = CountingLoader()

        await catalog.resolve("story_points", TEAM_SCOPE, loader)
        now[0] = 30.0
        await catalog.resolve("sprint", TEAM_SCOPE, loader)
        assert len(loader.calls) == 1

        now[0] = 61.0
        await catalog.resolve("story_points", TEAM_SCOPE, loader)
        assert len(loader.calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_by_project(self):
        catalog = FieldCatalog()
        loader = CountingLoader()
        await catalog.resolve("sprint", TEAM_SCOPE, loader)
        await catalog.resolve("sprint", FieldScope("TEAM"), loader)
        await catalog.resolve("sprint", COMPANY_SCOPE, loader)

        assert catalog.invalidate(project_key="team") == 2
        assert not catalog.is_cached(TEAM_SCOPE)
        assert catalog.is_cached(COMPANY_SCOPE)

    @pytest.mark.asyncio
    async def test_invalidate_single_scope_and_all(self):
        catalog = FieldCatalog()
        loader = CountingLoader()
        await catalog.resolve("sprint", TEAM_SCOPE, loader)
        await catalog.resolve("sprint", COMPANY_SCOPE, loader)

        assert catalog.invalidate(TEAM_SCOPE) == 1
        assert catalog.invalidate(TEAM_SCOPE) == 0
        assert catalog.invalidate() == 1
        assert not catalog.is_cached(COMPANY_SCOPE)
