"""Module for Jira issue operations."""

import logging
from typing import Any

from ..exceptions import FieldNotResolvableError, TerminalUpstreamError
from ..models.jira.adf import as_adf
from ..models.jira.bulk import BulkOperationResult
from .field_catalog import FieldBinding
from .fields import FieldsMixin
from .projection import FilterPreset, preset_request_fields
from .utils import run_consolidated

logger = logging.getLogger("mcp-jira-cloud.jira.issues")

# Status category keys used when neither a transition nor a target status
# carries the requested name.
STATUS_CATEGORY_FALLBACK = {
    "to do": "new",
    "in progress": "indeterminate",
    "in review": "indeterminate",
    "blocked": "indeterminate",
    "done": "done",
    "cancelled": "done",
}

REQUIRED_ISSUE_KEYS = ("project_key", "summary", "issue_type")
OPTIONAL_ISSUE_KEYS: dict[str, type | tuple[type, ...]] = {
    "description": (str, dict),
    "priority": str,
    "parent_key": str,
    "labels": list,
    "components": list,
    "assignee": str,
    "story_points": (int, float),
    "additional_fields": dict,
}


class IssuesMixin(FieldsMixin):
    """Mixin for Jira issue operations."""

    async def get_issue(
        self,
        issue_key: str,
        preset: FilterPreset | str = FilterPreset.STANDARD,
        expand: str | None = None,
    ) -> dict[str, Any]:
        """
        Get a Jira issue by key.

        Only the fields the preset keeps are requested from Jira.

        Args:
            issue_key: The issue key (e.g., PROJECT-123)
            preset: Filter preset used for the request
            expand: Optional Jira expand parameter

        Returns:
            Raw issue payload
        """
        params: dict[str, Any] = {}
        fields = preset_request_fields(preset)
        if fields is not None:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = expand
        return await self.request("GET", f"/rest/api/3/issue/{issue_key}", params=params)

    async def build_issue_fields(
        self,
        project_key: str,
        summary: str,
        issue_type: str,
        description: str | dict[str, Any] | None = None,
        priority: str | None = None,
        parent_key: str | None = None,
        labels: list[str] | None = None,
        components: list[str] | None = None,
        assignee: str | None = None,
        story_points: float | None = None,
        additional_fields: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Build the ``fields`` payload for issue creation.

        Raises:
            ValueError: If the issue type does not exist in the project
            FieldNotResolvableError: If story points are given but the project
                has no story points field
        """
        scope = await self.field_scope(project_key, issue_type)
        fields: dict[str, Any] = dict(additional_fields or {})
        fields["project"] = {"key": project_key}
        fields["issuetype"] = {"id": scope.issue_type_id}
        fields["summary"] = summary

        if description:
            fields["description"] = as_adf(description)
        if priority:
            fields["priority"] = {"name": priority}
        if parent_key:
            fields["parent"] = {"key": parent_key}
        if labels:
            fields["labels"] = labels
        if components:
            fields["components"] = [{"name": name} for name in components]
        if assignee:
            account_id = await self.resolve_account_id(assignee)
            if account_id:
                fields["assignee"] = {"accountId": account_id}
        if story_points is not None:
            binding = await self.resolve_field("story_points", scope)
            fields[binding.resolved_id] = story_points
        return fields

    async def create_issue(
        self, project_key: str, summary: str, issue_type: str, **kwargs: Any
    ) -> dict[str, Any]:
        """
        Create a new Jira issue.

        Args:
            project_key: Project key
            summary: Issue summary
            issue_type: Issue type name or ID
            **kwargs: Optional fields accepted by :meth:`build_issue_fields`

        Returns:
            Created issue reference (id, key, self)
        """
        fields = await self.build_issue_fields(project_key, summary, issue_type, **kwargs)
        created = await self.request("POST", "/rest/api/3/issue", json={"fields": fields})
        if not created or not created.get("key"):
            raise ValueError("No issue key returned from Jira API")
        logger.info(f"Created issue {created['key']} in project {project_key}")
        return created

    async def bulk_create_issues(
        self, issues: list[dict[str, Any]]
    ) -> BulkOperationResult:
        """
        Create several issues, each independently.

        Args:
            issues: Dicts with project_key, summary, issue_type and the
                optional fields of :meth:`create_issue`

        Returns:
            Per-issue outcome in input order
        """

        async def create_one(issue: dict[str, Any]) -> dict[str, Any]:
            issue = dict(issue)
            missing = [k for k in REQUIRED_ISSUE_KEYS if not issue.get(k)]
            if missing:
                raise ValueError(f"Missing required keys: {', '.join(missing)}")
            unknown = sorted(set(issue) - set(REQUIRED_ISSUE_KEYS) - set(OPTIONAL_ISSUE_KEYS))
            if unknown:
                raise ValueError(f"Unknown keys: {', '.join(unknown)}")
            mistyped = sorted(
                key
                for key, expected in OPTIONAL_ISSUE_KEYS.items()
                if issue.get(key) is not None
                and (
                    not isinstance(issue[key], expected)
                    or (key == "story_points" and isinstance(issue[key], bool))
                )
            )
            if mistyped:
                raise ValueError(f"Invalid value types for keys: {', '.join(mistyped)}")
            return await self.create_issue(
                issue.pop("project_key"), issue.pop("summary"), issue.pop("issue_type"), **issue
            )

        return await run_consolidated(
            "issue_bulk_create",
            issues,
            create_one,
            label=lambda issue: str(issue.get("summary", ""))[:80],
            max_concurrency=self.config.bulk_concurrency,
        )

    async def edit_issue(
        self,
        issue_key: str,
        summary: str | None = None,
        description: str | dict[str, Any] | None = None,
        issue_type: str | None = None,
        priority: str | None = None,
        labels: list[str] | None = None,
        components: list[str] | None = None,
        additional_fields: dict[str, Any] | None = None,
    ) -> list[str]:
        """
        Update informational fields of an existing issue.

        Returns:
            Names of the fields sent to Jira

        Raises:
            ValueError: If nothing was given to update
        """
        fields: dict[str, Any] = dict(additional_fields or {})
        if summary is not None:
            fields["summary"] = summary
        if description is not None:
            fields["description"] = as_adf(description)
        if issue_type:
            scope = await self.get_issue_scope(issue_key)
            fields["issuetype"] = {
                "id": await self.get_issue_type_id(scope.project_key or "", issue_type)
            }
        if priority:
            fields["priority"] = {"name": priority}
        if labels is not None:
            fields["labels"] = labels
        if components is not None:
            fields["components"] = [{"name": name} for name in components]
        if not fields:
            raise ValueError("No fields to update")

        await self.request("PUT", f"/rest/api/3/issue/{issue_key}", json={"fields": fields})
        return list(fields)

    async def get_transitions(self, issue_key: str) -> list[dict[str, Any]]:
        response = await self.request("GET", f"/rest/api/3/issue/{issue_key}/transitions")
        return (response or {}).get("transitions", [])

    def _pick_transition(
        self, transitions: list[dict[str, Any]], status: str
    ) -> dict[str, Any] | None:
        wanted = status.strip().lower()
        for transition in transitions:
            if str(transition.get("name", "")).lower() == wanted:
                return transition
        for transition in transitions:
            if str((transition.get("to") or {}).get("name", "")).lower() == wanted:
                return transition
        category = STATUS_CATEGORY_FALLBACK.get(wanted)
        if category:
            for transition in transitions:
                to_category = (transition.get("to") or {}).get("statusCategory") or {}
                if str(to_category.get("key", "")).lower() == category:
                    return transition
        return None

    async def transition_issue(self, issue_key: str, status: str) -> dict[str, Any]:
        """
        Move an issue to a workflow status.

        The transition is matched by its own name, then by its target status
        name, then by the target status category.

        Returns:
            The transition that was applied

        Raises:
            ValueError: If no transition leads to the requested status
        """
        transitions = await self.get_transitions(issue_key)
        transition = self._pick_transition(transitions, status)
        if transition is None:
            available = ", ".join(
                f"{t.get('name')} -> {(t.get('to') or {}).get('name')}" for t in transitions
            )
            raise ValueError(
                f"Transition to '{status}' not found for issue {issue_key}. "
                f"Available: {available or 'none'}"
            )
        await self.request(
            "POST",
            f"/rest/api/3/issue/{issue_key}/transitions",
            json={"transition": {"id": transition["id"]}},
        )
        return {
            "id": transition["id"],
            "name": transition.get("name"),
            "to": (transition.get("to") or {}).get("name"),
        }

    async def resolve_account_id(self, assignee: str) -> str | None:
        """``me`` -> own account ID, ``unassigned`` -> None, anything else as-is."""
        value = assignee.strip()
        if value.lower() == "me":
            return await self.get_current_user_account_id()
        if value.lower() in ("unassigned", "none", ""):
            return None
        return value

    async def assign_issue(self, issue_key: str, assignee: str) -> str | None:
        account_id = await self.resolve_account_id(assignee)
        await self.request(
            "PUT",
            f"/rest/api/3/issue/{issue_key}/assignee",
            json={"accountId": account_id},
        )
        return account_id

    async def set_story_points(self, issue_key: str, story_points: float) -> FieldBinding:
        """
        Set the story point estimate of an issue.

        The field is resolved for the issue's own project and issue type, so
        team-managed projects get "Story point estimate" and company-managed
        ones "Story Points".

        Returns:
            The binding that was written
        """
        scope = await self.get_issue_scope(issue_key)
        binding = await self.resolve_field("story_points", scope)
        try:
            await self.request(
                "PUT",
                f"/rest/api/3/issue/{issue_key}",
                json={"fields": {binding.resolved_id: story_points}},
            )
        except TerminalUpstreamError as e:
            if e.status_code == 400:
                # The binding may be stale (field removed from the screen).
                self.field_catalog.invalidate(scope)
            raise
        return binding

    async def set_parent(self, issue_key: str, parent_key: str | None) -> dict[str, Any]:
        """
        Set or clear the parent (epic) of an issue.

        Falls back to the legacy "Epic Link" field when Jira rejects ``parent``.

        Returns:
            Which field was written
        """
        value = {"key": parent_key} if parent_key else None
        try:
            await self.request(
                "PUT", f"/rest/api/3/issue/{issue_key}", json={"fields": {"parent": value}}
            )
            return {"field": "parent", "parent": parent_key}
        except TerminalUpstreamError as e:
            if e.status_code != 400:
                raise
            try:
                binding = await self.resolve_field(
                    "epic_link", await self.get_issue_scope(issue_key)
                )
            except FieldNotResolvableError:
                raise e from None
            logger.info(f"Retrying parent update of {issue_key} via {binding.resolved_id}")
            await self.request(
                "PUT",
                f"/rest/api/3/issue/{issue_key}",
                json={"fields": {binding.resolved_id: parent_key or None}},
            )
            return {"field": binding.resolved_id, "parent": parent_key, "legacy": True}

    async def delete_issue(self, issue_key: str, delete_subtasks: bool = False) -> None:
        params = {"deleteSubtasks": "true"} if delete_subtasks else None
        await self.request("DELETE", f"/rest/api/3/issue/{issue_key}", params=params)
        logger.info(f"Deleted issue {issue_key}")

    async def archive_issues(self, issue_keys: list[str]) -> Any:
        return await self.request(
            "PUT", "/rest/api/3/issue/archive", json={"issueIdsOrKeys": issue_keys}
        )

    async def unarchive_issues(self, issue_keys: list[str]) -> Any:
        return await self.request(
            "PUT", "/rest/api/3/issue/archive/restore", json={"issueIdsOrKeys": issue_keys}
        )
