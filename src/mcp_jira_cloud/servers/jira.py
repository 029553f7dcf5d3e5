"""Jira FastMCP server instance and tool definitions."""

import json
import logging
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from pydantic import Field

from mcp_jira_cloud.jira.projection import FilterPreset, project, project_many
from mcp_jira_cloud.models.jira.adf import to_document
from mcp_jira_cloud.servers.dependencies import get_jira_fetcher
from mcp_jira_cloud.utils.decorators import check_write_access, handle_tool_errors

logger = logging.getLogger("mcp-jira-cloud.servers.jira")

jira_mcp = FastMCP(
    name="Jira Cloud MCP Service",
    instructions=(
        "Provides tools for Jira Cloud. Custom fields such as story points are "
        "addressed by meaning and resolved per project."
    ),
)

FILTER_DESCRIPTION = (
    "Response size preset: 'minimal' (id, key, summary), 'basic' (+ status, "
    "issue type), 'standard' (+ priority, people, dates, parent, labels) or "
    "'detailed' (everything Jira returns). Defaults to 'standard'."
)


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _parse_json_object(value: str | dict | None, field_name: str) -> dict[str, Any]:
    """Parse an optional JSON object argument.

    Raises:
        ValueError: If the value is not a JSON object.
    """
    if value is None or value == "":
        return {}
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {field_name}: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"{field_name} must be a JSON object.")
    return parsed


def _split_keys(value: str | list[str] | None) -> list[str]:
    """Split a comma-separated string (or list) into trimmed, non-empty items."""
    if not value:
        return []
    items = value if isinstance(value, list) else value.split(",")
    return [item.strip() for item in items if item and item.strip()]


# --- Issues -----------------------------------------------------------------


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Issue", "readOnlyHint": True},
)
@handle_tool_errors
async def issue_get(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    filter: Annotated[
        str | None, Field(description=FILTER_DESCRIPTION, default=None)
    ] = None,
    expand: Annotated[
        str | None,
        Field(
            description="Optional Jira expand parameter (e.g., 'renderedFields,changelog')",
            default=None,
        ),
    ] = None,
) -> str:
    """Get a Jira issue, reduced to the fields of the chosen preset.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        filter: Response size preset.
        expand: Optional fields to expand.

    Returns:
        JSON string representing the projected issue.
    """
    preset = FilterPreset.parse(filter)
    jira = await get_jira_fetcher(ctx)
    issue = await jira.get_issue(issue_key, preset=preset, expand=expand)
    return _dumps(project(issue or {}, preset))


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Create Issue", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_create(
    ctx: Context,
    project_key: Annotated[str, Field(description="Project key (e.g., 'PROJ')")],
    summary: Annotated[str, Field(description="Summary (title) of the issue")],
    issue_type: Annotated[
        str,
        Field(description="Issue type name or ID (e.g., 'Task', 'Story', 'Bug', 'Epic')"),
    ],
    description: Annotated[
        str | None,
        Field(
            description=(
                "Issue description as plain text with light markdown "
                "(headings, lists, code fences, **bold**, `code`, links)"
            ),
            default=None,
        ),
    ] = None,
    priority: Annotated[
        str | None, Field(description="Priority name (e.g., 'High')", default=None)
    ] = None,
    parent_key: Annotated[
        str | None,
        Field(description="Parent issue or epic key (e.g., 'PROJ-1')", default=None),
    ] = None,
    labels: Annotated[
        str | None, Field(description="Comma-separated labels", default=None)
    ] = None,
    components: Annotated[
        str | None, Field(description="Comma-separated component names", default=None)
    ] = None,
    assignee: Annotated[
        str | None,
        Field(description="'me', 'unassigned' or an account ID", default=None),
    ] = None,
    story_points: Annotated[
        float | None,
        Field(
            description=(
                "Story point estimate. The field is looked up for this project and "
                "issue type."
            ),
            default=None,
        ),
    ] = None,
    additional_fields: Annotated[
        str | None,
        Field(
            description="JSON object of extra fields keyed by field ID",
            default=None,
        ),
    ] = None,
) -> str:
    """Create a new Jira issue.

    Args:
        ctx: The FastMCP context.
        project_key: The project key.
        summary: The issue summary.
        issue_type: The issue type.
        description: The issue description.
        priority: Priority name.
        parent_key: Parent issue key.
        labels: Comma-separated labels.
        components: Comma-separated component names.
        assignee: Assignee.
        story_points: Story point estimate.
        additional_fields: JSON object of extra fields.

    Returns:
        JSON string with the created issue key.
    """
    jira = await get_jira_fetcher(ctx)
    created = await jira.create_issue(
        project_key,
        summary,
        issue_type,
        description=description,
        priority=priority,
        parent_key=parent_key,
        labels=_split_keys(labels) or None,
        components=_split_keys(components) or None,
        assignee=assignee,
        story_points=story_points,
        additional_fields=_parse_json_object(additional_fields, "additional_fields"),
    )
    return _dumps(
        {
            "message": "Issue created successfully",
            "issue": {"id": created.get("id"), "key": created.get("key")},
        }
    )


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Bulk Create Issues", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_bulk_create(
    ctx: Context,
    issues: Annotated[
        str,
        Field(
            description=(
                "JSON array of issue objects. Each needs project_key, summary and "
                "issue_type, and may carry description, priority, parent_key, labels, "
                "components, assignee, story_points and additional_fields.\n"
                'Example: [{"project_key": "PROJ", "summary": "A", "issue_type": "Task"}]'
            )
        ),
    ],
) -> str:
    """Create several issues. Each one succeeds or fails on its own.

    Args:
        ctx: The FastMCP context.
        issues: JSON array of issue objects.

    Returns:
        JSON string with the outcome of every issue, in input order.
    """
    try:
        parsed = json.loads(issues)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in issues: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(i, dict) for i in parsed):
        raise ValueError("issues must be a JSON array of objects")
    if not parsed:
        raise ValueError("issues must not be empty")

    jira = await get_jira_fetcher(ctx)
    result = await jira.bulk_create_issues(parsed)
    return _dumps(result.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Edit Issue Details", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_edit_details(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    summary: Annotated[
        str | None, Field(description="New summary", default=None)
    ] = None,
    description: Annotated[
        str | None,
        Field(description="New description (plain text with light markdown)", default=None),
    ] = None,
    issue_type: Annotated[
        str | None, Field(description="New issue type name or ID", default=None)
    ] = None,
    priority: Annotated[
        str | None, Field(description="New priority name", default=None)
    ] = None,
    labels: Annotated[
        str | None,
        Field(description="Comma-separated labels replacing the current ones", default=None),
    ] = None,
    components: Annotated[
        str | None,
        Field(
            description="Comma-separated components replacing the current ones",
            default=None,
        ),
    ] = None,
    additional_fields: Annotated[
        str | None,
        Field(description="JSON object of extra fields keyed by field ID", default=None),
    ] = None,
) -> str:
    """Update informational fields of an issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        summary: New summary.
        description: New description.
        issue_type: New issue type.
        priority: New priority.
        labels: New labels.
        components: New components.
        additional_fields: JSON object of extra fields.

    Returns:
        JSON string listing the updated fields.
    """
    jira = await get_jira_fetcher(ctx)
    updated = await jira.edit_issue(
        issue_key,
        summary=summary,
        description=description,
        issue_type=issue_type,
        priority=priority,
        labels=_split_keys(labels) if labels is not None else None,
        components=_split_keys(components) if components is not None else None,
        additional_fields=_parse_json_object(additional_fields, "additional_fields"),
    )
    return _dumps(
        {"message": f"Issue {issue_key} updated", "updated_fields": updated}
    )


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Update Issue Status", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_update_status(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    status: Annotated[
        str,
        Field(
            description=(
                "Target status or transition name (e.g., 'In Progress', 'Done')"
            )
        ),
    ],
) -> str:
    """Move an issue to another workflow status.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        status: Target status or transition name.

    Returns:
        JSON string with the applied transition.
    """
    jira = await get_jira_fetcher(ctx)
    transition = await jira.transition_issue(issue_key, status)
    return _dumps(
        {
            "message": f"Issue {issue_key} transitioned to {transition['to'] or status}",
            "transition": transition,
        }
    )


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Assign Issue", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_assign(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    assignee: Annotated[
        str, Field(description="'me', 'unassigned' or an account ID")
    ],
) -> str:
    """Assign or unassign an issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        assignee: Assignee.

    Returns:
        JSON string with the resulting assignee account ID.
    """
    jira = await get_jira_fetcher(ctx)
    account_id = await jira.assign_issue(issue_key, assignee)
    return _dumps({"issue_key": issue_key, "assignee": account_id})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Set Story Points", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_set_story_points(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    story_points: Annotated[float, Field(description="Story point estimate", ge=0)],
) -> str:
    """Set the story point estimate of an issue.

    Works in company-managed and team-managed projects alike; the right
    field is looked up for the issue's project and type.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        story_points: Estimate.

    Returns:
        JSON string with the field that was written.
    """
    jira = await get_jira_fetcher(ctx)
    binding = await jira.set_story_points(issue_key, story_points)
    return _dumps(
        {
            "issue_key": issue_key,
            "story_points": story_points,
            "field": binding.to_simplified_dict(),
        }
    )


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Set Parent", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_set_parent(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    parent_key: Annotated[
        str | None,
        Field(
            description="Parent issue or epic key. Omit to remove the parent.",
            default=None,
        ),
    ] = None,
) -> str:
    """Set or clear the parent (epic) of an issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        parent_key: Parent issue key.

    Returns:
        JSON string with the field that was written.
    """
    jira = await get_jira_fetcher(ctx)
    result = await jira.set_parent(issue_key, parent_key)
    return _dumps({"issue_key": issue_key, **result})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Delete Issue", "destructiveHint": True},
)
@check_write_access
@handle_tool_errors
async def issue_delete(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    delete_subtasks: Annotated[
        bool, Field(description="Also delete the issue's subtasks", default=False)
    ] = False,
) -> str:
    """Delete an existing issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        delete_subtasks: Whether to delete subtasks too.

    Returns:
        JSON string indicating success.
    """
    jira = await get_jira_fetcher(ctx)
    await jira.delete_issue(issue_key, delete_subtasks=delete_subtasks)
    return _dumps({"message": f"Issue {issue_key} has been deleted successfully."})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Archive Issues", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_archive(
    ctx: Context,
    issue_keys: Annotated[
        str, Field(description="Comma-separated issue keys (e.g., 'PROJ-1,PROJ-2')")
    ],
) -> str:
    """Archive issues.

    Args:
        ctx: The FastMCP context.
        issue_keys: Comma-separated issue keys.

    Returns:
        JSON string with Jira's archive report.
    """
    keys = _split_keys(issue_keys)
    if not keys:
        raise ValueError("issue_keys must not be empty")
    jira = await get_jira_fetcher(ctx)
    result = await jira.archive_issues(keys)
    return _dumps({"archived": keys, "result": result})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Unarchive Issues", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_unarchive(
    ctx: Context,
    issue_keys: Annotated[
        str, Field(description="Comma-separated issue keys (e.g., 'PROJ-1,PROJ-2')")
    ],
) -> str:
    """Restore archived issues.

    Args:
        ctx: The FastMCP context.
        issue_keys: Comma-separated issue keys.

    Returns:
        JSON string with Jira's restore report.
    """
    keys = _split_keys(issue_keys)
    if not keys:
        raise ValueError("issue_keys must not be empty")
    jira = await get_jira_fetcher(ctx)
    result = await jira.unarchive_issues(keys)
    return _dumps({"unarchived": keys, "result": result})


# --- Comments, links, worklog ----------------------------------------------


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Add Comment", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_add_comment(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    comment: Annotated[
        str, Field(description="Comment text (plain text with light markdown)")
    ],
    visibility: Annotated[
        str | None,
        Field(
            description=(
                'Optional JSON visibility restriction, e.g. {"type":"group","value":"jira-users"}'
            ),
            default=None,
        ),
    ] = None,
) -> str:
    """Add a comment to an issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        comment: Comment text.
        visibility: Optional visibility restriction.

    Returns:
        JSON string with the created comment.
    """
    parsed_visibility = _parse_json_object(visibility, "visibility") or None
    if parsed_visibility is not None and not (
        parsed_visibility.get("type") and parsed_visibility.get("value")
    ):
        raise ValueError("visibility must contain 'type' and 'value'")
    jira = await get_jira_fetcher(ctx)
    result = await jira.add_comment(issue_key, comment, visibility=parsed_visibility)
    return _dumps(result)


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Comments", "readOnlyHint": True},
)
@handle_tool_errors
async def issue_get_comments(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    limit: Annotated[
        int, Field(description="Maximum number of comments (1-100)", default=20, ge=1, le=100)
    ] = 20,
) -> str:
    """Get the comments of an issue, newest first, as plain text.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        limit: Maximum number of comments.

    Returns:
        JSON string with the comments.
    """
    jira = await get_jira_fetcher(ctx)
    comments = await jira.get_issue_comments(issue_key, limit=limit)
    return _dumps({"issue_key": issue_key, "comments": comments})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Delete Comment", "destructiveHint": True},
)
@check_write_access
@handle_tool_errors
async def issue_delete_comment(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    comment_id: Annotated[str, Field(description="ID of the comment to delete")],
) -> str:
    """Delete a comment.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        comment_id: Comment ID.

    Returns:
        JSON string indicating success.
    """
    jira = await get_jira_fetcher(ctx)
    await jira.delete_comment(issue_key, comment_id)
    return _dumps({"message": f"Comment {comment_id} deleted from {issue_key}"})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Link Issues", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_link(
    ctx: Context,
    link_type: Annotated[
        str, Field(description="Link type name (e.g., 'Blocks', 'Relates', 'Duplicate')")
    ],
    inward_issue_key: Annotated[
        str, Field(description="Inward issue key (e.g., 'PROJ-1')")
    ],
    outward_issue_key: Annotated[
        str, Field(description="Outward issue key (e.g., 'PROJ-2')")
    ],
    comment: Annotated[
        str | None, Field(description="Optional comment for the link", default=None)
    ] = None,
) -> str:
    """Create a link between two issues.

    Args:
        ctx: The FastMCP context.
        link_type: Link type name.
        inward_issue_key: Inward issue key.
        outward_issue_key: Outward issue key.
        comment: Optional comment.

    Returns:
        JSON string describing the link.
    """
    jira = await get_jira_fetcher(ctx)
    result = await jira.create_issue_link(
        link_type, inward_issue_key, outward_issue_key, comment=comment
    )
    return _dumps(result)


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Delete Issue Link", "destructiveHint": True},
)
@check_write_access
@handle_tool_errors
async def issue_delete_link(
    ctx: Context,
    link_id: Annotated[str, Field(description="ID of the link to remove")],
) -> str:
    """Remove a link between two issues.

    Args:
        ctx: The FastMCP context.
        link_id: Link ID.

    Returns:
        JSON string indicating success.
    """
    jira = await get_jira_fetcher(ctx)
    await jira.remove_issue_link(link_id)
    return _dumps({"message": f"Link {link_id} removed"})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Log Work", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def issue_log_work(
    ctx: Context,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    time_spent: Annotated[
        str, Field(description="Time spent in Jira format (e.g., '1h 30m', '2d')")
    ],
    started: Annotated[
        str | None,
        Field(
            description="ISO 8601 start time (e.g., '2026-01-15T09:00:00+02:00'); defaults to now",
            default=None,
        ),
    ] = None,
    comment: Annotated[
        str | None, Field(description="Optional worklog comment", default=None)
    ] = None,
) -> str:
    """Log time spent on an issue.

    Args:
        ctx: The FastMCP context.
        issue_key: Jira issue key.
        time_spent: Duration.
        started: Start time.
        comment: Optional comment.

    Returns:
        JSON string with the created worklog.
    """
    jira = await get_jira_fetcher(ctx)
    worklog = await jira.add_worklog(
        issue_key, time_spent, started=started, comment=comment
    )
    return _dumps({"message": "Worklog added", "worklog": worklog})


# --- Search and fields ------------------------------------------------------


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Search Issues", "readOnlyHint": True},
)
@handle_tool_errors
async def search_issues(
    ctx: Context,
    text: Annotated[
        str | None, Field(description="Full-text search term", default=None)
    ] = None,
    status: Annotated[
        str | None, Field(description="Status name (e.g., 'In Progress')", default=None)
    ] = None,
    assignee: Annotated[
        str | None,
        Field(description="'me', 'unassigned' or an account ID", default=None),
    ] = None,
    jql: Annotated[
        str | None,
        Field(
            description=(
                "Raw JQL, combined with the other filters using AND. "
                "An ORDER BY clause is kept at the end."
            ),
            default=None,
        ),
    ] = None,
    limit: Annotated[
        int, Field(description="Maximum number of results (1-100)", default=20, ge=1, le=100)
    ] = 20,
    next_page_token: Annotated[
        str | None,
        Field(description="Token from a previous response to fetch the next page", default=None),
    ] = None,
    filter: Annotated[
        str | None, Field(description=FILTER_DESCRIPTION, default=None)
    ] = None,
) -> str:
    """Search issues by text, status, assignee and/or JQL.

    Args:
        ctx: The FastMCP context.
        text: Full-text search term.
        status: Status name.
        assignee: Assignee.
        jql: Raw JQL.
        limit: Maximum number of results.
        next_page_token: Pagination token.
        filter: Response size preset.

    Returns:
        JSON string with the JQL used, the projected issues and paging info.
    """
    preset = FilterPreset.parse(filter)
    jira = await get_jira_fetcher(ctx)
    result = await jira.search_issues(
        text=text,
        status=status,
        assignee=assignee,
        jql=jql,
        limit=limit,
        preset=preset,
        next_page_token=next_page_token,
    )
    result["issues"] = project_many(result["issues"], preset)
    return _dumps(result)


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "List Fields", "readOnlyHint": True},
)
@handle_tool_errors
async def fields_list(
    ctx: Context,
    field_type: Annotated[
        Literal["all", "system", "custom"],
        Field(description="Which fields to list", default="all"),
    ] = "all",
    keyword: Annotated[
        str | None,
        Field(description="Only fields whose name contains this text", default=None),
    ] = None,
) -> str:
    """List Jira fields with their IDs.

    Args:
        ctx: The FastMCP context.
        field_type: 'all', 'system' or 'custom'.
        keyword: Optional name filter.

    Returns:
        JSON string with the fields.
    """
    jira = await get_jira_fetcher(ctx)
    fields = await jira.list_fields(field_type)
    if keyword:
        wanted = keyword.strip().lower()
        fields = [f for f in fields if wanted in str(f.get("name", "")).lower()]
    return _dumps({"total": len(fields), "fields": fields})


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Resolve Field", "readOnlyHint": True},
)
@handle_tool_errors
async def field_resolve(
    ctx: Context,
    semantic_name: Annotated[
        str,
        Field(
            description=(
                "Field meaning (e.g., 'story_points', 'sprint', 'epic_link', "
                "'start_date', 'rank', 'flagged', 'team')"
            )
        ),
    ],
    project_key: Annotated[
        str | None, Field(description="Project key to resolve for", default=None)
    ] = None,
    issue_type: Annotated[
        str | None,
        Field(description="Issue type name or ID (needs project_key)", default=None),
    ] = None,
) -> str:
    """Show which Jira field a semantic name maps to in a project.

    Args:
        ctx: The FastMCP context.
        semantic_name: Semantic field name.
        project_key: Project key.
        issue_type: Issue type.

    Returns:
        JSON string with the field binding.
    """
    if issue_type and not project_key:
        raise ValueError("issue_type requires project_key")
    jira = await get_jira_fetcher(ctx)
    scope = await jira.field_scope(project_key, issue_type)
    binding = await jira.resolve_field(semantic_name, scope)
    return _dumps(binding.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Invalidate Field Cache", "readOnlyHint": True},
)
@handle_tool_errors
async def field_cache_invalidate(
    ctx: Context,
    project_key: Annotated[
        str | None,
        Field(description="Only drop entries of this project; all when omitted", default=None),
    ] = None,
) -> str:
    """Drop cached field bindings so they are looked up again.

    Args:
        ctx: The FastMCP context.
        project_key: Optional project key.

    Returns:
        JSON string with the number of dropped cache entries.
    """
    jira = await get_jira_fetcher(ctx)
    dropped = jira.invalidate_field_cache(project_key)
    return _dumps({"invalidated": dropped, "project_key": project_key})


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Convert Text to ADF", "readOnlyHint": True},
)
@handle_tool_errors
async def text_to_adf(
    ctx: Context,
    text: Annotated[str, Field(description="Plain text with light markdown")],
) -> str:
    """Show the Atlassian Document Format produced for a text.

    Args:
        ctx: The FastMCP context.
        text: Text to convert.

    Returns:
        JSON string with the ADF document.
    """
    return _dumps(to_document(text).to_adf())


# --- Boards and sprints -----------------------------------------------------


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Board Sprints", "readOnlyHint": True},
)
@handle_tool_errors
async def board_get_sprints(
    ctx: Context,
    board_id: Annotated[
        int | None, Field(description="Board ID", default=None)
    ] = None,
    board_name: Annotated[
        str | None, Field(description="Board name, used when board_id is omitted", default=None)
    ] = None,
    project_key: Annotated[
        str | None,
        Field(description="Project key, used when board_id and board_name are omitted", default=None),
    ] = None,
    state: Annotated[
        Literal["active", "future", "closed"] | None,
        Field(description="Sprint state; all states when omitted", default=None),
    ] = None,
    start_at: Annotated[
        int, Field(description="Index of the first sprint", default=0, ge=0)
    ] = 0,
    limit: Annotated[
        int, Field(description="Maximum number of sprints (1-50)", default=10, ge=1, le=50)
    ] = 10,
) -> str:
    """Get the sprints of a board.

    Args:
        ctx: The FastMCP context.
        board_id: Board ID.
        board_name: Board name.
        project_key: Project key.
        state: Sprint state filter.
        start_at: Pagination offset.
        limit: Maximum number of sprints.

    Returns:
        JSON string with the sprints.
    """
    jira = await get_jira_fetcher(ctx)
    resolved = await jira.find_board_id(board_id, board_name, project_key)
    sprints = await jira.get_board_sprints(resolved, state=state, start=start_at, limit=limit)
    return _dumps(
        {"board_id": resolved, "sprints": [s.to_simplified_dict() for s in sprints]}
    )


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Board Backlog", "readOnlyHint": True},
)
@handle_tool_errors
async def board_get_backlog(
    ctx: Context,
    board_id: Annotated[
        int | None, Field(description="Board ID", default=None)
    ] = None,
    board_name: Annotated[
        str | None, Field(description="Board name, used when board_id is omitted", default=None)
    ] = None,
    project_key: Annotated[
        str | None,
        Field(description="Project key, used when board_id and board_name are omitted", default=None),
    ] = None,
    limit: Annotated[
        int, Field(description="Maximum number of issues (1-100)", default=50, ge=1, le=100)
    ] = 50,
    filter: Annotated[
        str | None, Field(description=FILTER_DESCRIPTION, default="basic")
    ] = "basic",
) -> str:
    """Get the backlog issues of a board in rank order.

    Args:
        ctx: The FastMCP context.
        board_id: Board ID.
        board_name: Board name.
        project_key: Project key.
        limit: Maximum number of issues.
        filter: Response size preset.

    Returns:
        JSON string with the projected backlog issues.
    """
    preset = FilterPreset.parse(filter)
    jira = await get_jira_fetcher(ctx)
    resolved = await jira.find_board_id(board_id, board_name, project_key)
    issues = await jira.get_board_backlog(resolved, limit=limit, preset=preset)
    return _dumps({"board_id": resolved, "issues": project_many(issues, preset)})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Rank Issues", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def agile_rank_issues(
    ctx: Context,
    issue_keys: Annotated[
        str, Field(description="Comma-separated issue keys to move, in order")
    ],
    rank_after: Annotated[
        str | None, Field(description="Place the issues after this issue", default=None)
    ] = None,
    rank_before: Annotated[
        str | None, Field(description="Place the issues before this issue", default=None)
    ] = None,
) -> str:
    """Reorder issues on a board. Give exactly one of rank_after or rank_before.

    Args:
        ctx: The FastMCP context.
        issue_keys: Issues to move.
        rank_after: Anchor issue to rank after.
        rank_before: Anchor issue to rank before.

    Returns:
        JSON string indicating success.
    """
    keys = _split_keys(issue_keys)
    if not keys:
        raise ValueError("issue_keys must not be empty")
    jira = await get_jira_fetcher(ctx)
    result = await jira.rank_issues(keys, rank_after=rank_after, rank_before=rank_before)
    return _dumps({"ranked": keys, "result": result})


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Create Sprint", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def sprint_create(
    ctx: Context,
    board_id: Annotated[int, Field(description="Board ID")],
    name: Annotated[str, Field(description="Sprint name (at most 30 characters)")],
    start_date: Annotated[
        str | None, Field(description="Start date, ISO 8601", default=None)
    ] = None,
    end_date: Annotated[
        str | None, Field(description="End date, ISO 8601", default=None)
    ] = None,
    goal: Annotated[
        str | None, Field(description="Sprint goal", default=None)
    ] = None,
) -> str:
    """Create a future sprint on a board.

    Args:
        ctx: The FastMCP context.
        board_id: Board ID.
        name: Sprint name.
        start_date: Start date.
        end_date: End date.
        goal: Sprint goal.

    Returns:
        JSON string with the created sprint.
    """
    jira = await get_jira_fetcher(ctx)
    sprint = await jira.create_sprint(
        board_id, name, start_date=start_date, end_date=end_date, goal=goal
    )
    return _dumps(sprint.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Update Sprint", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def sprint_update(
    ctx: Context,
    sprint_id: Annotated[int, Field(description="Sprint ID")],
    name: Annotated[
        str | None, Field(description="New name (at most 30 characters)", default=None)
    ] = None,
    state: Annotated[
        Literal["future", "active", "closed"] | None,
        Field(description="New state", default=None),
    ] = None,
    start_date: Annotated[
        str | None, Field(description="New start date, ISO 8601", default=None)
    ] = None,
    end_date: Annotated[
        str | None, Field(description="New end date, ISO 8601", default=None)
    ] = None,
    goal: Annotated[
        str | None, Field(description="New goal", default=None)
    ] = None,
) -> str:
    """Update a sprint. Values not given keep their current value.

    Args:
        ctx: The FastMCP context.
        sprint_id: Sprint ID.
        name: New name.
        state: New state.
        start_date: New start date.
        end_date: New end date.
        goal: New goal.

    Returns:
        JSON string with the updated sprint.
    """
    jira = await get_jira_fetcher(ctx)
    sprint = await jira.update_sprint(
        sprint_id,
        name=name,
        state=state,
        start_date=start_date,
        end_date=end_date,
        goal=goal,
    )
    return _dumps(sprint.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Add Issues to Sprint", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def sprint_add_issues(
    ctx: Context,
    sprint_id: Annotated[int, Field(description="Sprint ID")],
    issue_keys: Annotated[
        str, Field(description="Comma-separated issue keys (e.g., 'PROJ-1,PROJ-2')")
    ],
) -> str:
    """Move issues into a sprint. Each issue succeeds or fails on its own.

    Args:
        ctx: The FastMCP context.
        sprint_id: Sprint ID.
        issue_keys: Issue keys.

    Returns:
        JSON string with the outcome per issue.
    """
    keys = _split_keys(issue_keys)
    if not keys:
        raise ValueError("issue_keys must not be empty")
    jira = await get_jira_fetcher(ctx)
    result = await jira.add_issues_to_sprint(sprint_id, keys)
    return _dumps(result.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Move Issues to Backlog", "destructiveHint": False},
)
@check_write_access
@handle_tool_errors
async def sprint_move_to_backlog(
    ctx: Context,
    issue_keys: Annotated[
        str, Field(description="Comma-separated issue keys (e.g., 'PROJ-1,PROJ-2')")
    ],
) -> str:
    """Move issues out of their sprint into the backlog.

    Args:
        ctx: The FastMCP context.
        issue_keys: Issue keys.

    Returns:
        JSON string with the outcome per issue.
    """
    keys = _split_keys(issue_keys)
    if not keys:
        raise ValueError("issue_keys must not be empty")
    jira = await get_jira_fetcher(ctx)
    result = await jira.move_issues_to_backlog(keys)
    return _dumps(result.to_simplified_dict())


@jira_mcp.tool(
    tags={"jira", "write"},
    annotations={"title": "Delete Sprint", "destructiveHint": True},
)
@check_write_access
@handle_tool_errors
async def sprint_delete(
    ctx: Context,
    sprint_id: Annotated[int, Field(description="Sprint ID")],
) -> str:
    """Delete a sprint. Its issues return to the backlog.

    Args:
        ctx: The FastMCP context.
        sprint_id: Sprint ID.

    Returns:
        JSON string indicating success.
    """
    jira = await get_jira_fetcher(ctx)
    await jira.delete_sprint(sprint_id)
    return _dumps({"message": f"Sprint {sprint_id} deleted"})


# --- Projects and users -----------------------------------------------------


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "List Projects", "readOnlyHint": True},
)
@handle_tool_errors
async def project_list(
    ctx: Context,
    query: Annotated[
        str | None,
        Field(description="Filter by project key or name", default=None),
    ] = None,
    limit: Annotated[
        int, Field(description="Maximum number of projects (1-100)", default=50, ge=1, le=100)
    ] = 50,
) -> str:
    """List the projects visible to the user.

    Args:
        ctx: The FastMCP context.
        query: Optional filter.
        limit: Maximum number of projects.

    Returns:
        JSON string with the projects.
    """
    jira = await get_jira_fetcher(ctx)
    projects = await jira.list_projects(query=query, limit=limit)
    return _dumps({"total": len(projects), "projects": projects})


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Project", "readOnlyHint": True},
)
@handle_tool_errors
async def project_get(
    ctx: Context,
    project_key: Annotated[str, Field(description="Project key (e.g., 'PROJ')")],
) -> str:
    """Get a project, including whether it is company- or team-managed.

    Args:
        ctx: The FastMCP context.
        project_key: Project key.

    Returns:
        JSON string with the project.
    """
    jira = await get_jira_fetcher(ctx)
    return _dumps(await jira.get_project(project_key))


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Current User", "readOnlyHint": True},
)
@handle_tool_errors
async def user_get_myself(ctx: Context) -> str:
    """Get the profile of the authenticated user.

    Args:
        ctx: The FastMCP context.

    Returns:
        JSON string with the user profile.
    """
    jira = await get_jira_fetcher(ctx)
    return _dumps(await jira.get_myself())


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Search Users", "readOnlyHint": True},
)
@handle_tool_errors
async def user_search(
    ctx: Context,
    query: Annotated[str, Field(description="Name or email to search for")],
    limit: Annotated[
        int, Field(description="Maximum number of users (1-50)", default=10, ge=1, le=50)
    ] = 10,
) -> str:
    """Find users, e.g. to get an account ID for assignment.

    Args:
        ctx: The FastMCP context.
        query: Search text.
        limit: Maximum number of users.

    Returns:
        JSON string with the matching users.
    """
    jira = await get_jira_fetcher(ctx)
    users = await jira.search_users(query, limit=limit)
    return _dumps({"total": len(users), "users": users})
