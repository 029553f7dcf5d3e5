"""Exception hierarchy for MCP Jira Cloud."""

from typing import Any


class MCPJiraError(Exception):
    """Base exception for MCP Jira Cloud errors."""

    pass


class FieldNotResolvableError(MCPJiraError):
    """Raised when a semantic field has no binding in the requested scope.

    Callers surface this as "unsupported field for this project"; it is never
    silently ignored.
    """

    def __init__(
        self,
        semantic_name: str,
        project_key: str | None = None,
        issue_type_id: str | None = None,
    ) -> None:
        self.semantic_name = semantic_name
        self.project_key = project_key
        self.issue_type_id = issue_type_id
        where = f"project '{project_key}'" if project_key else "this Jira instance"
        if issue_type_id:
            where += f" (issue type {issue_type_id})"
        super().__init__(f"Field '{semantic_name}' is not supported on {where}")


class ConversionAmbiguousError(MCPJiraError):
    """Raised when text cannot be mapped unambiguously to a document node."""

    pass


class UpstreamError(MCPJiraError):
    """Base class for failures reported by (or on the way to) the Jira API."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body


class TransientUpstreamError(UpstreamError):
    """Rate limiting, 5xx or connection failure that outlived its retries."""

    def __init__(
        self, message: str, *, retry_after: float | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class TerminalUpstreamError(UpstreamError):
    """The request was rejected (4xx other than 429) or could not be sent at all."""

    pass


class JiraAuthenticationError(TerminalUpstreamError):
    """Raised when Jira API authentication fails (401/403)."""

    pass


def classify_error(error: Exception) -> tuple[str, bool]:
    """Map an exception to an ``(error_type, retryable)`` pair for tool output."""
    if isinstance(error, FieldNotResolvableError):
        return "unsupported_field", False
    if isinstance(error, TransientUpstreamError):
        return "transient", True
    if isinstance(error, UpstreamError):
        return "terminal", False
    if isinstance(error, ValueError):
        return "invalid_input", False
    return "terminal", False
