"""Jira Cloud API module for mcp_jira_cloud.

This module provides various Jira API client implementations.
"""

from .client import JiraClient
from .comments import CommentsMixin
from .config import JiraConfig
from .field_catalog import FieldBinding, FieldCatalog, FieldScope
from .fields import FieldsMixin
from .issues import IssuesMixin
from .links import LinksMixin
from .projects import ProjectsMixin
from .search import SearchMixin
from .sprints import SprintsMixin
from .users import UsersMixin
from .worklog import WorklogMixin


class JiraFetcher(
    IssuesMixin,
    CommentsMixin,
    LinksMixin,
    WorklogMixin,
    SearchMixin,
    SprintsMixin,
    ProjectsMixin,
    UsersMixin,
):
    """
    The main Jira client class providing access to all Jira operations.

    This class inherits from multiple mixins that provide specific functionality:
    - IssuesMixin (with FieldsMixin): Issue and semantic field operations
    - CommentsMixin, LinksMixin, WorklogMixin: Issue activity
    - SearchMixin: JQL search
    - SprintsMixin: Boards, backlog and sprints
    - ProjectsMixin, UsersMixin: Projects and users
    """

    pass


__all__ = [
    "FieldBinding",
    "FieldCatalog",
    "FieldScope",
    "FieldsMixin",
    "JiraClient",
    "JiraConfig",
    "JiraFetcher",
]
