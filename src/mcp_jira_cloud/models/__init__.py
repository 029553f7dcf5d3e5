"""
Pydantic models for Jira API data.
"""

from .base import ApiModel
from .jira import (
    BulkItemResult,
    BulkOperationResult,
    DocumentNode,
    JiraBoard,
    JiraSprint,
)

__all__ = [
    "ApiModel",
    "BulkItemResult",
    "BulkOperationResult",
    "DocumentNode",
    "JiraBoard",
    "JiraSprint",
]
