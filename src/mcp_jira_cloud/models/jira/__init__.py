"""
Jira data models and converters.
"""

from .adf import DocumentNode, Mark, as_adf, normalize_text, to_document, to_text
from .bulk import BulkItemResult, BulkOperationResult
from .sprint import JiraBoard, JiraSprint

__all__ = [
    "BulkItemResult",
    "BulkOperationResult",
    "DocumentNode",
    "JiraBoard",
    "JiraSprint",
    "Mark",
    "as_adf",
    "normalize_text",
    "to_document",
    "to_text",
]
