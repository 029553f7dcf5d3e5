"""
Utility functions for the MCP Jira Cloud integration.
"""

from .env import get_env_float, get_env_int, is_env_extended_truthy
from .io import is_read_only_mode

__all__ = [
    "get_env_float",
    "get_env_int",
    "is_env_extended_truthy",
    "is_read_only_mode",
]
