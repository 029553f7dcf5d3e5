"""Utility functions for Jira operations."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import anyio

from ..exceptions import MCPJiraError, classify_error
from ..models.jira.bulk import BulkItemResult, BulkOperationResult

logger = logging.getLogger("mcp-jira-cloud.jira.utils")

T = TypeVar("T")


async def run_consolidated(
    operation: str,
    items: Sequence[T],
    action: Callable[[T], Awaitable[Any]],
    *,
    label: Callable[[T], str] = str,
    max_concurrency: int = 4,
) -> BulkOperationResult:
    """
    Run one action per item with bounded concurrency.

    Each item succeeds or fails on its own; a failure is recorded with its
    error class and never aborts the other items. Results keep input order.

    Args:
        operation: Name reported in the result
        items: Items to process
        action: Coroutine function applied to each item
        label: Short description of an item for the result
        max_concurrency: Maximum number of items in flight

    Returns:
        Per-item outcome
    """
    results: list[BulkItemResult | None] = [None] * len(items)
    limiter = anyio.CapacityLimiter(max(1, max_concurrency))

    async def run_one(index: int, item: T) -> None:
        async with limiter:
            try:
                value = await action(item)
            except Exception as e:
                error_type, retryable = classify_error(e)
                if isinstance(e, (MCPJiraError, ValueError)):
                    logger.warning(f"{operation} item {index} ({label(item)}) failed: {e}")
                else:
                    logger.exception(
                        f"{operation} item {index} ({label(item)}) failed unexpectedly: {e}"
                    )
                results[index] = BulkItemResult(
                    index=index,
                    item=label(item),
                    status="failed",
                    error=str(e),
                    error_type=error_type,
                    retryable=retryable,
                )
            else:
                results[index] = BulkItemResult(
                    index=index, item=label(item), status="succeeded", result=value
                )

    async with anyio.create_task_group() as tg:
        for index, item in enumerate(items):
            tg.start_soon(run_one, index, item)

    outcome = BulkOperationResult(
        operation=operation, items=[r for r in results if r is not None]
    )
    logger.info(
        f"{operation}: {len(outcome.succeeded)} succeeded, {len(outcome.failed)} failed"
    )
    return outcome


def escape_jql_string(value: str) -> str:
    """
    Escapes characters reserved within JQL string literals ('\\', '"')
    and encloses the result in double quotes.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
