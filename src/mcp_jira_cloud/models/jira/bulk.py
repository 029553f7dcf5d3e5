"""Result models for consolidated (multi-item) operations."""

from typing import Any, Literal

from pydantic import Field

from ..base import ApiModel


class BulkItemResult(ApiModel):
    """Outcome of one item of a consolidated operation."""

    index: int
    item: str
    status: Literal["succeeded", "failed"]
    result: Any = None
    error: str | None = None
    error_type: str | None = None
    retryable: bool | None = None


class BulkOperationResult(ApiModel):
    """Per-item outcome of a consolidated operation; never all-or-nothing."""

    operation: str
    items: list[BulkItemResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[BulkItemResult]:
        return [item for item in self.items if item.status == "succeeded"]

    @property
    def failed(self) -> list[BulkItemResult]:
        return [item for item in self.items if item.status == "failed"]

    def to_simplified_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total": len(self.items),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "items": [item.model_dump(exclude_none=True) for item in self.items],
        }
