"""Base classes for API response models."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class ApiModel(BaseModel):
    """Base for models built from Jira API payloads."""

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_api_response(cls, data: dict[str, Any], **kwargs: Any) -> "ApiModel":
        raise NotImplementedError

    def to_simplified_dict(self) -> dict[str, Any]:
        """Convert to a simplified dictionary for tool responses."""
        return self.model_dump(exclude_none=True)
