"""Response field projection with named filter presets."""

from enum import Enum
from typing import Any


class FilterPreset(str, Enum):
    """Named response size levels, each a superset of the previous one."""

    MINIMAL = "minimal"
    BASIC = "basic"
    STANDARD = "standard"
    DETAILED = "detailed"

    @classmethod
    def parse(cls, value: "str | FilterPreset | None") -> "FilterPreset":
        if value is None or value == "":
            return cls.STANDARD
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(preset.value for preset in cls)
            raise ValueError(
                f"Unknown filter preset '{value}'. Valid presets: {valid}"
            ) from None


_MINIMAL = ("id", "key", "fields.summary")
_BASIC = _MINIMAL + ("fields.status.name", "fields.issuetype.name")
_STANDARD = _BASIC + (
    "fields.priority.name",
    "fields.assignee.displayName",
    "fields.assignee.accountId",
    "fields.reporter.displayName",
    "fields.created",
    "fields.updated",
    "fields.duedate",
    "fields.parent.key",
    "fields.labels",
)

# DETAILED is the identity projection and has no path list.
PRESET_PATHS: dict[FilterPreset, tuple[str, ...] | None] = {
    FilterPreset.MINIMAL: _MINIMAL,
    FilterPreset.BASIC: _BASIC,
    FilterPreset.STANDARD: _STANDARD,
    FilterPreset.DETAILED: None,
}


def preset_request_fields(preset: FilterPreset | str) -> list[str] | None:
    """Top-level Jira ``fields`` names to request for a preset.

    Returns:
        Field names in preset order, or None when every field is wanted
    """
    paths = PRESET_PATHS[FilterPreset.parse(preset)]
    if paths is None:
        return None
    names: list[str] = []
    for path in paths:
        head, _, rest = path.partition(".")
        if head == "fields" and rest:
            name = rest.split(".", 1)[0]
            if name not in names:
                names.append(name)
    return names


def _copy_path(source: Any, parts: list[str], target: dict[str, Any]) -> None:
    key = parts[0]
    if not isinstance(source, dict) or key not in source:
        return
    value = source[key]
    if len(parts) == 1:
        target[key] = value
        return

    rest = parts[1:]
    if isinstance(value, list):
        items = [item for item in value if isinstance(item, dict)]
        existing = target.get(key)
        if not isinstance(existing, list) or len(existing) != len(items):
            existing = [{} for _ in items]
        for item, projected in zip(items, existing):
            _copy_path(item, rest, projected)
        target[key] = existing
        return

    if isinstance(value, dict):
        child = target.get(key)
        if not isinstance(child, dict):
            child = {}
        _copy_path(value, rest, child)
        if child:
            target[key] = child
        return
    # Scalar or null where more path remained: omit.


def project(entity: dict[str, Any], preset: FilterPreset | str) -> dict[str, Any]:
    """Copy only the preset's fields from a Jira entity.

    Nesting is preserved and missing paths are skipped. Lists along a path are
    traversed element-wise. Keys appear in preset order.

    Args:
        entity: A raw Jira API object such as an issue
        preset: Preset or preset name

    Returns:
        The projected entity (the entity itself for ``detailed``)
    """
    paths = PRESET_PATHS[FilterPreset.parse(preset)]
    if paths is None:
        return entity
    result: dict[str, Any] = {}
    for path in paths:
        _copy_path(entity, path.split("."), result)
    return result


def project_many(
    entities: list[dict[str, Any]], preset: FilterPreset | str
) -> list[dict[str, Any]]:
    preset = FilterPreset.parse(preset)
    return [project(entity, preset) for entity in entities]
