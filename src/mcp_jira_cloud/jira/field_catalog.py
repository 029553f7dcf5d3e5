"""Semantic field resolution for Jira custom fields.

Jira assigns concepts such as "Story Points" to an arbitrary
``customfield_NNNNN`` per instance, and company-managed and team-managed
projects expose different fields for the same concept. The
:class:`FieldCatalog` resolves a semantic name once per scope
(project/issue type) and caches the resulting :class:`FieldBinding` list.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import anyio
from cachetools import TTLCache

from ..exceptions import FieldNotResolvableError

logger = logging.getLogger("mcp-jira-cloud.jira.field_catalog")


class BindingSource(str, Enum):
    """How a binding was obtained."""

    EXACT_MATCH = "exact_match"
    HEURISTIC_MATCH = "heuristic_match"
    USER_OVERRIDE = "user_override"


class ManagementStyle(str, Enum):
    """Jira project provisioning style."""

    COMPANY_MANAGED = "company-managed"
    TEAM_MANAGED = "team-managed"

    @classmethod
    def from_project(cls, project: dict[str, Any]) -> "ManagementStyle":
        """Derive the style from a ``/rest/api/3/project/{key}`` payload."""
        style = str(project.get("style") or "").lower()
        if style == "next-gen" or project.get("simplified") is True:
            return cls.TEAM_MANAGED
        return cls.COMPANY_MANAGED


@dataclass(frozen=True)
class FieldScope:
    """Cache key for field bindings. An empty scope means instance-wide."""

    project_key: str | None = None
    issue_type_id: str | None = None

    def __post_init__(self) -> None:
        if self.project_key:
            object.__setattr__(self, "project_key", self.project_key.strip().upper())
        if self.issue_type_id is not None:
            object.__setattr__(self, "issue_type_id", str(self.issue_type_id))


@dataclass(frozen=True)
class FieldAliases:
    """Known field names for one semantic concept.

    ``heuristics`` are substrings tried only when no alias matches exactly.
    """

    company_managed: tuple[str, ...]
    team_managed: tuple[str, ...]
    heuristics: tuple[str, ...] = ()

    def names_for(self, style: ManagementStyle | None) -> tuple[str, ...]:
        # Instance-wide lookups have no project; the global field definitions
        # are the company-managed ones.
        if style is ManagementStyle.TEAM_MANAGED:
            return self.team_managed
        return self.company_managed


SEMANTIC_FIELD_ALIASES: dict[str, FieldAliases] = {
    "story_points": FieldAliases(
        company_managed=("Story Points",),
        team_managed=("Story point estimate",),
        heuristics=("story point",),
    ),
    "sprint": FieldAliases(company_managed=("Sprint",), team_managed=("Sprint",)),
    "epic_link": FieldAliases(company_managed=("Epic Link",), team_managed=()),
    "epic_name": FieldAliases(company_managed=("Epic Name",), team_managed=()),
    "start_date": FieldAliases(
        company_managed=("Start date",), team_managed=("Start date",)
    ),
    "rank": FieldAliases(company_managed=("Rank",), team_managed=("Rank",)),
    "flagged": FieldAliases(company_managed=("Flagged",), team_managed=("Flagged",)),
    "team": FieldAliases(company_managed=("Team",), team_managed=("Team",)),
}


def normalize_semantic_name(name: str) -> str:
    """``"Story Points"`` -> ``"story_points"``."""
    return "_".join(name.strip().lower().replace("-", " ").split())


@dataclass(frozen=True)
class FieldBinding:
    """A semantic field resolved to a concrete field ID within a scope."""

    semantic_name: str
    resolved_id: str
    scope: FieldScope
    source: BindingSource
    field_name: str | None = None

    def to_simplified_dict(self) -> dict[str, Any]:
        return {
            "semantic_name": self.semantic_name,
            "field_id": self.resolved_id,
            "field_name": self.field_name,
            "project_key": self.scope.project_key,
            "issue_type_id": self.scope.issue_type_id,
            "source": self.source.value,
        }


@dataclass
class FieldMetadata:
    """Raw metadata fetched for one scope."""

    fields: list[dict[str, Any]]
    management_style: ManagementStyle | None = None
    applicable_field_ids: frozenset[str] | None = None


@dataclass
class CatalogEntry:
    """Cached resolution state for one scope."""

    scope: FieldScope
    metadata: FieldMetadata
    bindings: dict[str, FieldBinding] = field(default_factory=dict)
    unresolved: set[str] = field(default_factory=set)

    def ordered_bindings(self) -> list[FieldBinding]:
        return list(self.bindings.values())


@dataclass
class _Flight:
    done: anyio.Event = field(default_factory=anyio.Event)
    entry: CatalogEntry | None = None
    error: Exception | None = None


MetadataLoader = Callable[[FieldScope], Awaitable[FieldMetadata]]


class FieldCatalog:
    """Process-wide cache of semantic field bindings.

    Reads are lock-free. A cold scope is loaded by a single task; concurrent
    callers for the same scope wait for that load and share its result or its
    error. Loads for different scopes run independently.
    """

    def __init__(
        self,
        ttl: float = 600.0,
        maxsize: int = 256,
        aliases: dict[str, FieldAliases] | None = None,
        overrides: dict[str, str] | None = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._aliases = dict(SEMANTIC_FIELD_ALIASES if aliases is None else aliases)
        self._overrides = {
            normalize_semantic_name(name): field_id
            for name, field_id in (overrides or {}).items()
        }
        self._cache: TTLCache[FieldScope, CatalogEntry] = TTLCache(
            maxsize=maxsize, ttl=ttl, timer=timer
        )
        self._inflight: dict[FieldScope, _Flight] = {}

    def is_cached(self, scope: FieldScope) -> bool:
        return self._cache.get(scope) is not None

    async def resolve(
        self, semantic_name: str, scope: FieldScope, load: MetadataLoader
    ) -> FieldBinding:
        """Resolve a semantic field name within a scope.

        Args:
            semantic_name: Concept name, e.g. "Story Points" or "story_points"
            scope: Project/issue type the field will be used in
            load: Coroutine fetching the scope's metadata on a cache miss

        Returns:
            The binding for this scope

        Raises:
            FieldNotResolvableError: If no field matches in this scope
        """
        entry = await self._get_entry(scope, load)
        key = normalize_semantic_name(semantic_name)
        binding = self._lookup(entry, key)
        if binding is None:
            raise FieldNotResolvableError(
                semantic_name, scope.project_key, scope.issue_type_id
            )
        return binding

    async def bindings(
        self, scope: FieldScope, load: MetadataLoader
    ) -> list[FieldBinding]:
        """All bindings resolved for a scope, in alias-table order."""
        entry = await self._get_entry(scope, load)
        return entry.ordered_bindings()

    def invalidate(
        self, scope: FieldScope | None = None, *, project_key: str | None = None
    ) -> int:
        """Drop cached bindings.

        Args:
            scope: A single scope to drop
            project_key: Drop every scope of this project

        Returns:
            Number of cache entries removed. With no arguments the whole
            cache is cleared.
        """
        if scope is not None:
            removed = 1 if self._cache.pop(scope, None) is not None else 0
        elif project_key is not None:
            key = project_key.strip().upper()
            stale = [s for s in list(self._cache.keys()) if s.project_key == key]
            for stale_scope in stale:
                self._cache.pop(stale_scope, None)
            removed = len(stale)
        else:
            removed = len(self._cache)
            self._cache.clear()
        logger.info(f"Invalidated {removed} field catalog entr{'y' if removed == 1 else 'ies'}")
        return removed

    async def _get_entry(self, scope: FieldScope, load: MetadataLoader) -> CatalogEntry:
        while True:
            entry = self._cache.get(scope)
            if entry is not None:
                return entry
            flight = self._inflight.get(scope)
            if flight is None:
                break
            await flight.done.wait()
            if flight.error is not None:
                raise flight.error
            if flight.entry is not None:
                return flight.entry
            # The loading task was cancelled; take over the load.

        flight = _Flight()
        self._inflight[scope] = flight
        try:
            logger.info(
                f"Loading field metadata for project={scope.project_key or '*'} "
                f"issue_type={scope.issue_type_id or '*'}"
            )
            metadata = await load(scope)
            entry = self._build_entry(scope, metadata)
            self._cache[scope] = entry
            flight.entry = entry
            return entry
        except Exception as exc:
            flight.error = exc
            raise
        finally:
            self._inflight.pop(scope, None)
            flight.done.set()

    def _build_entry(self, scope: FieldScope, metadata: FieldMetadata) -> CatalogEntry:
        entry = CatalogEntry(scope=scope, metadata=metadata)
        for key in [*self._aliases, *self._overrides]:
            self._lookup(entry, key)
        logger.debug(
            f"Resolved {len(entry.bindings)} semantic fields for {scope}: "
            + ", ".join(f"{b.semantic_name}={b.resolved_id}" for b in entry.bindings.values())
        )
        return entry

    def _lookup(self, entry: CatalogEntry, key: str) -> FieldBinding | None:
        if key in entry.bindings:
            return entry.bindings[key]
        if key in entry.unresolved:
            return None
        binding = self._match(key, entry)
        if binding is None:
            entry.unresolved.add(key)
        else:
            entry.bindings[key] = binding
        return binding

    def _match(self, key: str, entry: CatalogEntry) -> FieldBinding | None:
        metadata = entry.metadata
        override = self._overrides.get(key)
        if override:
            known = next(
                (f for f in metadata.fields if f.get("id") == override), None
            )
            return FieldBinding(
                semantic_name=key,
                resolved_id=override,
                scope=entry.scope,
                source=BindingSource.USER_OVERRIDE,
                field_name=known.get("name") if known else None,
            )

        aliases = self._aliases.get(key)
        if aliases is not None:
            names = aliases.names_for(metadata.management_style)
            heuristics = aliases.heuristics
        else:
            names = (key,)
            heuristics = ()

        candidates = _candidate_fields(metadata)
        for alias in names:
            wanted = normalize_semantic_name(alias)
            for candidate in candidates:
                if normalize_semantic_name(candidate["name"]) == wanted:
                    return FieldBinding(
                        semantic_name=key,
                        resolved_id=candidate["id"],
                        scope=entry.scope,
                        source=BindingSource.EXACT_MATCH,
                        field_name=candidate["name"],
                    )

        for term in heuristics:
            needle = term.lower()
            for candidate in candidates:
                if needle in candidate["name"].lower():
                    logger.warning(
                        f"Field '{candidate['name']}' ({candidate['id']}) used as "
                        f"heuristic match for '{key}' in {entry.scope}"
                    )
                    return FieldBinding(
                        semantic_name=key,
                        resolved_id=candidate["id"],
                        scope=entry.scope,
                        source=BindingSource.HEURISTIC_MATCH,
                        field_name=candidate["name"],
                    )
        return None


def _candidate_fields(metadata: FieldMetadata) -> list[dict[str, Any]]:
    candidates: Iterable[dict[str, Any]] = (
        f for f in metadata.fields if f.get("id") and f.get("name")
    )
    if metadata.applicable_field_ids is not None:
        candidates = (f for f in candidates if f["id"] in metadata.applicable_field_ids)
    return list(candidates)
