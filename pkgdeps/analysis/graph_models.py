"""Data models for the dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from pkgdeps.fmri import FMRI
from pkgdeps.models import EXPANDABLE_TYPES, DependencyEdge, DependencyType, PackageRecord, TypeFilter


@dataclass(frozen=True)
class GraphEdge:
    edge: DependencyEdge
    resolved: FMRI | None  # None when the target names no known package

    @property
    def source(self) -> FMRI:
        return self.edge.source

    @property
    def dep_type(self) -> DependencyType:
        return self.edge.dep_type

    @property
    def target(self) -> FMRI:
        """The node this edge points at, or the declared FMRI if unresolved."""
        return self.resolved or self.edge.target


def frozen_map(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class DependencyGraph:
    """Read-only adjacency over a catalog. Edges run from dependent to dependency."""
    nodes: Mapping[FMRI, PackageRecord] = field(default_factory=lambda: frozen_map({}))
    forward: Mapping[FMRI, tuple[GraphEdge, ...]] = field(default_factory=lambda: frozen_map({}))
    reverse: Mapping[FMRI, tuple[GraphEdge, ...]] = field(default_factory=lambda: frozen_map({}))
    name_index: Mapping[str, tuple[FMRI, ...]] = field(default_factory=lambda: frozen_map({}))

    def resolve(self, query: FMRI | str, exact: bool = False) -> list[FMRI]:
        """Return the known FMRIs selected by ``query``, ordered by name and version."""
        if isinstance(query, str):
            query = FMRI.parse(query)
        candidates = self.name_index.get(query.name, ())
        return sorted(
            (f for f in candidates if f.matches(query, exact=exact)),
            key=FMRI.sort_key,
        )

    def outgoing_edges(self, fmri: FMRI, type_filter: TypeFilter | None = None) -> list[GraphEdge]:
        return _filtered(self.forward.get(fmri, ()), type_filter)

    def incoming_edges(self, fmri: FMRI, type_filter: TypeFilter | None = None) -> list[GraphEdge]:
        return _filtered(self.reverse.get(fmri, ()), type_filter)

    def dependants_of(self, fmri: FMRI, types: Iterable[DependencyType] = EXPANDABLE_TYPES) -> set[FMRI]:
        types = frozenset(types)
        return {e.source for e in self.reverse.get(fmri, ()) if e.dep_type in types}

    def leaves(self, types: Iterable[DependencyType] = EXPANDABLE_TYPES) -> set[FMRI]:
        """Nodes that no edge of the given types points at."""
        types = frozenset(types)
        return {
            fmri for fmri in self.nodes
            if not any(e.dep_type in types for e in self.reverse.get(fmri, ()))
        }


def _filtered(edges: Iterable[GraphEdge], type_filter: TypeFilter | None) -> list[GraphEdge]:
    if type_filter is None:
        return list(edges)
    return [e for e in edges if type_filter.allows(e.dep_type)]
