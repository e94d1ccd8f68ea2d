"""Dependency graph builder: turns a catalog into a DependencyGraph."""

from __future__ import annotations

import logging
from collections import deque

from pkgdeps.analysis.graph_models import DependencyGraph, GraphEdge, frozen_map
from pkgdeps.catalog import Catalog
from pkgdeps.fmri import FMRI
from pkgdeps.models import EXPANDABLE_TYPES, DependencyEdge

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """Build a dependency graph from a package catalog."""

    def build(self, catalog: Catalog) -> DependencyGraph:
        nodes = dict(catalog.packages)
        name_index: dict[str, list[FMRI]] = {}
        for fmri in nodes:
            name_index.setdefault(fmri.name, []).append(fmri)
        for fmris in name_index.values():
            fmris.sort(key=FMRI.sort_key)

        forward: dict[FMRI, list[GraphEdge]] = {fmri: [] for fmri in nodes}
        reverse: dict[FMRI, list[GraphEdge]] = {fmri: [] for fmri in nodes}
        unresolved = 0

        for record in catalog.records():
            for edge in record.edges:
                target = self._resolve_target(edge, name_index)
                gedge = GraphEdge(edge=edge, resolved=target)
                forward[record.fmri].append(gedge)
                if target is None:
                    unresolved += 1
                else:
                    reverse[target].append(gedge)

        if unresolved:
            logger.debug("%d dependency targets did not resolve to a known package", unresolved)

        return DependencyGraph(
            nodes=frozen_map(nodes),
            forward=frozen_map({k: tuple(v) for k, v in forward.items()}),
            reverse=frozen_map({k: tuple(v) for k, v in reverse.items()}),
            name_index=frozen_map({k: tuple(v) for k, v in name_index.items()}),
        )

    @staticmethod
    def _resolve_target(edge: DependencyEdge, name_index: dict[str, list[FMRI]]) -> FMRI | None:
        """Pick the newest known package carrying the target's name (and publisher, if given)."""
        candidates = name_index.get(edge.target.name, [])
        if edge.target.publisher:
            candidates = [
                f for f in candidates
                if f.publisher is None or f.publisher == edge.target.publisher
            ]
        return candidates[-1] if candidates else None


def reachable(graph: DependencyGraph, roots: list[FMRI], max_depth: int | None) -> set[FMRI]:
    """Nodes within ``max_depth`` expandable hops of ``roots``, plus every direct
    target of those nodes. ``max_depth=0`` keeps the roots and their targets only.
    """
    seen = set(roots)
    queue = deque((root, 0) for root in roots)
    while queue:
        fmri, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for gedge in graph.outgoing_edges(fmri):
            if gedge.resolved is None or gedge.resolved in seen:
                continue
            if gedge.dep_type in EXPANDABLE_TYPES:
                seen.add(gedge.resolved)
                queue.append((gedge.resolved, depth + 1))

    keep = set(seen)
    for fmri in seen:
        keep.update(e.resolved for e in graph.outgoing_edges(fmri) if e.resolved is not None)
    return keep
