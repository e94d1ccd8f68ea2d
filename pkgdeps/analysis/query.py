"""Query engine: depends, dependants and no-dependants over a DependencyGraph."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Callable

from pkgdeps.analysis.graph_models import DependencyGraph, GraphEdge
from pkgdeps.analysis.ringfence import ring_fence
from pkgdeps.errors import MalformedRecord, PackageNotFound, UnsupportedOption
from pkgdeps.fmri import FMRI
from pkgdeps.models import (
    EXPANDABLE_TYPES,
    DependencyType,
    NameEntry,
    Operation,
    QueryOptions,
    QueryResult,
    ResultFlag,
    ResultRecord,
    TypeFilter,
)

logger = logging.getLogger(__name__)


@dataclass
class LeafReport:
    """Result of a no-dependants query."""
    leaves: list[FMRI] = field(default_factory=list)
    ring_fenced: list[FMRI] = field(default_factory=list)

    def all(self) -> list[FMRI]:
        return self.leaves + self.ring_fenced


def validate_options(operation: Operation, opts: QueryOptions) -> None:
    """Reject option combinations before any graph work happens."""
    if opts.latest:
        if operation is not Operation.DEPENDS:
            raise UnsupportedOption(f"--latest is only supported by depends, not {operation.value}")
        if not opts.package:
            raise UnsupportedOption("--latest requires a concrete package")
    if operation in (Operation.DEPENDS, Operation.DEPENDANTS) and not opts.package:
        raise UnsupportedOption(f"{operation.value} requires a package")
    if operation is Operation.NO_DEPENDANTS and opts.package:
        raise UnsupportedOption("no-dependants does not take a package; use a name pattern")
    if opts.max_depth is not None:
        if not opts.recurse:
            raise UnsupportedOption("a maximum depth only applies to recursive queries")
        if opts.max_depth < 1:
            raise UnsupportedOption(f"maximum depth must be at least 1, got {opts.max_depth}")


def resolve_roots(graph: DependencyGraph, package: str, exact: bool = False) -> list[FMRI]:
    try:
        query = FMRI.parse(package)
    except MalformedRecord as e:
        raise PackageNotFound(package) from e
    roots = graph.resolve(query, exact=exact)
    if not roots:
        raise PackageNotFound(package)
    return roots


# (record fmri, edge) for one step away from a node
Step = tuple[FMRI, GraphEdge]


def _forward_steps(graph: DependencyGraph, fmri: FMRI, type_filter: TypeFilter) -> list[Step]:
    return [(e.target, e) for e in graph.outgoing_edges(fmri, type_filter)]


def _reverse_steps(graph: DependencyGraph, fmri: FMRI, type_filter: TypeFilter) -> list[Step]:
    return [(e.source, e) for e in graph.incoming_edges(fmri, type_filter)]


def _step_key(step: Step) -> tuple:
    fmri, edge = step
    return (fmri.sort_key(), edge.dep_type.value)


class _Traversal:
    """Depth-first walk from one root, emitting records in pre-order.

    Each stack entry is one edge to report. An edge is expanded only if its
    type is require/require-any, its other end is a known package, and
    neither repeat suppression nor the depth cap stops it. Markers only go on
    records whose package has children of its own to hide.
    """

    def __init__(self, graph: DependencyGraph, opts: QueryOptions,
                 steps: Callable[[DependencyGraph, FMRI, TypeFilter], list[Step]],
                 reverse: bool):
        self.graph = graph
        self.opts = opts
        self.steps = steps
        self.reverse = reverse
        self.type_filter = opts.type_filter
        self.expanded: set[FMRI] = set()

    def _children(self, fmri: FMRI) -> list[Step]:
        return sorted(self.steps(self.graph, fmri, self.type_filter), key=_step_key)

    def _has_children(self, fmri: FMRI) -> bool:
        return bool(self.steps(self.graph, fmri, self.type_filter))

    def _push(self, stack: list, fmri: FMRI, depth: int, path: tuple[FMRI, ...]) -> None:
        for step in reversed(self._children(fmri)):
            stack.append((step, depth, path))

    def run(self, root: FMRI) -> QueryResult:
        result = QueryResult(root=root)
        self.expanded.add(root)
        stack: list[tuple[Step, int, tuple[FMRI, ...]]] = []
        self._push(stack, root, 1, (root,))

        while stack:
            (fmri, edge), depth, path = stack.pop()
            resolved = self.reverse or edge.resolved is not None
            flag = self._classify(fmri, edge.dep_type, depth, path, resolved)
            result.records.append(ResultRecord(
                fmri=fmri,
                depth=depth,
                dep_type=edge.dep_type,
                flag=flag,
                resolved=resolved,
            ))
            if flag is ResultFlag.NONE and self._should_expand(edge.dep_type, resolved):
                self.expanded.add(fmri)
                self._push(stack, fmri, depth + 1, path + (fmri,))

        logger.debug("%s: %d records, %d nodes expanded", root, len(result.records), len(self.expanded))
        return result

    def _should_expand(self, dep_type: DependencyType, resolved: bool) -> bool:
        return self.opts.recurse and resolved and dep_type.expandable

    def _classify(self, fmri: FMRI, dep_type: DependencyType, depth: int,
                  path: tuple[FMRI, ...], resolved: bool) -> ResultFlag:
        if not self._should_expand(dep_type, resolved):
            return ResultFlag.NONE
        # A repeat with nothing below it hides nothing, so it stays unmarked.
        if not self._has_children(fmri):
            return ResultFlag.NONE
        if fmri in path or (not self.opts.allow_repeats and fmri in self.expanded):
            return ResultFlag.ALREADY_EXPANDED
        if self.opts.max_depth is not None and depth >= self.opts.max_depth:
            return ResultFlag.DEPTH_TRUNCATED
        return ResultFlag.NONE


def depends(graph: DependencyGraph, opts: QueryOptions) -> list[QueryResult]:
    """What the package(s) matching ``opts.package`` depend on."""
    validate_options(Operation.DEPENDS, opts)
    roots = resolve_roots(graph, opts.package, opts.exact)
    return [_Traversal(graph, opts, _forward_steps, reverse=False).run(r) for r in roots]


def dependants(graph: DependencyGraph, opts: QueryOptions) -> list[QueryResult]:
    """What depends on the package(s) matching ``opts.package``."""
    validate_options(Operation.DEPENDANTS, opts)
    roots = resolve_roots(graph, opts.package, opts.exact)
    return [_Traversal(graph, opts, _reverse_steps, reverse=True).run(r) for r in roots]


def no_dependants(graph: DependencyGraph, opts: QueryOptions) -> LeafReport:
    """Packages nothing depends on, plus (with ``recurse``) what they ring-fence.

    The type filter chooses which edge types count as "depending on": by
    default require and require-any. ``opts.pattern`` narrows the leaves by
    package name before ring-fencing.
    """
    validate_options(Operation.NO_DEPENDANTS, opts)
    types = opts.type_filter.restrict(EXPANDABLE_TYPES)
    leaves = graph.leaves(types)
    if opts.pattern:
        leaves = {f for f in leaves if fnmatch.fnmatch(f.name, opts.pattern)}

    report = LeafReport(leaves=sorted(leaves, key=FMRI.sort_key))
    if opts.recurse:
        report.ring_fenced = sorted(ring_fence(graph, leaves, types), key=FMRI.sort_key)
    return report


def names_only(results: list[QueryResult], with_types: bool = False) -> list[NameEntry]:
    """Flatten traversal results into sorted, de-duplicated names."""
    entries = {
        NameEntry(fmri=rec.fmri, dep_type=rec.dep_type if with_types else None)
        for result in results
        for rec in result.records
    }
    return sorted(
        entries,
        key=lambda e: (e.fmri.sort_key(), e.dep_type.value if e.dep_type else ""),
    )
