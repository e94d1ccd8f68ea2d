"""Data models for the pkgdeps catalog, graph and query results."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from pkgdeps.fmri import FMRI, Version


class DependencyType(enum.Enum):
    REQUIRE = "require"
    REQUIRE_ANY = "require-any"
    OPTIONAL = "optional"
    INCORPORATE = "incorporate"
    CONDITIONAL = "conditional"
    GROUP = "group"
    GROUP_ANY = "group-any"
    EXCLUDE = "exclude"
    ORIGIN = "origin"
    PARENT = "parent"

    @property
    def expandable(self) -> bool:
        """Whether edges of this type are followed by recursive queries."""
        return self in EXPANDABLE_TYPES

    @classmethod
    def parse(cls, value: str) -> DependencyType:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown dependency type: {value!r}") from None


EXPANDABLE_TYPES = frozenset({DependencyType.REQUIRE, DependencyType.REQUIRE_ANY})


class ResultFlag(enum.Enum):
    NONE = "none"
    ALREADY_EXPANDED = "already-expanded"
    DEPTH_TRUNCATED = "depth-truncated"


class Operation(enum.Enum):
    DEPENDS = "depends"
    DEPENDANTS = "dependants"
    NO_DEPENDANTS = "no-dependants"


@dataclass(frozen=True)
class DependencyEdge:
    """One declared dependency.

    ``target`` is the FMRI as written in the declaring package; its version,
    when present, is the edge's version bound.
    """
    source: FMRI
    target: FMRI
    dep_type: DependencyType

    @property
    def version_bound(self) -> Version | None:
        return self.target.version


@dataclass(frozen=True)
class PackageRecord:
    fmri: FMRI
    edges: tuple[DependencyEdge, ...] = ()


@dataclass(frozen=True)
class ResultRecord:
    """A single line of query output."""
    fmri: FMRI
    depth: int
    dep_type: DependencyType | None = None
    flag: ResultFlag = ResultFlag.NONE
    resolved: bool = True


@dataclass
class QueryResult:
    root: FMRI
    records: list[ResultRecord] = field(default_factory=list)


@dataclass(frozen=True)
class NameEntry:
    fmri: FMRI
    dep_type: DependencyType | None = None


@dataclass
class TypeFilter:
    """Include/exclude filter on dependency types. Include wins if both are set."""
    include: frozenset[DependencyType] = frozenset()
    exclude: frozenset[DependencyType] = frozenset()

    def allows(self, dep_type: DependencyType) -> bool:
        if self.include:
            return dep_type in self.include
        return dep_type not in self.exclude

    def restrict(self, base: frozenset[DependencyType]) -> frozenset[DependencyType]:
        """Narrow (or, for an include list, replace) a default type set."""
        if self.include:
            return frozenset(self.include)
        return frozenset(t for t in base if t not in self.exclude)


@dataclass
class QueryOptions:
    package: str | None = None
    exact: bool = False
    recurse: bool = False
    max_depth: int | None = None
    allow_repeats: bool = False
    include_types: list[DependencyType] = field(default_factory=list)
    exclude_types: list[DependencyType] = field(default_factory=list)
    names: bool = False
    types: bool = False
    latest: bool = False
    pattern: str | None = None

    @property
    def type_filter(self) -> TypeFilter:
        return TypeFilter(
            include=frozenset(self.include_types),
            exclude=frozenset(self.exclude_types),
        )


@dataclass
class CacheOptions:
    enabled: bool = True
    force: bool = False
    clear: bool = False
