"""Package catalog: normalized package records built from a provider's feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pkgdeps.errors import MalformedRecord
from pkgdeps.fmri import FMRI
from pkgdeps.models import DependencyEdge, DependencyType, PackageRecord
from pkgdeps.sources import RawDependency, RawPackage

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    packages: dict[FMRI, PackageRecord] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw_packages: list[RawPackage]) -> Catalog:
        """Normalize raw records.

        A record whose own FMRI is malformed aborts the load with
        MalformedRecord. Problems confined to a single dependency are logged,
        kept on ``warnings`` and the dependency is dropped or, for a bad
        version bound, kept without the bound.
        """
        catalog = cls()
        for raw in raw_packages:
            try:
                fmri = FMRI.parse(raw.fmri)
            except MalformedRecord as e:
                raise MalformedRecord(f"Package record has a malformed FMRI: {e}") from e
            if fmri in catalog.packages:
                catalog._warn(f"Duplicate package record for {fmri}, keeping the first")
                continue
            edges: list[DependencyEdge] = []
            for dep in raw.dependencies:
                edges.extend(catalog._parse_dependency(fmri, dep))
            catalog.packages[fmri] = PackageRecord(fmri=fmri, edges=tuple(edges))
        logger.debug("Catalog built with %d packages", len(catalog.packages))
        return catalog

    def _parse_dependency(self, source: FMRI, dep: RawDependency) -> list[DependencyEdge]:
        try:
            dep_type = DependencyType.parse(dep.type)
        except ValueError as e:
            self._warn(f"{source}: skipping dependency: {e}")
            return []

        edges = []
        for target_text in dep.targets:
            target = self._parse_target(source, target_text)
            if target is not None:
                edges.append(DependencyEdge(source=source, target=target, dep_type=dep_type))
        return edges

    def _parse_target(self, source: FMRI, text: str) -> FMRI | None:
        try:
            return FMRI.parse(text)
        except MalformedRecord:
            pass
        name, sep, _ = text.partition("@")
        if sep:
            try:
                target = FMRI.parse(name)
            except MalformedRecord:
                pass
            else:
                self._warn(f"{source}: unparsable version bound in {text!r}, ignoring the bound")
                return target
        self._warn(f"{source}: skipping dependency on malformed FMRI {text!r}")
        return None

    def _warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.warnings.append(message)

    def records(self) -> list[PackageRecord]:
        return sorted(self.packages.values(), key=lambda r: r.fmri.sort_key())

    def edges(self) -> set[DependencyEdge]:
        return {edge for record in self.packages.values() for edge in record.edges}

    def restricted_to(self, fmris) -> Catalog:
        """A catalog holding only the given packages; their edges are kept whole."""
        keep = set(fmris)
        return Catalog(
            packages={f: r for f, r in self.packages.items() if f in keep},
            warnings=list(self.warnings),
        )

    def to_raw(self) -> list[RawPackage]:
        """Inverse of from_raw, one dependency entry per edge."""
        return [
            RawPackage(
                fmri=str(record.fmri),
                dependencies=[
                    RawDependency(type=edge.dep_type.value, fmri=str(edge.target))
                    for edge in record.edges
                ],
            )
            for record in self.records()
        ]

    def __len__(self) -> int:
        return len(self.packages)
