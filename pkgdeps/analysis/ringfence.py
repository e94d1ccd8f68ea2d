"""Ring-fence analysis: packages that become removable along with a leaf set."""

from __future__ import annotations

import logging
from typing import Iterable

from pkgdeps.analysis.graph_models import DependencyGraph
from pkgdeps.fmri import FMRI
from pkgdeps.models import EXPANDABLE_TYPES, DependencyType

logger = logging.getLogger(__name__)


def ring_fence(
    graph: DependencyGraph,
    candidates: Iterable[FMRI],
    types: Iterable[DependencyType] = EXPANDABLE_TYPES,
) -> set[FMRI]:
    """Return the packages only kept installed by ``candidates`` (directly or not).

    Grows a closure starting from the candidate set: a package joins once it
    has at least one dependant and all of its dependants are already inside.
    Repeats until a full pass adds nothing. The candidates themselves are not
    part of the result.
    """
    types = frozenset(types)
    initial = set(candidates)
    closure = set(initial)
    remaining = sorted((f for f in graph.nodes if f not in closure), key=FMRI.sort_key)

    passes = 0
    while True:
        passes += 1
        added = []
        for fmri in remaining:
            dependants = graph.dependants_of(fmri, types)
            if dependants and dependants <= closure:
                closure.add(fmri)
                added.append(fmri)
        if not added:
            break
        remaining = [f for f in remaining if f not in closure]

    logger.debug("Ring-fence settled after %d passes, %d packages added",
                 passes, len(closure) - len(initial))
    return closure - initial
