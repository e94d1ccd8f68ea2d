"""pkgdeps: dependency queries over a catalog of FMRI-identified packages."""

from pkgdeps.fmri import FMRI, Version
from pkgdeps.models import DependencyType, Operation, QueryOptions, ResultFlag

__version__ = "0.1.0"

__all__ = ["FMRI", "Version", "DependencyType", "Operation", "QueryOptions", "ResultFlag", "__version__"]
