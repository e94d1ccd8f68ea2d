"""Runtime configuration: where the package feeds and cache entries live."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class PkgDepsConfig:
    cache_dir: Path | None = None
    installed_source: Path | None = None
    latest_source: Path | None = None

    def __post_init__(self):
        if self.cache_dir is None:
            self.cache_dir = Path(os.getenv("PKGDEPS_CACHE_DIR") or Path.home() / ".pkgdeps")
        self.cache_dir = Path(self.cache_dir).expanduser()
        if self.installed_source is None and os.getenv("PKGDEPS_INSTALLED"):
            self.installed_source = Path(os.environ["PKGDEPS_INSTALLED"])
        if self.latest_source is None and os.getenv("PKGDEPS_LATEST"):
            self.latest_source = Path(os.environ["PKGDEPS_LATEST"])

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / "catalog.json"

    @property
    def latest_cache_dir(self) -> Path:
        return self.cache_dir / "latest"
