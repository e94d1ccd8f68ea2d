"""Package data providers.

A provider hands the catalog already-parsed package records plus a staleness
token describing the current state of whatever it reads from. The catalog
never looks at the token itself; the cache compares tokens to decide whether
a stored catalog can be reused.
"""

from __future__ import annotations

import abc
import json
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from pkgdeps.errors import SourceUnavailable

logger = logging.getLogger(__name__)


class RawDependency(BaseModel):
    type: str
    fmri: str | list[str]

    @property
    def targets(self) -> list[str]:
        return [self.fmri] if isinstance(self.fmri, str) else list(self.fmri)


class RawPackage(BaseModel):
    fmri: str
    dependencies: list[RawDependency] = []


class RawFeed(BaseModel):
    packages: list[RawPackage] = []


def parse_feed(data) -> list[RawPackage]:
    """Validate a decoded feed document (a mapping or a bare package list)."""
    if isinstance(data, list):
        data = {"packages": data}
    try:
        return RawFeed.model_validate(data).packages
    except ValidationError as e:
        raise SourceUnavailable(f"Malformed package feed: {e}") from e


class CatalogSource(abc.ABC):
    """Base class for package data providers."""

    name: str = "source"

    @abc.abstractmethod
    def staleness_token(self) -> str:
        """Return a value that changes whenever the underlying data changes."""

    @abc.abstractmethod
    def packages(self) -> list[RawPackage]:
        """Return every package record the provider knows about."""


class JsonFileSource(CatalogSource):
    """Reads a JSON package feed from disk; the token tracks the file's mtime and size."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.name = str(self.path)

    def staleness_token(self) -> str:
        try:
            st = self.path.stat()
        except OSError as e:
            raise SourceUnavailable(f"Cannot stat package feed {self.path}: {e}") from e
        return f"{st.st_mtime_ns}:{st.st_size}"

    def packages(self) -> list[RawPackage]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SourceUnavailable(f"Cannot read package feed {self.path}: {e}") from e
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SourceUnavailable(f"Package feed {self.path} is not valid JSON: {e}") from e
        pkgs = parse_feed(data)
        logger.debug("Read %d package records from %s", len(pkgs), self.path)
        return pkgs


class StaticSource(CatalogSource):
    """In-memory provider, mostly for embedding and tests."""

    name = "static"

    def __init__(self, packages: list[RawPackage | dict], token: str = "static"):
        self._packages = parse_feed([
            p.model_dump() if isinstance(p, RawPackage) else p for p in packages
        ])
        self._token = token

    def staleness_token(self) -> str:
        return self._token

    def packages(self) -> list[RawPackage]:
        return list(self._packages)
