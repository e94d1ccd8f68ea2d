"""Catalog cache.

Installed-state queries share one cache file. Queries against a "latest"
catalog keep one entry per (package, version, match and recursion settings)
inside a cache directory, each holding only the part of the catalog that
query can reach. Either way an entry is reused only when its staleness token
matches the provider's current token, or when reuse is forced.

Entries are written to a temporary file and renamed into place. An entry
that cannot be read back is discarded and rebuilt, so concurrent writers
never need a lock.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path

from pydantic import BaseModel, ValidationError

from pkgdeps.analysis.dependency_graph import DependencyGraphBuilder, reachable
from pkgdeps.analysis.query import resolve_roots
from pkgdeps.catalog import Catalog
from pkgdeps.errors import CacheCorrupt, MalformedRecord, SourceUnavailable
from pkgdeps.models import CacheOptions, QueryOptions
from pkgdeps.sources import CatalogSource, RawPackage

logger = logging.getLogger(__name__)

CACHE_FORMAT = 1


class CacheEntry(BaseModel):
    format: int
    token: str
    packages: list[RawPackage]
    warnings: list[str] = []


class CacheFile:
    """A single cache entry on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> tuple[str, Catalog]:
        """Return (token, catalog). Raises CacheCorrupt if the entry is unusable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entry = CacheEntry.model_validate(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise CacheCorrupt(f"Unreadable cache entry {self.path}: {e}") from e
        if entry.format != CACHE_FORMAT:
            raise CacheCorrupt(f"Cache entry {self.path} has format {entry.format}, expected {CACHE_FORMAT}")
        try:
            catalog = Catalog.from_raw(entry.packages)
        except MalformedRecord as e:
            raise CacheCorrupt(f"Cache entry {self.path} holds a malformed record: {e}") from e
        # Stored records are already normalized; keep the warnings of the original build.
        catalog.warnings = list(entry.warnings)
        return entry.token, catalog

    def write(self, token: str, catalog: Catalog) -> None:
        entry = CacheEntry(
            format=CACHE_FORMAT, token=token, packages=catalog.to_raw(), warnings=catalog.warnings,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(entry.model_dump_json())
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Wrote catalog cache %s (%d packages)", self.path, len(catalog))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Removed catalog cache %s", self.path)


class LatestCache:
    """Directory of cache entries for "latest" catalog queries."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    @staticmethod
    def key(opts: QueryOptions) -> str:
        parts = [
            opts.package or "",
            str(opts.exact),
            str(opts.recurse),
            "" if opts.max_depth is None else str(opts.max_depth),
        ]
        return hashlib.sha256("\0".join(parts).encode("utf-8")).hexdigest()[:32]

    def entry(self, opts: QueryOptions) -> CacheFile:
        return CacheFile(self.directory / f"{self.key(opts)}.json")

    def clear(self) -> None:
        if self.directory.exists():
            shutil.rmtree(self.directory)
            logger.info("Removed latest-catalog cache directory %s", self.directory)


def _build(source: CatalogSource) -> Catalog:
    raw = source.packages()
    try:
        return Catalog.from_raw(raw)
    except MalformedRecord as e:
        raise SourceUnavailable(f"{source.name}: {e}") from e


def _try_cache(cache: CacheFile, source: CatalogSource, options: CacheOptions) -> Catalog | None:
    if not cache.exists():
        logger.info("No catalog cache at %s", cache.path)
        return None
    try:
        token, catalog = cache.read()
    except CacheCorrupt as e:
        logger.warning("Discarding corrupt cache: %s", e)
        return None
    if options.force:
        logger.info("Using catalog cache %s without validation", cache.path)
        return catalog
    if token == source.staleness_token():
        logger.info("Catalog cache %s is current", cache.path)
        return catalog
    logger.info("Catalog cache %s is stale, rebuilding", cache.path)
    return None


def load_catalog(
    source: CatalogSource,
    cache: CacheFile | None,
    options: CacheOptions | None = None,
    narrow=None,
) -> Catalog:
    """Load a catalog, going through ``cache`` when caching is enabled.

    ``narrow`` may reduce a freshly built catalog before it is cached and
    returned; a reused entry is returned as stored.
    """
    options = options or CacheOptions()
    if cache is not None and options.clear:
        cache.clear()

    use_cache = cache is not None and options.enabled
    if use_cache:
        catalog = _try_cache(cache, source, options)
        if catalog is not None:
            return catalog

    # Take the token before reading so a change during the read leaves a stale entry.
    token = source.staleness_token()
    catalog = _build(source)
    if narrow is not None:
        catalog = narrow(catalog)
    if use_cache:
        try:
            cache.write(token, catalog)
        except OSError as e:
            logger.warning("Could not write catalog cache %s: %s", cache.path, e)
    return catalog


def load_latest_catalog(
    source: CatalogSource,
    cache: LatestCache | None,
    opts: QueryOptions,
    options: CacheOptions | None = None,
) -> Catalog:
    """Load the part of a "latest" catalog a depends query on ``opts.package`` can reach."""
    options = options or CacheOptions()
    if cache is not None and options.clear:
        cache.clear()

    def narrow(catalog: Catalog) -> Catalog:
        graph = DependencyGraphBuilder().build(catalog)
        roots = resolve_roots(graph, opts.package, opts.exact)
        depth = opts.max_depth if opts.recurse else 0
        keep = reachable(graph, roots, depth)
        return catalog.restricted_to(keep)

    entry = cache.entry(opts) if cache is not None else None
    return load_catalog(source, entry, CacheOptions(enabled=options.enabled, force=options.force), narrow=narrow)
