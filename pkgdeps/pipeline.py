"""Query orchestrator: provider -> catalog (via cache) -> graph -> query."""

from __future__ import annotations

import logging

from pkgdeps.analysis.dependency_graph import DependencyGraphBuilder
from pkgdeps.analysis.graph_models import DependencyGraph
from pkgdeps.analysis.query import (
    LeafReport,
    dependants,
    depends,
    names_only,
    no_dependants,
    validate_options,
)
from pkgdeps.cache import CacheFile, LatestCache, load_catalog, load_latest_catalog
from pkgdeps.catalog import Catalog
from pkgdeps.config import PkgDepsConfig
from pkgdeps.errors import SourceUnavailable
from pkgdeps.models import CacheOptions, NameEntry, Operation, QueryOptions, QueryResult
from pkgdeps.sources import CatalogSource, JsonFileSource

logger = logging.getLogger(__name__)

QueryOutput = list[QueryResult] | list[NameEntry] | LeafReport


def _installed_source(config: PkgDepsConfig) -> CatalogSource:
    if config.installed_source is None:
        raise SourceUnavailable("No installed-package feed configured (set PKGDEPS_INSTALLED or pass --installed)")
    return JsonFileSource(config.installed_source)


def _latest_source(config: PkgDepsConfig) -> CatalogSource:
    if config.latest_source is None:
        raise SourceUnavailable("No latest-package catalog configured (set PKGDEPS_LATEST or pass --catalog)")
    return JsonFileSource(config.latest_source)


def load(
    opts: QueryOptions,
    config: PkgDepsConfig,
    cache_options: CacheOptions | None = None,
    source: CatalogSource | None = None,
) -> Catalog:
    """Load the catalog a query runs against, honoring the cache options."""
    cache_options = cache_options or CacheOptions()
    if opts.latest:
        source = source or _latest_source(config)
        return load_latest_catalog(source, LatestCache(config.latest_cache_dir), opts, cache_options)
    source = source or _installed_source(config)
    return load_catalog(source, CacheFile(config.cache_file), cache_options)


def build_graph(catalog: Catalog) -> DependencyGraph:
    return DependencyGraphBuilder().build(catalog)


def execute(operation: Operation, graph: DependencyGraph, opts: QueryOptions) -> QueryOutput:
    if operation is Operation.NO_DEPENDANTS:
        return no_dependants(graph, opts)
    query = depends if operation is Operation.DEPENDS else dependants
    results = query(graph, opts)
    if opts.names or opts.types:
        return names_only(results, with_types=opts.types)
    return results


def run_query(
    operation: Operation,
    opts: QueryOptions,
    config: PkgDepsConfig | None = None,
    cache_options: CacheOptions | None = None,
    source: CatalogSource | None = None,
) -> QueryOutput:
    """Run one query end to end."""
    config = config or PkgDepsConfig()
    validate_options(operation, opts)
    catalog = load(opts, config, cache_options, source)
    graph = build_graph(catalog)
    logger.debug("Graph ready: %d packages", len(graph.nodes))
    return execute(operation, graph, opts)
