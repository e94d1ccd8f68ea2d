"""Click CLI with depends, dependants and no-dependants subcommands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from pkgdeps.analysis.query import LeafReport
from pkgdeps.config import PkgDepsConfig
from pkgdeps.errors import PkgDepsError
from pkgdeps.formatter import format_leaves, format_names, format_results
from pkgdeps.models import CacheOptions, DependencyType, Operation, QueryOptions
from pkgdeps.pipeline import run_query

_TYPE_CHOICES = [t.value for t in DependencyType]


def _type_options(fn):
    fn = click.option("-T", "--ntype", "exclude_types", multiple=True, type=click.Choice(_TYPE_CHOICES),
                      help="Hide dependencies of this type (ignored if --type is given)")(fn)
    fn = click.option("-t", "--type", "include_types", multiple=True, type=click.Choice(_TYPE_CHOICES),
                      help="Only show dependencies of this type")(fn)
    return fn


def _cache_options(fn):
    fn = click.option("--clear-cache", is_flag=True, help="Delete the cache before loading")(fn)
    fn = click.option("--force-cache", is_flag=True, help="Reuse the cache even if it looks stale")(fn)
    fn = click.option("--no-cache", is_flag=True, help="Neither read nor write the cache")(fn)
    fn = click.option("--cache-dir", type=click.Path(file_okay=False, path_type=Path), help="Cache directory")(fn)
    fn = click.option("--installed", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                      help="Installed-package feed (JSON)")(fn)
    return fn


def _traversal_options(fn):
    fn = click.option("--types", "with_types", is_flag=True, help="List names with their dependency type")(fn)
    fn = click.option("-n", "--names", is_flag=True, help="List distinct names instead of a tree")(fn)
    fn = click.option("-a", "--allow-repeats", is_flag=True, help="Expand packages every time they are reached")(fn)
    fn = click.option("-d", "--max-depth", type=int, help="Stop expanding below this depth")(fn)
    fn = click.option("-r", "--recurse", is_flag=True, help="Follow require and require-any dependencies")(fn)
    fn = click.option("-e", "--exact", is_flag=True, help="Match the package FMRI exactly")(fn)
    return fn


def _types(values) -> list[DependencyType]:
    return [DependencyType(v) for v in values]


def _run(operation: Operation, opts: QueryOptions, installed, cache_dir, catalog=None,
         no_cache=False, force_cache=False, clear_cache=False) -> None:
    config = PkgDepsConfig(cache_dir=cache_dir, installed_source=installed, latest_source=catalog)
    cache_options = CacheOptions(enabled=not no_cache, force=force_cache, clear=clear_cache)
    try:
        output = run_query(operation, opts, config, cache_options)
    except PkgDepsError as e:
        raise click.ClickException(str(e))

    if isinstance(output, LeafReport):
        lines = format_leaves(output)
    elif opts.names or opts.types:
        lines = format_names(output)
    else:
        lines = format_results(output)
    for line in lines:
        click.echo(line)


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """pkgdeps: query package dependencies by FMRI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("depends")
@click.argument("package")
@_traversal_options
@_type_options
@click.option("--latest", is_flag=True, help="Query the latest-package catalog instead of installed state")
@click.option("--catalog", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Latest-package catalog (JSON)")
@_cache_options
def depends_cmd(package, exact, recurse, max_depth, allow_repeats, names, with_types,
                include_types, exclude_types, latest, catalog, installed, cache_dir,
                no_cache, force_cache, clear_cache):
    """Show what PACKAGE depends on."""
    opts = QueryOptions(
        package=package, exact=exact, recurse=recurse, max_depth=max_depth,
        allow_repeats=allow_repeats, names=names, types=with_types,
        include_types=_types(include_types), exclude_types=_types(exclude_types),
        latest=latest,
    )
    _run(Operation.DEPENDS, opts, installed, cache_dir, catalog, no_cache, force_cache, clear_cache)


@cli.command("dependants")
@click.argument("package")
@_traversal_options
@_type_options
@_cache_options
def dependants_cmd(package, exact, recurse, max_depth, allow_repeats, names, with_types,
                   include_types, exclude_types, installed, cache_dir,
                   no_cache, force_cache, clear_cache):
    """Show what depends on PACKAGE."""
    opts = QueryOptions(
        package=package, exact=exact, recurse=recurse, max_depth=max_depth,
        allow_repeats=allow_repeats, names=names, types=with_types,
        include_types=_types(include_types), exclude_types=_types(exclude_types),
    )
    _run(Operation.DEPENDANTS, opts, installed, cache_dir, None, no_cache, force_cache, clear_cache)


@cli.command("no-dependants")
@click.argument("pattern", required=False)
@click.option("-r", "--recurse", is_flag=True, help="Also list packages only the leaves depend on")
@_type_options
@_cache_options
def no_dependants_cmd(pattern, recurse, include_types, exclude_types, installed, cache_dir,
                      no_cache, force_cache, clear_cache):
    """List installed packages nothing depends on, optionally matching PATTERN."""
    opts = QueryOptions(
        pattern=pattern, recurse=recurse,
        include_types=_types(include_types), exclude_types=_types(exclude_types),
    )
    _run(Operation.NO_DEPENDANTS, opts, installed, cache_dir, None, no_cache, force_cache, clear_cache)


if __name__ == "__main__":
    cli()
