"""Exceptions raised by the catalog, cache and query layers."""

from __future__ import annotations


class PkgDepsError(Exception):
    """Base class for every error pkgdeps reports to its caller."""


class SourceUnavailable(PkgDepsError):
    """The package data provider failed or returned unusable data."""


class CacheCorrupt(PkgDepsError):
    """A cache entry could not be read back. Never escapes the cache module."""


class MalformedRecord(PkgDepsError):
    """A package record or FMRI could not be parsed."""


class UnsupportedOption(PkgDepsError):
    """An operation was combined with options it does not support."""


class PackageNotFound(PkgDepsError):
    def __init__(self, identifier: str):
        super().__init__(f"No package matching '{identifier}' found")
        self.identifier = identifier
