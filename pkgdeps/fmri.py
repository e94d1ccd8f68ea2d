"""FMRI and version parsing, formatting and ordering.

An FMRI looks like ``pkg://publisher/name@release,build-branch:timestamp``.
The scheme and publisher are optional, and the version may be cut short from
the right (``name@1.2``, ``name@1.2,5.11``, ``name@1.2,5.11-0.1``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pkgdeps.errors import MalformedRecord

_DOTSEQ = r"\d+(?:\.\d+)*"
_VERSION_RE = re.compile(
    rf"^(?P<release>{_DOTSEQ})"
    rf"(?:,(?P<build>{_DOTSEQ}))?"
    rf"(?:-(?P<branch>{_DOTSEQ}))?"
    r"(?::(?P<timestamp>\d{8}T\d{6}Z))?$"
)
_FMRI_RE = re.compile(
    r"^(?:pkg:(?://(?P<publisher>[^/@]+)/|/)?)?"
    r"(?P<name>[A-Za-z0-9_+][A-Za-z0-9_+.\-/]*)"
    r"(?:@(?P<version>.+))?$"
)


def _dotseq(text: str | None) -> tuple[int, ...] | None:
    if text is None:
        return None
    return tuple(int(part) for part in text.split("."))


def _fmt_dotseq(seq: tuple[int, ...]) -> str:
    return ".".join(str(n) for n in seq)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


@dataclass(frozen=True)
class Version:
    release: tuple[int, ...]
    build: tuple[int, ...] | None = None
    branch: tuple[int, ...] | None = None
    timestamp: str | None = None

    @classmethod
    def parse(cls, text: str) -> Version:
        m = _VERSION_RE.match(text.strip())
        if not m:
            raise MalformedRecord(f"Invalid version string: {text!r}")
        return cls(
            release=_dotseq(m.group("release")),
            build=_dotseq(m.group("build")),
            branch=_dotseq(m.group("branch")),
            timestamp=m.group("timestamp"),
        )

    def __str__(self) -> str:
        out = _fmt_dotseq(self.release)
        if self.build is not None:
            out += "," + _fmt_dotseq(self.build)
        if self.branch is not None:
            out += "-" + _fmt_dotseq(self.branch)
        if self.timestamp is not None:
            out += ":" + self.timestamp
        return out

    def sort_key(self) -> tuple:
        return (self.release, self.build or (), self.branch or (), self.timestamp or "")

    def __lt__(self, other: Version) -> bool:
        return self.sort_key() < other.sort_key()

    def __le__(self, other: Version) -> bool:
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: Version) -> bool:
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: Version) -> bool:
        return self.sort_key() >= other.sort_key()

    def at_or_before(self, bound: Version) -> bool:
        """True if this version is at or before ``bound``.

        Only the components ``bound`` supplies take part, and each dot-sequence
        is truncated to the bound's length first, so ``1.2.9`` is at or
        before ``1.2`` while ``1.3`` is not.
        """
        pairs = [(self.release, bound.release)]
        if bound.build is not None:
            pairs.append((self.build or (), bound.build))
        if bound.branch is not None:
            pairs.append((self.branch or (), bound.branch))
        for mine, theirs in pairs:
            c = _cmp(mine[: len(theirs)], theirs)
            if c:
                return c < 0
        if bound.timestamp is not None and self.timestamp is not None:
            return self.timestamp <= bound.timestamp
        return True


@dataclass(frozen=True)
class FMRI:
    name: str
    version: Version | None = None
    publisher: str | None = None

    @classmethod
    def parse(cls, text: str) -> FMRI:
        if not isinstance(text, str):
            raise MalformedRecord(f"FMRI must be a string, got {type(text).__name__}")
        m = _FMRI_RE.match(text.strip())
        if not m:
            raise MalformedRecord(f"Invalid FMRI: {text!r}")
        version = m.group("version")
        return cls(
            name=m.group("name").rstrip("/"),
            version=Version.parse(version) if version else None,
            publisher=m.group("publisher"),
        )

    def __str__(self) -> str:
        out = self.name
        if self.publisher:
            out = f"pkg://{self.publisher}/{out}"
        if self.version is not None:
            out += f"@{self.version}"
        return out

    def sort_key(self) -> tuple:
        return (self.name, self.version.sort_key() if self.version else ())

    def matches(self, query: FMRI, exact: bool = False) -> bool:
        """Check whether this (catalog) FMRI is selected by ``query``.

        Exact matching requires the name, the full version and, when the
        query names one, the publisher to be equal. Otherwise the name must
        match and the version must be at or before the query's version.
        """
        if self.name != query.name:
            return False
        if query.publisher and self.publisher and self.publisher != query.publisher:
            return False
        if exact:
            if query.publisher and self.publisher != query.publisher:
                return False
            return self.version == query.version
        if query.version is None:
            return True
        if self.version is None:
            return False
        return self.version.at_or_before(query.version)
