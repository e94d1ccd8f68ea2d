"""Tests for the end-to-end query pipeline."""

from pathlib import Path

import pytest

from pkgdeps.analysis.query import LeafReport
from pkgdeps.config import PkgDepsConfig
from pkgdeps.errors import PackageNotFound, SourceUnavailable, UnsupportedOption
from pkgdeps.models import CacheOptions, DependencyType, NameEntry, Operation, QueryOptions
from pkgdeps.pipeline import run_query
from pkgdeps.sources import StaticSource

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("PKGDEPS_CACHE_DIR", "PKGDEPS_INSTALLED", "PKGDEPS_LATEST"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config(tmp_path):
    return PkgDepsConfig(
        cache_dir=tmp_path / "cache",
        installed_source=FIXTURES / "installed.json",
        latest_source=FIXTURES / "latest.json",
    )


def _names(records):
    return [r.fmri.name for r in records]


class TestInstalledQueries:
    def test_depends(self, config):
        (result,) = run_query(Operation.DEPENDS, QueryOptions(package="editor/vim"), config)
        assert result.root.name == "editor/vim"
        assert _names(result.records) == ["library/ncurses", "library/zlib"]
        assert config.cache_file.exists()

    def test_depends_recursive_terminates_on_cycle(self, config):
        (result,) = run_query(
            Operation.DEPENDS, QueryOptions(package="system/core-os", recurse=True), config,
        )
        names = _names(result.records)
        assert "system/library" in names
        assert names.count("system/core-os") == 1
        assert any(not r.resolved for r in result.records)

    def test_dependants(self, config):
        (result,) = run_query(Operation.DEPENDANTS, QueryOptions(package="system/library"), config)
        assert _names(result.records) == ["library/ncurses", "library/zlib", "shell/bash", "shell/ksh93"]

    def test_names_with_types(self, config):
        entries = run_query(
            Operation.DEPENDS, QueryOptions(package="system/core-os", types=True), config,
        )
        assert all(isinstance(e, NameEntry) for e in entries)
        assert [(e.fmri.name, e.dep_type) for e in entries] == [
            ("consolidation/osnet/osnet-incorporation", DependencyType.INCORPORATE),
            ("library/zlib", DependencyType.REQUIRE),
            ("shell/bash", DependencyType.REQUIRE_ANY),
            ("shell/ksh93", DependencyType.REQUIRE_ANY),
            ("system/extra-docs", DependencyType.OPTIONAL),
        ]

    def test_no_dependants_with_ring_fence(self, config):
        report = run_query(Operation.NO_DEPENDANTS, QueryOptions(recurse=True), config)
        assert isinstance(report, LeafReport)
        assert _names_of(report.leaves) == [
            "consolidation/osnet/osnet-incorporation", "desktop/app", "editor/vim",
        ]
        assert _names_of(report.ring_fenced) == ["library/gtk", "library/ncurses"]

    def test_unknown_package(self, config):
        with pytest.raises(PackageNotFound):
            run_query(Operation.DEPENDS, QueryOptions(package="no/such"), config)

    def test_second_run_uses_cache(self, config):
        run_query(Operation.DEPENDS, QueryOptions(package="editor/vim"), config)
        mtime = config.cache_file.stat().st_mtime_ns
        run_query(Operation.DEPENDS, QueryOptions(package="editor/vim"), config)
        assert config.cache_file.stat().st_mtime_ns == mtime

    def test_no_cache(self, config):
        run_query(Operation.DEPENDS, QueryOptions(package="editor/vim"), config, CacheOptions(enabled=False))
        assert not config.cache_file.exists()

    def test_missing_source(self, tmp_path):
        config = PkgDepsConfig(cache_dir=tmp_path)
        with pytest.raises(SourceUnavailable):
            run_query(Operation.DEPENDS, QueryOptions(package="editor/vim"), config)

    def test_explicit_source(self, tmp_path):
        source = StaticSource([
            {"fmri": "D@1", "dependencies": [{"type": "require", "fmri": "E"}]},
            {"fmri": "E@1"},
        ])
        report = run_query(
            Operation.NO_DEPENDANTS, QueryOptions(recurse=True),
            PkgDepsConfig(cache_dir=tmp_path), source=source,
        )
        assert _names_of(report.all()) == ["D", "E"]


class TestLatestQueries:
    def test_depends_latest(self, config):
        results = run_query(
            Operation.DEPENDS, QueryOptions(package="editor/vim", latest=True, recurse=True), config,
        )
        assert len(results) == 2
        newest = results[-1]
        assert _names(newest.records) == [
            "library/ncurses", "system/library", "system/core-os", "library/python",
        ]
        assert len(list(config.latest_cache_dir.glob("*.json"))) == 1
        assert not config.cache_file.exists()

    def test_exact_version(self, config):
        results = run_query(
            Operation.DEPENDS,
            QueryOptions(package="editor/vim@7.3.600,5.11-0.175.1.0.0.24.0", exact=True, latest=True),
            config,
        )
        assert len(results) == 1

    def test_latest_rejected_for_dependants(self, tmp_path):
        with pytest.raises(UnsupportedOption):
            run_query(
                Operation.DEPENDANTS, QueryOptions(package="editor/vim", latest=True),
                PkgDepsConfig(cache_dir=tmp_path),
            )


def _names_of(fmris):
    return [f.name for f in fmris]
