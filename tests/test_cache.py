"""Tests for the catalog cache: reuse, staleness, force/clear/disable, corruption."""

import json
from pathlib import Path

import pytest

from pkgdeps.cache import CACHE_FORMAT, CacheFile, LatestCache, load_catalog, load_latest_catalog
from pkgdeps.catalog import Catalog
from pkgdeps.errors import PackageNotFound, SourceUnavailable
from pkgdeps.fmri import FMRI
from pkgdeps.models import CacheOptions, QueryOptions
from pkgdeps.sources import JsonFileSource, StaticSource

FIXTURES = Path(__file__).parent / "fixtures"


class _CountingSource(StaticSource):
    def __init__(self, packages, token="t1"):
        super().__init__(packages, token)
        self.package_calls = 0
        self.token_calls = 0

    def packages(self):
        self.package_calls += 1
        return super().packages()

    def staleness_token(self):
        self.token_calls += 1
        return super().staleness_token()


def _make_source(token="t1"):
    return _CountingSource([
        {"fmri": "a@1.0", "dependencies": [{"type": "require", "fmri": "b"}]},
        {"fmri": "b@1.0", "dependencies": []},
    ], token=token)


@pytest.fixture
def cache(tmp_path):
    return CacheFile(tmp_path / "cache" / "catalog.json")


class TestLoadCatalog:
    def test_first_load_builds_and_writes(self, cache):
        source = _make_source()
        catalog = load_catalog(source, cache)
        assert len(catalog) == 2
        assert source.package_calls == 1
        assert cache.exists()
        data = json.loads(cache.path.read_text())
        assert data["token"] == "t1"
        assert data["format"] == CACHE_FORMAT

    def test_matching_token_reuses_cache(self, cache):
        source = _make_source()
        first = load_catalog(source, cache)
        second = load_catalog(source, cache)
        assert source.package_calls == 1
        assert second.packages == first.packages

    def test_stale_token_rebuilds(self, cache):
        source = _make_source()
        load_catalog(source, cache)
        source._token = "t2"
        load_catalog(source, cache)
        assert source.package_calls == 2
        assert json.loads(cache.path.read_text())["token"] == "t2"

    def test_force_reuses_stale_cache_without_asking_source(self, cache):
        source = _make_source()
        load_catalog(source, cache)
        source._token = "t2"
        calls = source.token_calls
        load_catalog(source, cache, CacheOptions(force=True))
        assert source.package_calls == 1
        assert source.token_calls == calls

    def test_force_without_cache_builds(self, cache):
        source = _make_source()
        load_catalog(source, cache, CacheOptions(force=True))
        assert source.package_calls == 1
        assert cache.exists()

    def test_clear_forces_rebuild(self, cache):
        source = _make_source()
        load_catalog(source, cache)
        load_catalog(source, cache, CacheOptions(clear=True))
        assert source.package_calls == 2
        assert cache.exists()

    def test_disabled_never_touches_cache(self, cache):
        source = _make_source()
        load_catalog(source, cache, CacheOptions(enabled=False))
        load_catalog(source, cache, CacheOptions(enabled=False))
        assert source.package_calls == 2
        assert not cache.exists()

    def test_disabled_with_clear_still_removes_entry(self, cache):
        source = _make_source()
        load_catalog(source, cache)
        load_catalog(source, cache, CacheOptions(enabled=False, clear=True))
        assert not cache.exists()

    @pytest.mark.parametrize("content", [
        "",
        "{truncated",
        json.dumps({"token": "t1"}),
        json.dumps({"format": CACHE_FORMAT + 1, "token": "t1", "packages": []}),
        json.dumps({"format": CACHE_FORMAT, "token": "t1", "packages": [{"fmri": "bad@x"}]}),
    ])
    def test_corrupt_cache_is_rebuilt(self, cache, content):
        cache.path.parent.mkdir(parents=True)
        cache.path.write_text(content)
        source = _make_source()
        catalog = load_catalog(source, cache)
        assert len(catalog) == 2
        assert source.package_calls == 1
        token, reread = cache.read()
        assert token == "t1"
        assert reread.packages == catalog.packages

    def test_round_trip_matches_direct_build(self, tmp_path):
        source = JsonFileSource(FIXTURES / "installed.json")
        cache = CacheFile(tmp_path / "catalog.json")
        direct = Catalog.from_raw(source.packages())
        load_catalog(source, cache)
        cached = load_catalog(source, cache)
        assert set(cached.packages) == set(direct.packages)
        assert cached.edges() == direct.edges()
        assert cached.warnings == direct.warnings

    def test_cached_catalog_keeps_warnings(self, cache):
        source = _CountingSource([
            {"fmri": "a@1.0", "dependencies": [
                {"type": "requires-maybe", "fmri": "b"},
                {"type": "require", "fmri": "b@not.a.version"},
            ]},
            {"fmri": "b@1.0", "dependencies": []},
        ])
        direct = load_catalog(source, cache)
        cached = load_catalog(source, cache)
        assert source.package_calls == 1
        assert len(direct.warnings) == 2
        assert cached.warnings == direct.warnings

    def test_malformed_source_record(self, cache):
        source = StaticSource([{"fmri": "bad@x.y"}])
        with pytest.raises(SourceUnavailable):
            load_catalog(source, cache)
        assert not cache.exists()

    def test_no_cache_object(self):
        catalog = load_catalog(_make_source(), None)
        assert len(catalog) == 2


class TestLatestCache:
    def test_key_depends_on_query_parameters(self):
        base = QueryOptions(package="vim", recurse=True)
        keys = {
            LatestCache.key(base),
            LatestCache.key(QueryOptions(package="vim", recurse=False)),
            LatestCache.key(QueryOptions(package="vim", recurse=True, max_depth=2)),
            LatestCache.key(QueryOptions(package="vim@7.3", recurse=True)),
            LatestCache.key(QueryOptions(package="vim", recurse=True, exact=True)),
        }
        assert len(keys) == 5
        assert LatestCache.key(base) == LatestCache.key(QueryOptions(package="vim", recurse=True))

    def test_entries_per_query(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = JsonFileSource(FIXTURES / "latest.json")
        load_latest_catalog(source, latest, QueryOptions(package="editor/vim"))
        load_latest_catalog(source, latest, QueryOptions(package="editor/vim", recurse=True))
        assert len(list(latest.directory.glob("*.json"))) == 2

    def test_non_recursive_keeps_roots_and_direct_targets(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = JsonFileSource(FIXTURES / "latest.json")
        catalog = load_latest_catalog(source, latest, QueryOptions(package="editor/vim"))
        names = {f.name for f in catalog.packages}
        assert names == {"editor/vim", "library/ncurses", "library/python"}
        assert "web/server" not in names

    def test_recursive_follows_requires(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = JsonFileSource(FIXTURES / "latest.json")
        catalog = load_latest_catalog(source, latest, QueryOptions(package="editor/vim", recurse=True))
        names = {f.name for f in catalog.packages}
        assert {"system/library", "system/core-os"} <= names
        assert "web/server" not in names

    def test_reuses_entry(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = _CountingSource([
            {"fmri": "a@1.0", "dependencies": [{"type": "require", "fmri": "b"}]},
            {"fmri": "b@1.0", "dependencies": []},
            {"fmri": "c@1.0", "dependencies": []},
        ])
        opts = QueryOptions(package="a")
        first = load_latest_catalog(source, latest, opts)
        second = load_latest_catalog(source, latest, opts)
        assert source.package_calls == 1
        assert set(second.packages) == set(first.packages) == {FMRI.parse("a@1.0"), FMRI.parse("b@1.0")}

    def test_clear_removes_directory(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = JsonFileSource(FIXTURES / "latest.json")
        load_latest_catalog(source, latest, QueryOptions(package="editor/vim"))
        load_latest_catalog(source, latest, QueryOptions(package="editor/vim", recurse=True),
                            CacheOptions(clear=True))
        assert len(list(latest.directory.glob("*.json"))) == 1

    def test_unknown_package(self, tmp_path):
        latest = LatestCache(tmp_path / "latest")
        source = JsonFileSource(FIXTURES / "latest.json")
        with pytest.raises(PackageNotFound):
            load_latest_catalog(source, latest, QueryOptions(package="no/such/pkg"))
