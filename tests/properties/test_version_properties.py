"""Property-based tests for version ordering and engine resolution.

Verifies:
- Total order: exactly one of ``a < b``, ``a == b``, ``a > b`` holds
- Round trip: ``parse(str(v)) == v``
- Self-satisfaction: every release satisfies its own ``^`` and ``~`` constraint
- Idempotence: resolving an unchanged artifact twice changes nothing
- Sentinel exclusion: ``0.0.0`` is never linked, whatever the constraint
"""
from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from forgecompat.core.catalog import VersionCatalog
from forgecompat.core.resolution import EngineVersionResolver
from forgecompat.core.store import EngineVersion, InMemoryRepository, Mod
from forgecompat.core.versioning import SemanticVersion, compare_versions, satisfies
from tests.helpers import NOW, PAST, mod_version


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

numbers = st.integers(min_value=0, max_value=12)

labels = st.lists(
    st.sampled_from(["alpha", "beta", "rc1", "BE", "2"]), max_size=2
).map(tuple)

versions = st.builds(SemanticVersion, numbers, numbers, numbers, labels)

releases = st.builds(SemanticVersion, numbers, numbers, numbers)

constraints = st.sampled_from([
    "*", "~3.8.0", "^3.0.0", ">=3.7.0 <3.9.0", "3.8.x", "3.9.0", "<=3.7.1 || >=3.9.0",
    "~0.0.0", "0.0.0", ">=0.0.0", "", "banana",
])

catalogs = st.lists(
    st.sampled_from(["3.7.0", "3.7.1", "3.8.0", "3.8.1", "3.8.5", "3.9.0", "3.10.0"]),
    unique=True,
)


def _store_with(catalog_versions: list[str]) -> InMemoryRepository:
    store = InMemoryRepository()
    store.save_engine_version(EngineVersion(99, "0.0.0"))
    for index, version in enumerate(catalog_versions, start=1):
        store.save_engine_version(EngineVersion(index, version, publish_date=PAST))
    store.save_mod(Mod(10, "Core Lib"))
    return store


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    @given(versions, versions)
    @settings(max_examples=200)
    def test_trichotomy(self, a: SemanticVersion, b: SemanticVersion) -> None:
        assert [a < b, a == b, a > b].count(True) == 1

    @given(versions, versions)
    @settings(max_examples=200)
    def test_compare_is_antisymmetric(self, a: SemanticVersion, b: SemanticVersion) -> None:
        assert compare_versions(a, b) == -compare_versions(b, a)

    @given(versions, versions, versions)
    def test_transitive(self, a: SemanticVersion, b: SemanticVersion, c: SemanticVersion) -> None:
        low, mid, high = sorted([a, b, c])
        assert low <= mid <= high
        assert low <= high

    @given(versions)
    def test_string_round_trip(self, version: SemanticVersion) -> None:
        assert SemanticVersion.parse(str(version)) == version

    @given(versions)
    def test_prerelease_sorts_before_release(self, version: SemanticVersion) -> None:
        release = SemanticVersion(version.major, version.minor, version.patch)
        assert version <= release


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


class TestSelfSatisfaction:
    @given(releases)
    def test_caret(self, version: SemanticVersion) -> None:
        assert satisfies(version, f"^{version}")

    @given(releases)
    def test_tilde(self, version: SemanticVersion) -> None:
        assert satisfies(version, f"~{version}")

    @given(releases)
    def test_exact(self, version: SemanticVersion) -> None:
        assert satisfies(str(version), str(version))


# ---------------------------------------------------------------------------
# Engine resolution
# ---------------------------------------------------------------------------


class TestEngineResolution:
    @given(catalogs, constraints)
    @settings(max_examples=100)
    def test_resolution_is_idempotent(self, catalog_versions: list[str], constraint: str) -> None:
        store = _store_with(catalog_versions)
        artifact = store.save_artifact(mod_version(100, 10, "1.0.0", constraint))
        resolver = EngineVersionResolver(store, VersionCatalog(store, clock=lambda: NOW))

        resolver.resolve(artifact)
        first = store.engine_links(100)
        assert not resolver.resolve(artifact).changed
        assert store.engine_links(100) == first

    @given(catalogs, constraints)
    @settings(max_examples=100)
    def test_sentinel_never_linked(self, catalog_versions: list[str], constraint: str) -> None:
        store = _store_with(catalog_versions)
        artifact = store.save_artifact(mod_version(100, 10, "1.0.0", constraint))
        EngineVersionResolver(store, VersionCatalog(store, clock=lambda: NOW)).resolve(artifact)
        assert 99 not in store.engine_links(100)

    @given(catalogs, constraints)
    @settings(max_examples=100)
    def test_links_are_exactly_the_matches(self, catalog_versions: list[str], constraint: str) -> None:
        store = _store_with(catalog_versions)
        artifact = store.save_artifact(mod_version(100, 10, "1.0.0", constraint))
        EngineVersionResolver(store, VersionCatalog(store, clock=lambda: NOW)).resolve(artifact)
        linked = {store.get_engine_version(i).version for i in store.engine_links(100)}
        expected = {v for v in catalog_versions if satisfies(v, constraint)}
        assert linked == expected
