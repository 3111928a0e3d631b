"""Tests for the in-memory repository: CRUD, events, cascades, association diffs."""

from __future__ import annotations

import pytest

from forgecompat.core.store import (
    Action,
    Addon,
    AssociationDiff,
    EntityEvent,
    EntityKind,
    EngineVersion,
    InMemoryRepository,
    Mod,
    Repository,
    apply_association_diff,
)
from forgecompat.exceptions import EntityNotFound
from tests.helpers import PAST, addon_version, dependency, mod_version


def _record(store: InMemoryRepository, entity: EntityKind) -> list[EntityEvent]:
    events: list[EntityEvent] = []
    store.bus.subscribe(entity, events.append)
    return events


class TestProtocol:
    def test_memory_repository_satisfies_protocol(self, store: InMemoryRepository) -> None:
        assert isinstance(store, Repository)


class TestLifecycleEvents:
    """Events published after each committed write."""

    def test_create_publishes_created_then_saved(self, store: InMemoryRepository) -> None:
        events = _record(store, EntityKind.MOD)
        store.save_mod(Mod(10, "Core Lib"))
        assert [e.action for e in events] == [Action.CREATED, Action.SAVED]
        assert events[0].subject.name == "Core Lib"

    def test_update_reports_changed_fields(self, store: InMemoryRepository) -> None:
        store.save_mod(Mod(10, "Core Lib"))
        store.save_artifact(mod_version(100, 10, "1.0.0", "~3.8.0"))
        events = _record(store, EntityKind.ARTIFACT)
        store.save_artifact(mod_version(100, 10, "1.0.0", "~3.9.0"))
        updated = events[0]
        assert updated.action is Action.UPDATED
        assert updated.changed_fields == frozenset({"version_constraint"})
        assert updated.changed("version_constraint", "version")
        assert not updated.changed("version")
        assert updated.previous.version_constraint == "~3.8.0"

    def test_unchanged_save_publishes_only_saved(self, store: InMemoryRepository) -> None:
        store.save_mod(Mod(10, "Core Lib"))
        events = _record(store, EntityKind.MOD)
        store.save_mod(Mod(10, "Core Lib"))
        assert [e.action for e in events] == [Action.SAVED]

    def test_delete_publishes_deleted_with_old_entity(self, store: InMemoryRepository) -> None:
        store.save_engine_version(EngineVersion(1, "3.8.0"))
        events = _record(store, EntityKind.ENGINE_VERSION)
        store.delete_engine_version(1)
        assert [e.action for e in events] == [Action.DELETED]
        assert events[0].subject.version == "3.8.0"

    def test_events_wait_for_outermost_transaction(self, store: InMemoryRepository) -> None:
        events = _record(store, EntityKind.MOD)
        with store.transaction():
            store.save_mod(Mod(10, "Core Lib"))
            with store.transaction():
                store.save_mod(Mod(11, "Loot Tweaks"))
            assert events == []
        assert len(events) == 4

    def test_failed_transaction_discards_events(self, store: InMemoryRepository) -> None:
        events = _record(store, EntityKind.MOD)
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.save_mod(Mod(10, "Core Lib"))
                raise RuntimeError("boom")
        assert events == []

    def test_failed_transaction_rolls_back_writes(self, store: InMemoryRepository) -> None:
        store.save_mod(Mod(10, "Core Lib"))
        store.save_artifact(mod_version(100, 10, "1.0.0"))
        store.replace_engine_links(100, {1})
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.save_mod(Mod(11, "Loot Tweaks"))
                store.save_mod(Mod(10, "Renamed"))
                store.replace_engine_links(100, {1, 2})
                store.delete_artifact(100)
                raise RuntimeError("boom")
        assert [m.id for m in store.list_mods()] == [10]
        assert store.get_mod(10).name == "Core Lib"
        assert store.get_artifact(100).version == "1.0.0"
        assert store.engine_links(100) == {1}

    def test_nested_failure_caught_inside_keeps_outer_writes(self, store: InMemoryRepository) -> None:
        events = _record(store, EntityKind.MOD)
        with store.transaction():
            store.save_mod(Mod(10, "Core Lib"))
            with pytest.raises(RuntimeError):
                with store.transaction():
                    raise RuntimeError("inner")
        assert store.get_mod(10).name == "Core Lib"
        assert [e.action for e in events] == [Action.CREATED, Action.SAVED]

    def test_association_replace_publishes_nothing(self, store: InMemoryRepository) -> None:
        store.save_mod(Mod(10, "Core Lib"))
        store.save_artifact(mod_version(100, 10, "1.0.0"))
        events = _record(store, EntityKind.ARTIFACT)
        store.replace_engine_links(100, {1, 2})
        assert events == []

    def test_failing_handler_does_not_block_others(self, store: InMemoryRepository) -> None:
        seen: list[EntityEvent] = []

        def explode(event: EntityEvent) -> None:
            raise RuntimeError("handler bug")

        store.bus.subscribe(EntityKind.MOD, explode)
        store.bus.subscribe(EntityKind.MOD, seen.append)
        saved = store.save_mod(Mod(10, "Core Lib"))
        assert saved.name == "Core Lib"
        assert len(seen) == 2

    def test_unsubscribe(self, store: InMemoryRepository) -> None:
        seen: list[EntityEvent] = []
        unsubscribe = store.bus.subscribe(EntityKind.MOD, seen.append, {Action.CREATED})
        store.save_mod(Mod(10, "Core Lib"))
        unsubscribe()
        store.save_mod(Mod(11, "Loot Tweaks"))
        assert [e.subject.id for e in seen] == [10]


class TestCrud:
    """Entity storage, copies and referential checks."""

    def test_returned_entities_are_copies(self, store: InMemoryRepository) -> None:
        store.save_mod(Mod(10, "Core Lib"))
        fetched = store.get_mod(10)
        fetched.name = "Changed"
        assert store.get_mod(10).name == "Core Lib"

    def test_version_prefix_is_stripped(self, store: InMemoryRepository) -> None:
        stored = store.save_engine_version(EngineVersion(1, " v3.8.0 "))
        assert stored.version == "3.8.0"

    @pytest.mark.parametrize(
        "lookup",
        ["get_engine_version", "get_mod", "get_addon", "get_artifact", "get_dependency"],
    )
    def test_missing_entity_raises(self, store: InMemoryRepository, lookup: str) -> None:
        with pytest.raises(EntityNotFound, match="does not exist"):
            getattr(store, lookup)(404)

    def test_artifact_requires_existing_parent(self, store: InMemoryRepository) -> None:
        with pytest.raises(EntityNotFound):
            store.save_artifact(mod_version(100, 10, "1.0.0"))
        with pytest.raises(EntityNotFound):
            store.save_artifact(addon_version(200, 20, "1.0.0"))

    def test_addon_requires_existing_mod(self, store: InMemoryRepository) -> None:
        with pytest.raises(EntityNotFound):
            store.save_addon(Addon(20, "Extra Loot", mod_id=10))
        assert store.save_addon(Addon(21, "Detached")).mod_id is None

    def test_dependency_requires_existing_artifact(self, store: InMemoryRepository) -> None:
        with pytest.raises(EntityNotFound):
            store.save_dependency(dependency(500, 100, 10, "^1.0.0"))

    def test_list_queries(self, catalog_store: InMemoryRepository) -> None:
        catalog_store.save_addon(Addon(20, "Extra Loot", mod_id=10))
        catalog_store.save_artifact(mod_version(101, 10, "1.1.0"))
        catalog_store.save_artifact(mod_version(100, 10, "1.0.0"))
        catalog_store.save_artifact(mod_version(102, 11, "2.0.0"))
        catalog_store.save_artifact(addon_version(200, 20, "0.1.0"))
        catalog_store.save_dependency(dependency(500, 102, 10, "^1.0.0"))

        assert [a.id for a in catalog_store.list_versions_of(10)] == [100, 101]
        assert [a.id for a in catalog_store.list_children(20)] == [200]
        assert [a.id for a in catalog_store.list_addon_versions_for_mod(10)] == [200]
        assert catalog_store.list_addon_versions_for_mod(11) == []
        assert [d.id for d in catalog_store.list_dependents_on(10)] == [500]
        assert [d.id for d in catalog_store.list_dependencies(102)] == [500]


class TestCascades:
    """Deleting an entity removes the association rows that reference it."""

    @pytest.fixture
    def linked(self, catalog_store: InMemoryRepository) -> InMemoryRepository:
        catalog_store.save_addon(Addon(20, "Extra Loot", mod_id=10))
        catalog_store.save_artifact(mod_version(100, 10, "1.0.0"))
        catalog_store.save_artifact(mod_version(102, 11, "2.0.0"))
        catalog_store.save_artifact(addon_version(200, 20, "0.1.0"))
        catalog_store.save_dependency(dependency(500, 102, 10, "^1.0.0"))
        catalog_store.replace_engine_links(100, {1, 2})
        catalog_store.replace_dependency_links(500, {100})
        catalog_store.replace_compat_links(200, {100})
        return catalog_store

    def test_delete_target_version_unlinks_it(self, linked: InMemoryRepository) -> None:
        linked.delete_artifact(100)
        assert linked.dependency_links(500) == set()
        assert linked.compat_links(200) == set()
        assert linked.engine_links(100) == set()

    def test_delete_owner_removes_its_dependencies(self, linked: InMemoryRepository) -> None:
        linked.delete_artifact(102)
        assert linked.list_all_dependencies() == []
        assert linked.dependency_links(500) == set()

    def test_delete_engine_version_unlinks_it(self, linked: InMemoryRepository) -> None:
        linked.delete_engine_version(1)
        assert linked.engine_links(100) == {2}
        assert linked.artifacts_linked_to_engine(2) == {100}

    def test_delete_missing_raises(self, store: InMemoryRepository) -> None:
        with pytest.raises(EntityNotFound):
            store.delete_artifact(1)
        with pytest.raises(EntityNotFound):
            store.delete_dependency(1)
        with pytest.raises(EntityNotFound):
            store.delete_engine_version(1)


class TestAssociationDiff:
    """Diff-and-apply replacement of association sets."""

    def test_apply_diff_mutates_in_place(self) -> None:
        current = {1, 2, 3}
        diff = apply_association_diff(current, [2, 3, 4])
        assert current == {2, 3, 4}
        assert diff == AssociationDiff(added=frozenset({4}), removed=frozenset({1}))
        assert diff.changed

    def test_unchanged_set_reports_no_change(self) -> None:
        current = {1, 2}
        diff = apply_association_diff(current, {2, 1})
        assert not diff.changed
        assert current == {1, 2}

    def test_replace_on_missing_owner_raises(self, store: InMemoryRepository) -> None:
        with pytest.raises(EntityNotFound):
            store.replace_engine_links(100, {1})
        with pytest.raises(EntityNotFound):
            store.replace_dependency_links(500, {1})
        with pytest.raises(EntityNotFound):
            store.replace_compat_links(200, {1})

    def test_replace_returns_diff(self, catalog_store: InMemoryRepository) -> None:
        catalog_store.save_artifact(mod_version(100, 10, "1.0.0"))
        first = catalog_store.replace_engine_links(100, {1, 2})
        second = catalog_store.replace_engine_links(100, {2, 3})
        assert first.added == {1, 2}
        assert second.added == {3}
        assert second.removed == {1}
        assert catalog_store.engine_links(100) == {2, 3}

    def test_engine_version_publish_state(self) -> None:
        assert EngineVersion(1, "3.8.0", publish_date=PAST).is_published(PAST)
        assert not EngineVersion(1, "3.8.0").is_published(PAST)
