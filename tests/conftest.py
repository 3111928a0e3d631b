"""Shared fixtures for forgecompat tests."""

from __future__ import annotations

import pytest

from forgecompat.core.catalog import VersionCatalog
from forgecompat.core.resolution import ChangePropagator
from forgecompat.core.store import Addon, InMemoryRepository, Mod
from tests.helpers import NOW, add_catalog


@pytest.fixture
def store() -> InMemoryRepository:
    """Empty repository with its own event bus."""
    return InMemoryRepository()


@pytest.fixture
def catalog_store(store: InMemoryRepository) -> InMemoryRepository:
    """Repository holding the standard catalog and two mods (10, 11)."""
    add_catalog(store)
    store.save_mod(Mod(10, "Core Lib", "com.core"))
    store.save_mod(Mod(11, "Loot Tweaks", "com.loot"))
    return store


@pytest.fixture
def catalog(catalog_store: InMemoryRepository) -> VersionCatalog:
    return VersionCatalog(catalog_store, clock=lambda: NOW)


@pytest.fixture
def propagator(store: InMemoryRepository) -> ChangePropagator:
    """Propagator subscribed to an empty store, which is then given the
    standard catalog, mods 10 and 11, and addon 20 attached to mod 10."""
    wired = ChangePropagator(store, VersionCatalog(store, clock=lambda: NOW), bus=store.bus)
    add_catalog(store)
    store.save_mod(Mod(10, "Core Lib", "com.core"))
    store.save_mod(Mod(11, "Loot Tweaks", "com.loot"))
    store.save_addon(Addon(20, "Extra Loot", mod_id=10))
    return wired
