import pytest

from vmstore.core.repository.allocator import IdAllocator
from vmstore.core.repository.registry import CollectionCleaner, CollectionRegistry


@pytest.fixture
def registry():
    return CollectionRegistry()


@pytest.fixture
def cleaner(store, registry):
    return CollectionCleaner(store, IdAllocator(store), registry)


@pytest.mark.ut
def test_register_is_append_only_and_ordered(registry):
    assert registry.register("users") is True
    assert registry.register("orders") is True
    assert registry.register("users") is False

    assert list(registry) == ["users", "orders"]
    assert len(registry) == 2
    assert "orders" in registry
    assert "carts" not in registry


@pytest.mark.ut
@pytest.mark.asyncio
async def test_clear_deletes_collection_keys_only(cleaner, store):
    for key in ("users:1", "users:2", "users:3", "orders:1", "nextItemId:users"):
        await store.set(key, b"1")

    deleted = await cleaner.clear("users")

    assert deleted == 3
    assert sorted(store.dump()) == ["nextItemId:users", "orders:1"]
    # listing is a single non-paginated call
    assert store.keys_calls == 1
    assert store.scan_calls == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_clear_empty_collection(cleaner):
    assert await cleaner.clear("users") == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_clear_all_covers_registered_collections(cleaner, registry, store):
    registry.register("users")
    registry.register("orders")
    for key in (
        "users:1", "nextItemId:users",
        "orders:1", "orders:2", "nextItemId:orders",
        "carts:1", "nextItemId:carts",
    ):
        await store.set(key, b"1")

    await cleaner.clear_all()

    assert sorted(store.dump()) == ["carts:1", "nextItemId:carts"]
