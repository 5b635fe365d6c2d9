import pytest

from vmstore.core.repository.scanner import KeyspaceScanner
from vmstore.core.errors import StoreError


async def seed(store, *keys):
    for key in keys:
        await store.set(key, b"{}")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_batches_pages_until_terminal_cursor(store, scanner):
    await seed(store, "users:1", "users:2", "users:3", "users:4", "users:5")

    batches = [batch async for batch in scanner.batches("users:*")]

    assert batches == [["users:1", "users:2"], ["users:3", "users:4"], ["users:5"]]
    assert store.scan_calls == 3


@pytest.mark.ut
@pytest.mark.asyncio
async def test_batches_skips_empty_pages(store, scanner):
    await seed(store, "a:1", "a:2", "b:1", "b:2", "c:1")

    batches = [batch async for batch in scanner.batches("c:*")]

    assert batches == [["c:1"]]
    # empty pages are still requested, just not reported
    assert store.scan_calls == 3


@pytest.mark.ut
@pytest.mark.asyncio
async def test_batches_on_empty_keyspace(store, scanner):
    batches = [batch async for batch in scanner.batches("users:*")]

    assert batches == []
    assert store.scan_calls == 1


@pytest.mark.ut
@pytest.mark.asyncio
async def test_next_page_requested_only_when_consumer_continues(store, scanner):
    await seed(store, "users:1", "users:2", "users:3", "users:4")
    batches = scanner.batches("users:*")

    first = await anext(batches)
    assert first == ["users:1", "users:2"]
    assert store.scan_calls == 1

    second = await anext(batches)
    assert second == ["users:3", "users:4"]
    assert store.scan_calls == 2

    await batches.aclose()


@pytest.mark.ut
@pytest.mark.asyncio
async def test_scan_is_restartable(store, scanner):
    await seed(store, "users:1", "users:2", "users:3")

    assert await scanner.keys("users:*") == ["users:1", "users:2", "users:3"]
    assert await scanner.keys("users:*") == ["users:1", "users:2", "users:3"]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_scan_error_aborts_iteration(store, scanner):
    await seed(store, "users:1")
    store.scan_error = StoreError("connection lost")

    with pytest.raises(StoreError, match="connection lost"):
        await scanner.keys("users:*")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_first_stops_after_first_non_empty_batch(store, scanner):
    await seed(store, "a:1", "a:2", "users:7", "users:8", "users:9", "z:1")

    key = await scanner.first("users:*")

    assert key == "users:7"
    assert store.scan_calls == 2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_first_returns_none_without_match(store, scanner):
    await seed(store, "a:1")

    assert await scanner.first("users:*") is None


@pytest.mark.ut
@pytest.mark.asyncio
async def test_count_hint_is_forwarded(store):
    calls = []
    original = store.scan

    async def spy(cursor, match, count=None):
        calls.append(count)
        return await original(cursor, match, count)

    store.scan = spy
    scanner = KeyspaceScanner(store, count=100)

    await scanner.keys("users:*")

    assert calls == [100]
