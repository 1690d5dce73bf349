"""
Tests for the memoization layer.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from ticketflow.utils.caching import (
    ONE_DAY,
    JsonFileStore,
    MemoryStore,
    cache_key,
    memoize,
    open_store,
)


@pytest.mark.asyncio
async def test_store_set_and_get():
    """Test basic store set and get operations."""
    store = MemoryStore()

    await store.set("key1", "value1", ttl_seconds=60)

    assert await store.get("key1") == "value1"


@pytest.mark.asyncio
async def test_store_miss():
    store = MemoryStore()

    assert await store.get("nonexistent") is None


@pytest.mark.asyncio
async def test_store_entry_expires():
    """Entries are dropped once their expiry time has passed."""
    store = MemoryStore()

    with patch("ticketflow.utils.caching._now", return_value=1000.0):
        await store.set("key1", "value1", ttl_seconds=10)

    with patch("ticketflow.utils.caching._now", return_value=1009.0):
        assert await store.get("key1") == "value1"

    with patch("ticketflow.utils.caching._now", return_value=1011.0):
        assert await store.get("key1") is None


@pytest.mark.asyncio
async def test_store_without_ttl_never_expires():
    store = MemoryStore()

    with patch("ticketflow.utils.caching._now", return_value=0.0):
        await store.set("key1", "value1")

    with patch("ticketflow.utils.caching._now", return_value=10.0 * ONE_DAY):
        assert await store.get("key1") == "value1"


@pytest.mark.asyncio
async def test_store_delete_and_clear():
    store = MemoryStore()
    await store.set("key1", "value1")
    await store.set("key2", "value2")

    assert await store.delete("key1") is True
    assert await store.delete("key1") is False

    await store.clear()

    assert await store.get("key2") is None
    assert store.get_stats()["size"] == 0


@pytest.mark.asyncio
async def test_store_stats():
    store = MemoryStore()
    await store.set("key1", "value1")

    await store.get("key1")
    await store.get("missing")

    stats = store.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5


# =============================================================================
# JsonFileStore
# =============================================================================


@pytest.mark.asyncio
async def test_json_store_persists_between_runs(tmp_path):
    path = tmp_path / "cache" / "cache.json"

    first = JsonFileStore(path)
    await first.open()
    await first.set("user", {"accountId": "42"}, ttl_seconds=ONE_DAY)
    await first.close()

    second = JsonFileStore(path)
    await second.open()

    assert await second.get("user") == {"accountId": "42"}
    assert not path.with_suffix(".tmp").exists()


@pytest.mark.asyncio
async def test_json_store_drops_expired_entries_on_load(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(
        json.dumps(
            {
                "fresh": {"value": 1, "expires_at": None},
                "stale": {"value": 2, "expires_at": 1.0},
            }
        )
    )

    store = JsonFileStore(path)
    await store.open()

    assert await store.get("fresh") == 1
    assert await store.get("stale") is None


@pytest.mark.asyncio
async def test_json_store_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    store = JsonFileStore(path)
    await store.open()
    await store.close()

    assert json.loads(path.read_text()) == {}


@pytest.mark.asyncio
async def test_json_store_unchanged_is_not_rewritten(tmp_path):
    path = tmp_path / "cache.json"

    store = JsonFileStore(path)
    await store.open()
    await store.get("anything")
    await store.close()

    assert not path.exists()


# =============================================================================
# memoize / cache_key
# =============================================================================


def test_cache_key_format():
    assert cache_key("", "JiraTracker", "get_current_user") == "JiraTracker_get_current_user"
    assert cache_key("https://jira|", "JiraTracker", "get_project", "ABC") == 'https://jira|JiraTracker_get_project_"ABC"'


@pytest.mark.asyncio
async def test_memoize_hits_store_on_second_call():
    store = MemoryStore()
    fetch = AsyncMock(return_value={"id": "10000"})
    get_project = memoize(lambda key: cache_key("", "T", "get_project", key), ONE_DAY, fetch, store)

    first = await get_project("ABC")
    second = await get_project("ABC")

    assert first == second == {"id": "10000"}
    fetch.assert_awaited_once_with("ABC")


@pytest.mark.asyncio
async def test_memoize_calls_through_after_expiry():
    store = MemoryStore()
    fetch = AsyncMock(side_effect=[1, 2])
    value = memoize(lambda: "k", 60, fetch, store)

    with patch("ticketflow.utils.caching._now", return_value=0.0):
        assert await value() == 1

    with patch("ticketflow.utils.caching._now", return_value=61.0):
        assert await value() == 2

    assert fetch.await_count == 2


@pytest.mark.asyncio
async def test_memoize_without_store_always_calls_through():
    fetch = AsyncMock(side_effect=[1, 2])
    value = memoize(lambda: "k", 60, fetch, None)

    assert await value() == 1
    assert await value() == 2


@pytest.mark.asyncio
async def test_memoize_keys_by_arguments():
    store = MemoryStore()
    fetch = AsyncMock(side_effect=lambda key: {"key": key})
    get_project = memoize(lambda key: cache_key("", "T", "get_project", key), ONE_DAY, fetch, store)

    assert await get_project("ABC") == {"key": "ABC"}
    assert await get_project("XYZ") == {"key": "XYZ"}
    assert fetch.await_count == 2


@pytest.mark.asyncio
async def test_memoize_does_not_cache_none():
    store = MemoryStore()
    fetch = AsyncMock(return_value=None)
    value = memoize(lambda: "k", 60, fetch, store)

    await value()
    await value()

    assert fetch.await_count == 2


# =============================================================================
# open_store
# =============================================================================


@pytest.mark.asyncio
async def test_open_store_disabled_by_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TICKETFLOW_DISABLE_CACHE", "1")

    assert await open_store(tmp_path / "cache.json") is None


@pytest.mark.asyncio
async def test_open_store_disabled_by_flag(tmp_path):
    assert await open_store(tmp_path / "cache.json", enabled=False) is None


@pytest.mark.asyncio
async def test_open_store_file_and_memory(tmp_path):
    assert isinstance(await open_store(tmp_path / "cache.json"), JsonFileStore)
    assert type(await open_store(None)) is MemoryStore
