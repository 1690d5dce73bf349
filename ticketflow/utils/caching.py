"""Memoization layer for idempotent tracker reads.

Results of slow, rarely changing tracker calls (the current user, project
metadata) are cached across runs in a small key-value store. The cache is
never needed for correctness: it can be disabled or deleted at any time.

Key Exports:
    KeyValueStore: Protocol every store implements.
    MemoryStore: In-process store with TTL support.
    JsonFileStore: MemoryStore persisted to a JSON file between runs.
    memoize: Wrap an async function so its results go through a store.
    cache_key: Build keys as ``<prefix><Owner>_<method>_<json args>``.
    open_store: Create and open the process-wide store.

Example:
    >>> store = await open_store(Path("~/.ticketflow/cache.json").expanduser())
    >>> get_user = memoize(
    ...     lambda: cache_key("", "JiraTracker", "get_current_user"),
    ...     ONE_DAY,
    ...     fetch_user,
    ...     store,
    ... )
    >>> user = await get_user()
    >>> await store.close()

Concurrency:
    All store operations take an asyncio.Lock, so concurrent tasks on the
    same event loop can share a store. Stores are not safe across
    processes; the last process to close a JsonFileStore wins.
"""

import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, TypeVar

import aiofiles
import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")

ONE_DAY = 24 * 60 * 60
"""One day in seconds."""

DISABLE_CACHE_ENV = "TICKETFLOW_DISABLE_CACHE"


class KeyValueStore(Protocol):
    """Async key-value store with per-entry expiry."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def close(self) -> None: ...


def _now() -> float:
    return datetime.now(UTC).timestamp()


class MemoryStore:
    """In-process key-value store with TTL support.

    Entries are kept as ``(value, expires_at)`` pairs, where ``expires_at``
    is a POSIX timestamp or None for entries that never expire. Expired
    entries are removed lazily on access.

    Attributes:
        _entries: Mapping of keys to (value, expires_at) pairs.
        _lock: asyncio.Lock for synchronization.
        _hits: Count of cache hits.
        _misses: Count of cache misses (missing or expired keys).
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Any | None:
        """Get a value, or None when missing or expired.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value if found and not expired, None otherwise.
        """
        async with self._lock:
            if key in self._entries:
                value, expires_at = self._entries[key]
                if expires_at is None or _now() < expires_at:
                    self._hits += 1
                    log.debug("cache_hit", key=key)
                    return value
                del self._entries[key]
                self._on_change()
                log.debug("cache_expired", key=key)

            self._misses += 1
            log.debug("cache_miss", key=key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a value.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl_seconds: Seconds until the entry expires; None keeps it
                until the store is cleared.
        """
        async with self._lock:
            expires_at = _now() + ttl_seconds if ttl_seconds is not None else None
            self._entries[key] = (value, expires_at)
            self._on_change()
            log.debug("cache_set", key=key, ttl_seconds=ttl_seconds)

    async def delete(self, key: str) -> bool:
        """Delete a value.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        async with self._lock:
            if key in self._entries:
                del self._entries[key]
                self._on_change()
                log.debug("cache_delete", key=key)
                return True
            return False

    async def clear(self) -> None:
        """Remove every entry and reset statistics."""
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._on_change()
            log.info("cache_cleared", entries_cleared=count)

    async def close(self) -> None:
        """Release the store. Nothing to flush for an in-memory store."""

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with size, hits, misses and hit_rate.
        """
        total_requests = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total_requests if total_requests > 0 else 0.0,
        }

    def _on_change(self) -> None:
        """Hook called (with the lock held) whenever entries change."""


class JsonFileStore(MemoryStore):
    """MemoryStore loaded from and flushed to a JSON file.

    The file is read once by ``open()`` and written back by ``close()``
    if anything changed. Values must be JSON serializable. Writes go to a
    temporary file that is renamed over the target, so an interrupted
    flush never leaves a truncated cache behind.

    File Structure::

        {
            "<key>": {"value": ..., "expires_at": 1718000000.0},
            ...
        }

    Example:
        >>> store = JsonFileStore(Path.home() / ".ticketflow" / "cache.json")
        >>> await store.open()
        >>> await store.set("k", {"a": 1}, ttl_seconds=60)
        >>> await store.close()
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._dirty = False

    async def open(self) -> None:
        """Load entries from disk.

        A missing or corrupt file starts an empty cache; already expired
        entries are dropped on load.
        """
        if not self.path.exists():
            log.debug("cache_file_missing", path=str(self.path))
            return

        async with aiofiles.open(self.path) as f:
            content = await f.read()

        try:
            raw = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError:
            log.warning("cache_file_corrupt", path=str(self.path))
            self._dirty = True
            return

        now = _now()
        async with self._lock:
            for key, entry in raw.items():
                expires_at = entry.get("expires_at")
                if expires_at is None or now < expires_at:
                    self._entries[key] = (entry.get("value"), expires_at)
        log.debug("cache_loaded", path=str(self.path), entries=len(self._entries))

    async def close(self) -> None:
        """Flush entries to disk if they changed since ``open()``."""
        async with self._lock:
            if not self._dirty:
                return
            payload = {key: {"value": value, "expires_at": expires_at} for key, (value, expires_at) in self._entries.items()}
            self._dirty = False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        async with aiofiles.open(temp_path, "w") as f:
            await f.write(json.dumps(payload, indent=2, sort_keys=True))
        os.replace(temp_path, self.path)
        log.debug("cache_flushed", path=str(self.path), entries=len(payload))

    def _on_change(self) -> None:
        self._dirty = True


def cache_key(prefix: str, owner: str, method: str, *args: Any) -> str:
    """Build a cache key from a method name and its arguments.

    Args:
        prefix: Namespace, e.g. the tracker root URL, so different
            accounts never share entries.
        owner: Name of the class that owns the method.
        method: Method name.
        *args: Arguments of the call; must be JSON serializable.

    Returns:
        Key in the form ``<prefix><owner>_<method>[_<json arg>...]``.

    Example:
        >>> cache_key("", "JiraTracker", "get_project", "ABC")
        'JiraTracker_get_project_"ABC"'
    """
    key = f"{prefix}{owner}_{method}"
    if args:
        key += "_" + "_".join(json.dumps(arg, sort_keys=True) for arg in args)
    return key


def memoize(
    key_fn: Callable[..., str],
    ttl_seconds: int | None,
    func: Callable[..., Awaitable[T]],
    store: KeyValueStore | None,
) -> Callable[..., Awaitable[T]]:
    """Wrap an async function so its results are cached in ``store``.

    ``key_fn`` receives the same arguments as ``func`` and returns the
    cache key. None results are never cached (None means "miss" to the
    store). A None store disables caching and calls straight through.

    Args:
        key_fn: Derives the cache key from the call arguments.
        ttl_seconds: Entry lifetime; None never expires.
        func: The async function to wrap.
        store: Backing store, or None to disable caching.

    Returns:
        Async function with the same signature as ``func``.
    """

    async def wrapper(*args: Any, **kwargs: Any) -> T:
        if store is None:
            return await func(*args, **kwargs)

        key = key_fn(*args, **kwargs)
        cached_value = await store.get(key)
        if cached_value is not None:
            return cached_value

        result = await func(*args, **kwargs)
        if result is not None:
            await store.set(key, result, ttl_seconds)
        return result

    wrapper.__name__ = getattr(func, "__name__", "memoized")
    wrapper.__doc__ = func.__doc__
    return wrapper


async def open_store(path: Path | None, enabled: bool = True) -> KeyValueStore | None:
    """Create and open the process-wide cache store.

    Args:
        path: JSON file backing the store; None keeps the cache in memory.
        enabled: False (or TICKETFLOW_DISABLE_CACHE set) disables caching.

    Returns:
        An opened store, or None when caching is disabled.
    """
    if not enabled or os.environ.get(DISABLE_CACHE_ENV) is not None:
        log.debug("cache_disabled")
        return None

    if path is None:
        return MemoryStore()

    store = JsonFileStore(path)
    await store.open()
    return store
