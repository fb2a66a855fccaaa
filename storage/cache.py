"""
Cache
Collapsing in-memory cache for resolved info.
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging
import time


logger = logging.getLogger(__name__)


class BaseCache(ABC):
    """
    Keyed store for finished results.

    ``get_or_set`` runs at most one computation per key: concurrent
    callers for the same key await the same in-flight task.
    """

    def __init__(self, ttl: Optional[int] = None):
        """
        Args:
            ttl: entry lifetime in seconds, None = never expire
        """
        self.ttl = ttl
        self._inflight: Dict[str, asyncio.Future] = {}

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Return the cached value, computing it with ``factory`` on a miss.

        Failed computations are not stored; the next caller recomputes.
        """
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._compute(key, factory, ttl))
            self._inflight[key] = pending
        else:
            logger.debug(f"Joining in-flight computation: {key}")
        # shield so one cancelled waiter does not cancel the shared task
        return await asyncio.shield(pending)

    async def _compute(self, key: str, factory: Callable[[], Awaitable[Any]], ttl: Optional[int]) -> Any:
        try:
            value = await factory()
            if value is not None:
                self.set(key, value, ttl)
            return value
        finally:
            self._inflight.pop(key, None)

    @staticmethod
    def make_key(*parts: Any) -> str:
        """``make_key("getInfo", id, "en")`` -> ``"getInfo-<id>-en"``"""
        return "-".join("" if part is None else str(part) for part in parts)


@dataclass
class _Entry:
    value: Any
    expires_at: Optional[float] = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryCache(BaseCache):
    """Least-recently-used dictionary cache with optional expiry."""

    def __init__(self, ttl: Optional[int] = None, max_size: int = 1000, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl)
        self.max_size = max(1, int(max_size))
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        lifetime = ttl if ttl is not None else self.ttl
        expires_at = self._clock() + lifetime if lifetime is not None else None
        self._entries[key] = _Entry(value=value, expires_at=expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry: {evicted}")

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)
