"""Bounded in-memory cache with per-entry TTL and LRU eviction."""

import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_MAX_AGE = re.compile(r"(?:^|,)\s*(?:s-maxage|max-age)\s*=\s*\"?(\d+)", re.I)


def ttl_from_cache_control(header: Optional[str]) -> Optional[float]:
    """Derive an entry TTL from a ``Cache-Control`` header value.

    Returns ``0`` when the response must not be cached, the ``max-age`` in
    seconds when one is given, and ``None`` when the header says nothing
    useful (the cache default applies).

    Examples:
        >>> ttl_from_cache_control("public, max-age=300")
        300.0
        >>> ttl_from_cache_control("no-store")
        0
        >>> ttl_from_cache_control(None) is None
        True
    """
    if not header:
        return None
    lower = header.lower()
    if "no-store" in lower or "no-cache" in lower:
        return 0
    match = _MAX_AGE.search(lower)
    if match:
        return float(match.group(1))
    return None


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """LRU cache whose entries each carry their own expiry time.

    Usage::

        cache = TTLCache(max_size=128, ttl_seconds=600)
        cache.set("https://example.com/", page, ttl=60)
        page = cache.get("https://example.com/")
    """

    def __init__(
        self,
        max_size: int = 128,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def _is_expired(self, entry: _Entry) -> bool:
        return self._clock() >= entry.expires_at

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value*; *ttl* overrides the default lifetime, ``0`` skips caching."""
        lifetime = self._ttl if ttl is None else ttl
        if lifetime <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + lifetime)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache evicted least recently used entry: %s", evicted)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_size(self) -> int:
        return self._max_size
