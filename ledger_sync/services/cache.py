"""In-process TTL cache.

Used for short-lived values such as the bank feed access token. The cache is
passed to its users explicitly so tests can supply a fresh instance.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any


@dataclass
class _CacheEntry:
    value: Any
    expires_at: datetime


class TTLCache:
    def __init__(self, default_ttl_seconds: int = 3_600, max_size: int = 1_000) -> None:
        self._default_ttl = timedelta(seconds=default_ttl_seconds)
        self._max_size = max_size
        self._store: dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if not entry:
            return None
        if entry.expires_at <= datetime.now(UTC):
            self._store.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        if len(self._store) >= self._max_size and key not in self._store:
            now = datetime.now(UTC)
            self._store = {k: v for k, v in self._store.items() if v.expires_at > now}

            if len(self._store) >= self._max_size:
                num_to_remove = max(1, int(self._max_size * 0.2))
                for k in list(self._store.keys())[:num_to_remove]:
                    self._store.pop(k, None)

        ttl = self._default_ttl if ttl_seconds is None else timedelta(seconds=ttl_seconds)
        self._store[key] = _CacheEntry(value=value, expires_at=datetime.now(UTC) + ttl)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


# Shared by the application; tests construct their own.
default_cache = TTLCache()
