# blog/client/query_cache.py

"""
Клиентский кэш запросов.

Ключи - кортежи: ("posts", ListQuery(...)) для лент и ("post", id) для
отдельных постов. Запись считается устаревшей после stale_time секунд
или после явной инвалидации; устаревшие данные остаются доступны,
но следующий запрос за ними пойдет в сеть.
"""

import copy
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterator, Optional

CacheKey = tuple[Hashable, ...]

DEFAULT_STALE_TIME = 5 * 60


@dataclass
class CacheEntry:
    data: Any
    updated_at: float
    invalidated: bool = False


def _matches(key: CacheKey, prefix: CacheKey) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    def __init__(
        self,
        stale_time: float = DEFAULT_STALE_TIME,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_time = stale_time
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.invalidated:
            return True
        return self._clock() - entry.updated_at >= self.stale_time

    def set(self, key: CacheKey, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, updated_at=self._clock())

    def update(self, key: CacheKey, updater: Callable[[Any], Any]) -> bool:
        """
        Заменить данные результатом updater(old). Свежесть записи не меняется.
        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.data = updater(entry.data)
        return True

    def snapshot(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        return copy.deepcopy(entry) if entry else None

    def restore(self, key: CacheKey, entry: Optional[CacheEntry]) -> None:
        if entry is None:
            self._entries.pop(key, None)
        else:
            self._entries[key] = entry

    def keys(self, prefix: CacheKey = ()) -> Iterator[CacheKey]:
        return (key for key in list(self._entries) if _matches(key, prefix))

    def invalidate(self, prefix: CacheKey) -> int:
        count = 0
        for key in self.keys(prefix):
            self._entries[key].invalidated = True
            count += 1
        return count

    def remove(self, prefix: CacheKey) -> int:
        keys = list(self.keys(prefix))
        for key in keys:
            del self._entries[key]
        return len(keys)
