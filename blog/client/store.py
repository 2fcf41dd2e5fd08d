# blog/client/store.py

"""
Клиентское состояние постов поверх QueryCache.

- ленты кэшируются по набору параметров, посты - по id;
- ответ на старый запрос не перезаписывает кэш, если по тому же ключу
  уже ушел более новый запрос;
- лайк применяется к кэшу сразу (оптимистично), затем сверяется с
  ответом сервера; при ошибке кэш возвращается ровно к состоянию до клика.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, NamedTuple, Optional

import httpx

from blog.client.api import ApiError, BlogApiClient
from blog.client.query_cache import CacheEntry, CacheKey, QueryCache

logger = logging.getLogger(__name__)

POSTS_PREFIX: CacheKey = ("posts",)


class ListQuery(NamedTuple):
    page: int = 1
    limit: int = 10
    search: Optional[str] = None
    tags: tuple[str, ...] = ()
    author_id: Optional[int] = None
    sort_by: str = "createdAt"
    sort_order: str = "DESC"

    def as_params(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "search": self.search,
            "tags": ",".join(self.tags) if self.tags else None,
            "authorId": self.author_id,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }


def list_key(query: ListQuery) -> CacheKey:
    return ("posts", query)


def post_key(post_id: int) -> CacheKey:
    return ("post", post_id)


def _patch_post(data: Any, post_id: int, patch: Callable[[dict], dict]) -> Any:
    """Применить patch к посту post_id в ленте или в детальной записи."""
    if isinstance(data, dict) and "posts" in data:
        return {
            **data,
            "posts": [patch(p) if p.get("id") == post_id else p for p in data["posts"]],
        }
    if isinstance(data, dict) and data.get("id") == post_id:
        return patch(data)
    return data


def _contains_post(data: Any, post_id: int) -> bool:
    if isinstance(data, dict) and "posts" in data:
        return any(p.get("id") == post_id for p in data["posts"])
    return isinstance(data, dict) and data.get("id") == post_id


def _flip_like(post: dict) -> dict:
    liked = bool(post.get("isLikedByCurrentUser"))
    count = post.get("likesCount") or 0
    return {
        **post,
        "isLikedByCurrentUser": not liked,
        "likesCount": max(count - 1, 0) if liked else count + 1,
    }


def _server_like(liked: bool, likes_count: int) -> Callable[[dict], dict]:
    def patch(post: dict) -> dict:
        return {**post, "isLikedByCurrentUser": liked, "likesCount": likes_count}
    return patch


@dataclass
class _PendingLikes:
    base: dict[CacheKey, Optional[CacheEntry]] = field(default_factory=dict)
    in_flight: int = 0
    rolled_back: bool = False


class PostsStore:
    def __init__(self, api: BlogApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()
        self._fetch_seq: dict[CacheKey, int] = {}
        self._like_seq: dict[int, int] = {}
        self._pending_likes: dict[int, _PendingLikes] = {}

    # ==== чтение ====

    def _start_fetch(self, key: CacheKey) -> int:
        seq = self._fetch_seq.get(key, 0) + 1
        self._fetch_seq[key] = seq
        return seq

    def _cancel_fetches(self, keys: list[CacheKey]) -> None:
        # более новый номер - значит ответы уже ушедших запросов будут отброшены
        for key in keys:
            self._start_fetch(key)

    async def _fetch(self, key: CacheKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        seq = self._start_fetch(key)
        data = await loader()
        if self._fetch_seq.get(key) == seq:
            self.cache.set(key, data)
        else:
            logger.debug("Dropping outdated response for %s", key)
        return data

    async def list_posts(self, query: ListQuery = ListQuery(), force: bool = False) -> dict:
        key = list_key(query)
        if not force and not self.cache.is_stale(key):
            return self.cache.get(key)
        return await self._fetch(key, lambda: self.api.list_posts(query.as_params()))

    async def get_post(self, post_id: int, force: bool = False) -> dict:
        key = post_key(post_id)
        if not force and not self.cache.is_stale(key):
            return self.cache.get(key)

        async def load():
            return (await self.api.get_post(post_id))["post"]

        return await self._fetch(key, load)

    # ==== изменения ====

    async def create_post(self, payload: dict) -> dict:
        result = await self.api.create_post(payload)
        self.cache.invalidate(POSTS_PREFIX)
        return result["post"]

    async def update_post(self, post_id: int, payload: dict) -> dict:
        result = await self.api.update_post(post_id, payload)
        post = result["post"]
        # комментарии и лайки в детальной записи остаются прежними
        self.cache.update(post_key(post_id), lambda data: {**data, **post})
        self.cache.invalidate(POSTS_PREFIX)
        return post

    async def delete_post(self, post_id: int) -> None:
        await self.api.delete_post(post_id)
        self.cache.remove(post_key(post_id))
        self.cache.invalidate(POSTS_PREFIX)

    async def toggle_like(self, post_id: int) -> dict:
        """
        Оптимистичный лайк. Возвращает ответ сервера {liked, likesCount}.

        Пока по посту есть незавершенные toggle, хранится база для отката:
        состояние до первого из них, дополненное ответами, которые сервер
        уже подтвердил. Ошибка последнего toggle возвращает кэш к этой базе,
        ответ или ошибка более старого toggle кэш не трогают.
        """
        keys = [key for key in self.cache.keys() if _contains_post(self.cache.get(key), post_id)]
        pending = self._pending_likes.setdefault(post_id, _PendingLikes())
        for key in keys:
            if key not in pending.base:
                pending.base[key] = self.cache.snapshot(key)
        pending.in_flight += 1
        pending.rolled_back = False

        self._cancel_fetches(keys)
        for key in keys:
            self.cache.update(key, lambda data: _patch_post(data, post_id, _flip_like))

        seq = self._like_seq.get(post_id, 0) + 1
        self._like_seq[post_id] = seq

        try:
            result = await self.api.like_post(post_id)
        except (ApiError, httpx.HTTPError):
            if self._like_seq.get(post_id) == seq:
                for key, snapshot in pending.base.items():
                    self.cache.restore(key, copy.deepcopy(snapshot))
                pending.rolled_back = True
            raise
        else:
            patch = _server_like(result["liked"], result["likesCount"])
            for snapshot in pending.base.values():
                if snapshot is not None:
                    snapshot.data = _patch_post(snapshot.data, post_id, patch)
            # после отката кэш совпадает с базой, подтверждение применяется и к нему
            if self._like_seq.get(post_id) == seq or pending.rolled_back:
                for key in self.cache.keys():
                    if _contains_post(self.cache.get(key), post_id):
                        self.cache.update(key, lambda data: _patch_post(data, post_id, patch))
        finally:
            pending.in_flight -= 1
            if pending.in_flight == 0:
                self._pending_likes.pop(post_id, None)
            self.cache.invalidate(post_key(post_id))
            self.cache.invalidate(POSTS_PREFIX)

        return result
