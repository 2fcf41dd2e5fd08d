# blog/client/api.py

"""
Асинхронный HTTP-клиент к Blog API.

Возвращает JSON как есть (camelCase). Любой ответ не 2xx превращается
в ApiError со статусом и текстом ошибки из тела.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

API_BASE = "/api/v1"


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str, errors: Optional[list] = None):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.errors = errors or []


class BlogApiClient:
    TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http: Optional[httpx.AsyncClient] = None,
        token: Optional[str] = None,
    ):
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=self.TIMEOUT)
        self.token = token

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "BlogApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(
            method,
            f"{API_BASE}{path}",
            headers=self._headers(),
            **kwargs,
        )
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            detail = body.get("detail") or response.reason_phrase
            logger.debug("%s %s failed: %s %s", method, path, response.status_code, detail)
            raise ApiError(response.status_code, detail, body.get("errors"))
        return response.json()

    # ==== auth ====

    async def register(self, **payload) -> dict:
        data = await self._request("POST", "/auth/register", json=payload)
        self.token = data["token"]
        return data

    async def login(self, email: str, password: str) -> dict:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data

    def logout(self) -> None:
        self.token = None

    async def me(self) -> dict:
        return await self._request("GET", "/users/me")

    # ==== posts ====

    async def list_posts(self, params: Optional[dict[str, Any]] = None) -> dict:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        return await self._request("GET", "/posts", params=query)

    async def get_post(self, post_id: int) -> dict:
        return await self._request("GET", f"/posts/{post_id}")

    async def create_post(self, payload: dict) -> dict:
        return await self._request("POST", "/posts", json=payload)

    async def update_post(self, post_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/posts/{post_id}", json=payload)

    async def delete_post(self, post_id: int) -> dict:
        return await self._request("DELETE", f"/posts/{post_id}")

    async def like_post(self, post_id: int) -> dict:
        return await self._request("POST", f"/posts/{post_id}/like")

    # ==== comments ====

    async def list_comments(self, post_id: int) -> dict:
        return await self._request("GET", f"/comments/post/{post_id}")

    async def create_comment(self, post_id: int, content: str, parent_id: Optional[int] = None) -> dict:
        payload = {"postId": post_id, "content": content}
        if parent_id is not None:
            payload["parentId"] = parent_id
        return await self._request("POST", "/comments", json=payload)

    async def update_comment(self, comment_id: int, content: str) -> dict:
        return await self._request("PUT", f"/comments/{comment_id}", json={"content": content})

    async def delete_comment(self, comment_id: int) -> dict:
        return await self._request("DELETE", f"/comments/{comment_id}")
