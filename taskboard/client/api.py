"""Async HTTP client for the task board REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from taskboard.client.events import parse_sse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from taskboard.client.events import RemoteEvent

API_PREFIX = "/api/v1"
TRANSPORT_ERROR_CODE = "transport_error"


class BoardApiError(Exception):
    """Failed API call, carrying the server's detail and code.

    Transport failures (connection refused, timeouts) have `status_code` 0.
    """

    def __init__(self, status_code: int, detail: object, code: str | None = None) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.code = code

    @classmethod
    def from_response(cls, response: httpx.Response) -> BoardApiError:
        detail: object = response.text
        code: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail", detail)
            code = body.get("code")
        return cls(response.status_code, detail, code)

    @classmethod
    def from_transport(cls, exc: httpx.HTTPError) -> BoardApiError:
        return cls(0, str(exc) or type(exc).__name__, TRANSPORT_ERROR_CODE)


class BoardApiClient:
    """Thin wrapper mapping each board operation to one HTTP call."""

    def __init__(self, client: httpx.AsyncClient, *, prefix: str = API_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def connect(
        cls,
        base_url: str,
        *,
        token: str,
        user_id: str,
        email: str | None = None,
        name: str | None = None,
        timeout: float = 10.0,
    ) -> BoardApiClient:
        headers = {"Authorization": f"Bearer {token}", "X-User-Id": user_id}
        if email:
            headers["X-User-Email"] = email
        if name:
            headers["X-User-Name"] = name
        return cls(httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                f"{self._prefix}{path}",
                json=json,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise BoardApiError.from_transport(exc) from exc
        if response.is_error:
            raise BoardApiError.from_response(response)
        return response.json()

    async def get_board(self, board_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/boards/{board_id}")

    async def create_list(self, board_id: str, title: str) -> dict[str, Any]:
        return await self._request("POST", "/lists", json={"board_id": board_id, "title": title})

    async def update_list(
        self,
        list_id: str,
        *,
        title: str | None = None,
        position: int | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if position is not None:
            body["position"] = position
        return await self._request("PATCH", f"/lists/{list_id}", json=body)

    async def delete_list(self, list_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/lists/{list_id}")

    async def create_task(
        self,
        list_id: str,
        title: str,
        *,
        description: str | None = None,
        due_date: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"list_id": list_id, "title": title}
        if description is not None:
            body["description"] = description
        if due_date is not None:
            body["due_date"] = due_date
        return await self._request("POST", "/tasks", json=body)

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]:
        return await self._request("PATCH", f"/tasks/{task_id}", json=fields)

    async def move_task(self, task_id: str, list_id: str, position: int) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/tasks/{task_id}/move",
            json={"list_id": list_id, "position": position},
        )

    async def delete_task(self, task_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/tasks/{task_id}")

    async def assign_task(self, task_id: str, user_id: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/tasks/{task_id}/assignees",
            json={"user_id": user_id},
        )

    async def unassign_task(self, task_id: str, user_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/tasks/{task_id}/assignees/{user_id}")

    async def stream_events(self, board_id: str) -> AsyncIterator[RemoteEvent]:
        """Yield board events until the server closes the stream."""
        try:
            async with self._client.stream(
                "GET",
                f"{self._prefix}/boards/{board_id}/events",
                timeout=None,
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise BoardApiError.from_response(response)
                async for event in parse_sse(response.aiter_lines()):
                    yield event
        except httpx.HTTPError as exc:
            raise BoardApiError.from_transport(exc) from exc
