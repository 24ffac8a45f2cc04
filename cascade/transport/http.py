"""
Async HTTP Transport - httpx-backed transport for services.

Each call runs as an asyncio task on the running event loop; the engine
is re-entered from that task when the response arrives. A call issued
with no running loop fails right away through the error callback.
Exceptions raised by completion callbacks are logged, since nothing
awaits the task.

Request encoding:
- GET / DELETE: data is sent as query parameters
- JSON content type: data is sent as a JSON body
- otherwise mappings are form-encoded, strings sent verbatim

Responses with a 2xx status are parsed as JSON when the data type says
so; everything else is reported through the error callback.
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any
import asyncio
import logging

import httpx

from .base import ABORTED, ErrorCallback, ServiceRequest, SuccessCallback

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/x-www-form-urlencoded"

NO_EVENT_LOOP = "No running event loop: AsyncHttpTransport must be used inside asyncio"


class SettledHandle:
    """CallHandle for a call that completed before invoke() returned."""

    def abort(self) -> None:
        pass

    def done(self) -> bool:
        return True


class TaskHandle:
    """CallHandle wrapping the asyncio task of one call."""

    def __init__(self, task: asyncio.Task):
        self.task = task

    def abort(self) -> None:
        self.task.cancel()

    def done(self) -> bool:
        return self.task.done()


class AsyncHttpTransport:
    """
    Transport running every call on an httpx.AsyncClient.

    The client is created lazily (inside the running loop) unless one is
    given; pass `client=httpx.AsyncClient(transport=httpx.MockTransport(...))`
    to stub the network.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = "",
        timeout: float | None = None,
    ):
        self._client = client
        self._owns_client = client is None
        # The loop only keeps weak references to tasks
        self._tasks: set[asyncio.Task] = set()
        self.base_url = base_url
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def invoke(
        self,
        request: ServiceRequest,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> TaskHandle | SettledHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            on_error(NO_EVENT_LOOP, None)
            return SettledHandle()

        task = loop.create_task(self._send(request, on_success, on_error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return TaskHandle(task)

    async def _send(
        self,
        request: ServiceRequest,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        try:
            url, kwargs = self._encode(request)
            response = await self.client.request(request.method, url, **kwargs)
        except asyncio.CancelledError:
            self._notify(request, on_error, ABORTED, None)
            raise
        except httpx.TimeoutException:
            self._notify(request, on_error, "timeout", None)
            return
        except httpx.HTTPError as exc:
            logger.debug("Service %s failed: %s", request.service_id, exc)
            self._notify(request, on_error, str(exc), None)
            return

        if not response.is_success:
            self._notify(request, on_error, response.text, response)
            return

        if "json" in (request.data_type or ""):
            try:
                payload = response.json()
            except ValueError as exc:
                self._notify(request, on_error, f"JSON parse error: {exc}", response)
                return
        else:
            payload = response.text

        self._notify(request, on_success, payload)

    @staticmethod
    def _notify(request: ServiceRequest, callback, *args: Any) -> None:
        """Run a completion callback; nothing awaits the task, so failures are logged here."""
        try:
            callback(*args)
        except Exception:
            logger.exception("Service %s: completion handler failed", request.service_id)

    def _encode(self, request: ServiceRequest) -> tuple[str, dict[str, Any]]:
        content_type = request.content_type or DEFAULT_CONTENT_TYPE
        kwargs: dict[str, Any] = {"headers": dict(request.headers)}
        if request.content_type:
            kwargs["headers"].setdefault("Content-Type", request.content_type)
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout

        url = request.url
        data = request.data
        if data is None or data == "":
            return url, kwargs

        if request.method in {"GET", "DELETE"}:
            if isinstance(data, Mapping):
                kwargs["params"] = dict(data)
            else:
                url += ("&" if "?" in url else "?") + str(data)
            return url, kwargs

        if isinstance(data, str):
            kwargs["content"] = data
        elif "json" in content_type:
            kwargs["json"] = data
        elif isinstance(data, Mapping):
            kwargs["data"] = dict(data)
        else:
            kwargs["content"] = str(data)
        return url, kwargs

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
