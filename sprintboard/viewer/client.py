# sprintboard/viewer/client.py
"""Async HTTP and WebSocket client for the Sprintboard API"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiohttp
import backoff
from loguru import logger
from pydantic import TypeAdapter

from sprintboard.api.v1.schemas.sprints import SprintRead, SprintWithTasks
from sprintboard.api.v1.schemas.tasks import TaskDetail
from sprintboard.core.config import settings
from sprintboard.db.models.enums import TaskStatus
from sprintboard.realtime.events import now_ms

_task_list = TypeAdapter(List[TaskDetail])
_sprint_list = TypeAdapter(List[SprintRead])


class ViewerClientError(Exception):
    """The API answered with an error status"""

    def __init__(self, status: int, detail: Any):
        super().__init__(f"HTTP {status}: {detail}")
        self.status = status
        self.detail = detail


class ChannelClosed(Exception):
    """The push channel ended; the listener reconnects"""

    def __init__(self, code: Optional[int]):
        super().__init__(f"Push channel closed (code={code})")
        self.code = code


def _log_reconnect(details: Dict[str, Any]) -> None:
    logger.warning(
        f"Push channel lost, reconnecting in {details['wait']:.1f}s "
        f"(attempt {details['tries']}): {details.get('exception')}"
    )


class ViewerClient:
    """
    Talks to one Sprintboard deployment: JSON reads and the status write used
    by drag-and-drop, plus a push channel listener that reconnects with
    exponential backoff. Use as an async context manager.
    """

    def __init__(
            self,
            base_url: str,
            token: Optional[str] = None,
            ping_interval: Optional[float] = None,
            timeout: float = 10.0
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.ping_interval = ping_interval or settings.WS_PING_INTERVAL_SECONDS
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._stopping = False

    @property
    def ws_url(self) -> str:
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url[len("https://"):] + "/ws"
        if self.base_url.startswith("http://"):
            return "ws://" + self.base_url[len("http://"):] + "/ws"
        return self.base_url + "/ws"

    async def __aenter__(self) -> "ViewerClient":
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        self._stopping = True
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("ViewerClient is not open; use 'async with ViewerClient(...)'")
        return self._session

    async def _request(self, method: str, path: str, json: Optional[Dict] = None, params: Optional[Dict] = None):
        url = f"{self.base_url}/api{path}"
        async with self.session.request(method, url, json=json, params=params) as response:
            if response.status >= 400:
                try:
                    body = await response.json()
                    detail = body.get("detail", body)
                except (aiohttp.ContentTypeError, ValueError):
                    detail = await response.text()
                logger.debug(f"{method} {path} failed with {response.status}: {detail}")
                raise ViewerClientError(response.status, detail)
            return await response.json()

    # Reads

    async def get_tasks(self, sprint_id: Optional[int] = None) -> List[TaskDetail]:
        params = {"sprintId": sprint_id} if sprint_id is not None else None
        return _task_list.validate_python(await self._request("GET", "/tasks", params=params))

    async def get_task(self, task_id: int) -> TaskDetail:
        return TaskDetail.model_validate(await self._request("GET", f"/tasks/{task_id}"))

    async def get_sprints(self) -> List[SprintRead]:
        return _sprint_list.validate_python(await self._request("GET", "/sprints"))

    async def get_sprint(self, sprint_id: int) -> SprintRead:
        return SprintRead.model_validate(await self._request("GET", f"/sprints/{sprint_id}"))

    async def get_active_sprint(self) -> Optional[SprintWithTasks]:
        """The active sprint board, or None when no sprint is active"""
        try:
            return SprintWithTasks.model_validate(await self._request("GET", "/sprints/active"))
        except ViewerClientError as e:
            if e.status == 404:
                return None
            raise

    # Writes

    async def update_task_status(self, task_id: int, status: TaskStatus) -> TaskDetail:
        body = {"status": TaskStatus(status).value}
        return TaskDetail.model_validate(await self._request("PATCH", f"/tasks/{task_id}/status", json=body))

    # Push channel

    async def listen(
            self,
            on_frame: Callable[[str], Awaitable[None]],
            on_open: Optional[Callable[[], Awaitable[None]]] = None
    ) -> None:
        """Deliver every text frame to `on_frame` until `close()` is called.

        `on_open` runs after each successful (re)connect. Events published
        while disconnected are not replayed, so it is the place to refetch.
        """
        while not self._stopping:
            try:
                await self._connect_and_listen(on_frame, on_open)
            except ChannelClosed as e:
                if self._stopping:
                    break
                logger.info(f"{e}; reconnecting")

    @backoff.on_exception(
        backoff.expo,
        (aiohttp.ClientError, asyncio.TimeoutError, OSError),
        max_value=30,
        on_backoff=_log_reconnect
    )
    async def _connect_and_listen(self, on_frame, on_open) -> None:
        if self._stopping:
            return
        async with self.session.ws_connect(self.ws_url) as ws:
            logger.info(f"Push channel connected to {self.ws_url}")
            if on_open is not None:
                await on_open()

            pinger = asyncio.create_task(self._keep_alive(ws))
            try:
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        await on_frame(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise aiohttp.ClientConnectionError(f"Push channel error: {ws.exception()}")
            finally:
                pinger.cancel()
                await asyncio.gather(pinger, return_exceptions=True)

        raise ChannelClosed(ws.close_code)

    async def _keep_alive(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while not ws.closed:
            await asyncio.sleep(self.ping_interval)
            await ws.send_json({"type": "ping", "timestamp": now_ms()})
