# sprintboard/realtime/notifier.py
"""In-process fanout of change events to connected viewers"""
import asyncio
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from loguru import logger
from prometheus_client import Counter, Gauge
from pydantic import ValidationError

from sprintboard.core.config import settings
from sprintboard.realtime.events import ConnectedMessage, PingMessage, PongMessage

VIEWERS_CONNECTED = Gauge(
    'sprintboard_viewers_connected',
    'Viewer sessions currently registered on the push channel'
)

EVENTS_PUBLISHED = Counter(
    'sprintboard_events_published_total',
    'Change events published to the push channel',
    ['type']
)

VIEWERS_DROPPED = Counter(
    'sprintboard_viewers_dropped_total',
    'Viewer sessions dropped because they fell behind or their socket failed',
    ['reason']
)

# Close code sent to a viewer that could not keep up (RFC 6455 "try again later")
CLOSE_TRY_AGAIN_LATER = 1013


class ViewerConnection:
    """One registered viewer: a bounded outbox drained by its own sender task.

    Frames are written to the socket in the order they were offered, so each
    viewer sees events in publish order regardless of how slow other viewers
    are.
    """

    def __init__(self, websocket, queue_size: int, on_failure: Callable[["ViewerConnection", str], None]):
        self.id = uuid4().hex[:12]
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False
        self._on_failure = on_failure
        self._sender: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._sender = asyncio.create_task(self._drain(), name=f"viewer-{self.id}")

    def offer(self, frame: str) -> bool:
        """Queue a frame without waiting; False when the viewer is closed or full"""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(frame)
            return True
        except asyncio.QueueFull:
            return False

    async def _drain(self) -> None:
        while True:
            frame = await self.queue.get()
            try:
                await self.websocket.send_text(frame)
            except Exception as e:
                logger.warning(f"Send to viewer {self.id} failed: {e}")
                self._on_failure(self, "send_failed")
                return

    def stop(self, close_code: Optional[int] = None) -> None:
        """Stop delivering; optionally ask the peer to close its socket"""
        if self.closed:
            return
        self.closed = True

        if self._sender is not None and self._sender is not asyncio.current_task():
            self._sender.cancel()

        if close_code is not None:
            asyncio.create_task(self._close_socket(close_code))

    async def _close_socket(self, code: int) -> None:
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            logger.debug(f"Viewer {self.id} socket already closed: {e}")

    async def wait_stopped(self) -> None:
        if self._sender is not None:
            await asyncio.gather(self._sender, return_exceptions=True)


class ChangeNotifier:
    """Registry of live viewer connections plus the broadcast entry point.

    One instance is created by the application entry point and handed to the
    mutation gateway and the WebSocket handler. Nothing here persists: a
    viewer that is not connected when an event is published never sees it.
    """

    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size or settings.WS_QUEUE_SIZE
        self._connections: Dict[str, ViewerConnection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connections(self) -> List[ViewerConnection]:
        return list(self._connections.values())

    def register(self, websocket) -> ViewerConnection:
        """Add a viewer to the broadcast set and greet it with a handshake"""
        connection = ViewerConnection(websocket, self._queue_size, on_failure=self._drop)
        self._connections[connection.id] = connection
        connection.start()
        connection.offer(ConnectedMessage().to_frame())

        VIEWERS_CONNECTED.set(len(self._connections))
        logger.info(f"Viewer {connection.id} connected ({len(self._connections)} total)")
        return connection

    def unregister(self, connection: ViewerConnection) -> None:
        """Remove a viewer; safe to call more than once"""
        removed = self._connections.pop(connection.id, None)
        connection.stop()
        if removed is None:
            return

        VIEWERS_CONNECTED.set(len(self._connections))
        logger.info(f"Viewer {connection.id} disconnected ({len(self._connections)} total)")

    def _drop(self, connection: ViewerConnection, reason: str) -> None:
        VIEWERS_DROPPED.labels(reason=reason).inc()
        self.unregister(connection)

    def publish(self, event) -> int:
        """Queue a change event for every registered viewer.

        Never waits on a socket. A viewer whose outbox is full is dropped and
        asked to reconnect; the others are unaffected. Returns the number of
        viewers the frame was queued for.
        """
        frame = event.to_frame()
        EVENTS_PUBLISHED.labels(type=event.type).inc()

        delivered = 0
        for connection in list(self._connections.values()):
            if connection.offer(frame):
                delivered += 1
                continue
            if not connection.closed:
                logger.warning(f"Viewer {connection.id} fell behind; dropping it")
                VIEWERS_DROPPED.labels(reason="queue_full").inc()
                self._connections.pop(connection.id, None)
                connection.stop(close_code=CLOSE_TRY_AGAIN_LATER)

        VIEWERS_CONNECTED.set(len(self._connections))
        logger.debug(f"Published {event.type} to {delivered} viewer(s)")
        return delivered

    def handle_client_message(self, connection: ViewerConnection, raw: str) -> None:
        """Answer keep-alive pings; log and ignore anything else"""
        try:
            PingMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed frame from viewer {connection.id}: {e.error_count()} error(s)")
            return
        connection.offer(PongMessage().to_frame())

    async def close_all(self) -> None:
        """Stop every viewer, e.g. on shutdown"""
        connections = list(self._connections.values())
        self._connections.clear()
        for connection in connections:
            connection.stop(close_code=1001)
        await asyncio.gather(*(c.wait_stopped() for c in connections), return_exceptions=True)
        VIEWERS_CONNECTED.set(0)
        logger.info(f"Closed {len(connections)} viewer connection(s)")
