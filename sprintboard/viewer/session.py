# sprintboard/viewer/session.py
"""Reconciles a viewer's cache with change events from the push channel"""
from typing import Any, Optional, Union

from loguru import logger
from pydantic import ValidationError

from sprintboard.db.models.enums import TaskStatus
from sprintboard.realtime import events
from sprintboard.viewer.cache import CacheKey, QueryCache
from sprintboard.viewer.client import ViewerClient, ViewerClientError

TASK_LISTS: CacheKey = ("tasks",)
SPRINT_LIST: CacheKey = ("sprints",)
ACTIVE_SPRINT: CacheKey = ("sprints", "active")


def task_key(task_id: int) -> CacheKey:
    return ("task", task_id)


def sprint_key(sprint_id: int) -> CacheKey:
    return ("sprint", sprint_id)


class ViewerSession:
    """
    One viewer's cache plus the rules that keep it converged.

    Events either carry the new state (stored directly) or only say that
    something changed (the affected queries are marked stale and refetched
    by `refresh_stale`). Nothing is replayed after a reconnect.
    """

    def __init__(self, client: Optional[ViewerClient] = None, cache: Optional[QueryCache] = None):
        self.client = client
        self.cache = cache if cache is not None else QueryCache()
        self.connected = False
        self.last_event_at: Optional[int] = None

    def handle_frame(self, frame: Union[str, bytes]):
        """Parse and apply one server frame; malformed frames are logged and skipped"""
        try:
            message = events.parse_server_frame(frame)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed push frame: {e.error_count()} error(s)")
            return None
        self.apply(message)
        return message

    def apply(self, message) -> None:
        cache = self.cache

        if isinstance(message, events.ConnectedMessage):
            self.connected = True
            return
        if isinstance(message, events.PongMessage):
            return

        self.last_event_at = message.timestamp

        if isinstance(message, events.TaskCreatedEvent):
            self._invalidate_boards()

        elif isinstance(message, (events.TaskUpdatedEvent, events.TaskStatusChangedEvent)):
            task = message.data if isinstance(message, events.TaskUpdatedEvent) else message.data.task
            cache.set(task_key(task.id), task)
            self._invalidate_boards()

        elif isinstance(message, events.TaskDeletedEvent):
            cache.remove(task_key(message.data.task_id))
            self._invalidate_boards()

        elif isinstance(message, events.SprintCreatedEvent):
            cache.invalidate(SPRINT_LIST, exact=True)

        elif isinstance(message, (events.SprintUpdatedEvent, events.SprintHackathonModeToggledEvent)):
            sprint = message.data if isinstance(message, events.SprintUpdatedEvent) else message.data.sprint
            cache.set(sprint_key(sprint.id), sprint)
            cache.invalidate(SPRINT_LIST, exact=True)
            if sprint.is_active or self._shows_active(sprint.id):
                cache.invalidate(ACTIVE_SPRINT, exact=True)

        elif isinstance(message, events.DeploymentCreatedEvent):
            cache.invalidate(task_key(message.data.deployment.task_id), exact=True)

        elif isinstance(message, events.DeploymentStatusUpdatedEvent):
            cache.invalidate(task_key(message.data.task_id), exact=True)

        else:
            logger.warning(f"No cache rule for message type {getattr(message, 'type', None)!r}")

    def _invalidate_boards(self) -> None:
        # Task lists of every sprint, and the active board which embeds tasks
        self.cache.invalidate(TASK_LISTS)
        self.cache.invalidate(ACTIVE_SPRINT, exact=True)

    def _shows_active(self, sprint_id: int) -> bool:
        """True when the cached active board is this sprint (e.g. it was just deactivated)"""
        board = self.cache.get(ACTIVE_SPRINT)
        return board is not None and board.id == sprint_id

    # Fetching

    async def fetch(self, key: CacheKey) -> Any:
        """Fetch one query from the API and store the result under `key`"""
        client = self._require_client()
        kind = key[0]

        if key == ACTIVE_SPRINT:
            value = await client.get_active_sprint()
        elif key == SPRINT_LIST:
            value = await client.get_sprints()
        elif kind == "tasks":
            value = await client.get_tasks(key[1] if len(key) > 1 else None)
        elif kind == "task":
            value = await client.get_task(key[1])
        elif kind == "sprint":
            value = await client.get_sprint(key[1])
        else:
            raise KeyError(f"Unknown query key {key!r}")

        self.cache.set(key, value)
        return value

    async def refresh_stale(self) -> int:
        """Refetch every stale query not holding a pending write; returns how many were refreshed"""
        refreshed = 0
        for key in self.cache.stale_keys():
            entry = self.cache.entry(key)
            if entry is None or entry.is_optimistic:
                continue
            try:
                await self.fetch(key)
            except ViewerClientError as e:
                if e.status == 404:
                    # Deleted upstream before we got to it
                    self.cache.remove(key)
                else:
                    # Stays stale; the next event or resync retries it
                    logger.warning(f"Refetch of {key} failed: {e}")
                continue
            refreshed += 1
        if refreshed:
            logger.debug(f"Refreshed {refreshed} stale quer{'y' if refreshed == 1 else 'ies'}")
        return refreshed

    async def resync(self) -> int:
        """After a (re)connect anything may have changed: refetch everything cached"""
        self.cache.invalidate_all()
        return await self.refresh_stale()

    # Optimistic drag-and-drop

    async def move_task(self, task_id: int, status: TaskStatus):
        """Move a task to another column, showing the result before the server confirms.

        On failure the cache is restored and the error re-raised.
        """
        client = self._require_client()
        status = TaskStatus(status)
        key = task_key(task_id)

        cached = self.cache.get(key)
        if cached is not None and cached.status == status:
            return cached

        touched = []
        board = self.cache.get(ACTIVE_SPRINT)
        if board is not None and any(t.id == task_id for t in board.tasks):
            moved = [t.model_copy(update={"status": status}) if t.id == task_id else t for t in board.tasks]
            self.cache.begin_optimistic(ACTIVE_SPRINT, board.model_copy(update={"tasks": moved}))
            touched.append(ACTIVE_SPRINT)
        if cached is not None:
            self.cache.begin_optimistic(key, cached.model_copy(update={"status": status}))
            touched.append(key)

        try:
            updated = await client.update_task_status(task_id, status)
        except Exception:
            for touched_key in touched:
                self.cache.rollback(touched_key)
            logger.warning(f"Moving task {task_id} to {status.value} failed; restored previous board")
            raise

        for touched_key in touched:
            self.cache.commit(touched_key)
        self.cache.set(key, updated)
        self._invalidate_boards()
        return updated

    # Live loop

    async def run(self) -> None:
        """Follow the push channel, refetching whatever each event invalidates"""
        client = self._require_client()
        first_open = True

        async def on_open():
            nonlocal first_open
            if not first_open:
                await self.resync()
            first_open = False

        async def on_frame(frame: str):
            if self.handle_frame(frame) is not None:
                await self.refresh_stale()

        await client.listen(on_frame, on_open=on_open)

    def _require_client(self) -> ViewerClient:
        if self.client is None:
            raise RuntimeError("ViewerSession has no client; pass one to fetch or write")
        return self.client
