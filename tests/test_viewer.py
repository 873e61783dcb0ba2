"""
Viewer cache and reconciliation tests
"""
import json

import pytest

from sprintboard.api.v1.schemas.deployments import DeploymentRead
from sprintboard.api.v1.schemas.sprints import SprintRead, SprintWithTasks
from sprintboard.api.v1.schemas.tasks import TaskDetail
from sprintboard.db.models.enums import TaskStatus
from sprintboard.realtime import events
from sprintboard.viewer import QueryCache, ViewerClientError, ViewerSession
from sprintboard.viewer.session import ACTIVE_SPRINT, SPRINT_LIST, TASK_LISTS, sprint_key, task_key


def make_task(task_id: int = 1, status: str = "todo", sprint_id: int = 1) -> TaskDetail:
    return TaskDetail(id=task_id, title=f"Task {task_id}", status=status, type="backend", sprint_id=sprint_id)


def make_sprint(sprint_id: int = 1, active: bool = True, hackathon: bool = False) -> SprintRead:
    return SprintRead(
        id=sprint_id,
        name=f"Sprint {sprint_id}",
        start_date="2025-01-06T00:00:00Z",
        end_date="2025-01-20T00:00:00Z",
        is_active=active,
        hackathon_mode=hackathon,
    )


def make_board(*tasks: TaskDetail) -> SprintWithTasks:
    return SprintWithTasks(**make_sprint().model_dump(), tasks=list(tasks))


class FakeClient:
    """Stands in for ViewerClient; serves whatever the test puts in `server`"""

    def __init__(self):
        self.server = {}
        self.fetched = []
        self.fail_status_update = None

    def _lookup(self, key):
        self.fetched.append(key)
        if key not in self.server:
            raise ViewerClientError(404, "not found")
        return self.server[key]

    async def get_tasks(self, sprint_id=None):
        return self._lookup(("tasks",) if sprint_id is None else ("tasks", sprint_id))

    async def get_task(self, task_id):
        return self._lookup(task_key(task_id))

    async def get_sprints(self):
        return self._lookup(SPRINT_LIST)

    async def get_sprint(self, sprint_id):
        return self._lookup(sprint_key(sprint_id))

    async def get_active_sprint(self):
        return self.server.get(ACTIVE_SPRINT)

    async def update_task_status(self, task_id, status):
        if self.fail_status_update is not None:
            raise self.fail_status_update
        return make_task(task_id, status=TaskStatus(status).value)


class TestQueryCache:

    def test_prefix_invalidation(self):
        cache = QueryCache()
        cache.set(("tasks",), [])
        cache.set(("tasks", 3), [])
        cache.set(("task", 3), "t")

        marked = cache.invalidate(("tasks",))

        assert sorted(marked, key=str) == sorted([("tasks",), ("tasks", 3)], key=str)
        assert cache.is_stale(("tasks", 3))
        assert not cache.is_stale(("task", 3))
        assert cache.get(("tasks", 3)) == []

    def test_exact_invalidation(self):
        cache = QueryCache()
        cache.set(("sprints",), [])
        cache.set(("sprints", "active"), "board")

        cache.invalidate(("sprints",), exact=True)

        assert cache.is_stale(("sprints",))
        assert not cache.is_stale(("sprints", "active"))

    def test_missing_key_counts_as_stale(self):
        assert QueryCache().is_stale(("task", 1))

    def test_optimistic_commit(self):
        cache = QueryCache()
        cache.set(("task", 1), "old")

        cache.begin_optimistic(("task", 1), "new")
        assert cache.get(("task", 1)) == "new"
        assert cache.entry(("task", 1)).value == "old"

        cache.commit(("task", 1))
        assert cache.get(("task", 1)) == "new"
        assert not cache.entry(("task", 1)).is_optimistic

    def test_optimistic_rollback(self):
        cache = QueryCache()
        cache.set(("task", 1), "old")

        cache.begin_optimistic(("task", 1), "new")
        cache.rollback(("task", 1))

        assert cache.get(("task", 1)) == "old"

    def test_rollback_of_uncached_key_forgets_it(self):
        cache = QueryCache()
        cache.begin_optimistic(("task", 9), "guess")
        cache.rollback(("task", 9))

        assert ("task", 9) not in cache


class TestApply:

    def setup_method(self):
        self.session = ViewerSession(cache=QueryCache())
        cache = self.session.cache
        cache.set(("tasks",), [make_task()])
        cache.set(("tasks", 1), [make_task()])
        cache.set(task_key(1), make_task())
        cache.set(SPRINT_LIST, [make_sprint()])
        cache.set(sprint_key(1), make_sprint())
        cache.set(ACTIVE_SPRINT, make_board(make_task()))

    def test_connected_and_pong_change_nothing(self):
        self.session.apply(events.ConnectedMessage())
        self.session.apply(events.PongMessage())

        assert self.session.connected
        assert self.session.cache.stale_keys() == []

    def test_task_created_invalidates_lists(self):
        self.session.apply(events.TaskCreatedEvent(data=make_task(2)))

        cache = self.session.cache
        assert cache.is_stale(("tasks",)) and cache.is_stale(("tasks", 1))
        assert not cache.is_stale(task_key(1))
        assert not cache.is_stale(SPRINT_LIST)

    def test_status_change_stores_embedded_task(self):
        moved = make_task(1, status="review")
        self.session.apply(events.TaskStatusChangedEvent(data=events.TaskStatusChanged(
            task_id=1, old_status="todo", new_status="review", task=moved
        )))

        cache = self.session.cache
        assert cache.get(task_key(1)).status == TaskStatus.REVIEW
        assert not cache.is_stale(task_key(1))
        assert cache.is_stale(("tasks",))
        assert cache.is_stale(ACTIVE_SPRINT)

    def test_task_deleted_removes_entry(self):
        self.session.apply(events.TaskDeletedEvent(data=events.TaskDeleted(task_id=1, task_details=make_task())))

        assert task_key(1) not in self.session.cache
        assert self.session.cache.is_stale(("tasks", 1))

    def test_sprint_created_invalidates_only_the_list(self):
        self.session.apply(events.SprintCreatedEvent(data=make_sprint(2, active=False)))

        cache = self.session.cache
        assert cache.is_stale(SPRINT_LIST)
        assert not cache.is_stale(ACTIVE_SPRINT)

    def test_hackathon_toggle_on_active_sprint(self):
        sprint = make_sprint(1, active=True, hackathon=True)
        self.session.apply(events.SprintHackathonModeToggledEvent(data=events.SprintHackathonModeToggled(
            sprint_id=1, hackathon_mode=True, previous_hackathon_mode=False, sprint=sprint
        )))

        cache = self.session.cache
        assert cache.get(sprint_key(1)).hackathon_mode is True
        assert cache.is_stale(SPRINT_LIST)
        assert cache.is_stale(ACTIVE_SPRINT)

    def test_inactive_sprint_update_leaves_board(self):
        self.session.apply(events.SprintUpdatedEvent(data=make_sprint(2, active=False)))

        assert self.session.cache.get(sprint_key(2)).id == 2
        assert not self.session.cache.is_stale(ACTIVE_SPRINT)

    def test_deployment_events_invalidate_the_task(self):
        deployment = DeploymentRead(id=5, task_id=1, status="running", created_at="2025-01-07T10:00:00Z")
        self.session.apply(events.DeploymentStatusUpdatedEvent(data=deployment))

        assert self.session.cache.is_stale(task_key(1))
        assert not self.session.cache.is_stale(("tasks",))

    def test_handle_frame_ignores_garbage(self):
        assert self.session.handle_frame("{nope") is None
        assert self.session.handle_frame(json.dumps({"type": "mystery", "data": {}, "timestamp": 1})) is None
        assert self.session.cache.stale_keys() == []

    def test_handle_frame_applies_server_frame(self):
        frame = events.TaskCreatedEvent(data=make_task(3)).to_frame()

        message = self.session.handle_frame(frame)

        assert message.type == "task_created"
        assert self.session.last_event_at == message.timestamp
        assert self.session.cache.is_stale(("tasks",))


class TestRefreshAndMove:

    def setup_method(self):
        self.client = FakeClient()
        self.session = ViewerSession(client=self.client)

    async def test_refresh_stale_refetches(self):
        cache = self.session.cache
        cache.set(("tasks",), [])
        cache.set(task_key(1), make_task())
        self.client.server[("tasks",)] = [make_task(1), make_task(2)]

        cache.invalidate(("tasks",))
        refreshed = await self.session.refresh_stale()

        assert refreshed == 1
        assert [t.id for t in cache.get(("tasks",))] == [1, 2]
        assert self.client.fetched == [("tasks",)]

    async def test_refresh_drops_entries_deleted_upstream(self):
        self.session.cache.set(task_key(4), make_task(4))
        self.session.cache.invalidate(task_key(4))

        await self.session.refresh_stale()

        assert task_key(4) not in self.session.cache

    async def test_move_task_commits(self):
        cache = self.session.cache
        cache.set(ACTIVE_SPRINT, make_board(make_task(1, "todo"), make_task(2, "todo")))
        cache.set(task_key(1), make_task(1, "todo"))

        result = await self.session.move_task(1, TaskStatus.DONE)

        assert result.status == TaskStatus.DONE
        board = cache.get(ACTIVE_SPRINT)
        assert [t.status.value for t in board.tasks] == ["done", "todo"]
        assert cache.get(task_key(1)).status == TaskStatus.DONE
        assert not cache.entry(ACTIVE_SPRINT).is_optimistic
        assert cache.is_stale(ACTIVE_SPRINT)

    async def test_move_task_rolls_back_on_failure(self):
        cache = self.session.cache
        cache.set(ACTIVE_SPRINT, make_board(make_task(1, "todo")))
        cache.set(task_key(1), make_task(1, "todo"))
        self.client.fail_status_update = ViewerClientError(500, "boom")

        with pytest.raises(ViewerClientError):
            await self.session.move_task(1, "done")

        assert cache.get(ACTIVE_SPRINT).tasks[0].status == TaskStatus.TODO
        assert cache.get(task_key(1)).status == TaskStatus.TODO
        assert not cache.entry(task_key(1)).is_optimistic

    async def test_move_to_same_column_is_noop(self):
        self.session.cache.set(task_key(1), make_task(1, "review"))
        self.client.fail_status_update = AssertionError("should not be called")

        result = await self.session.move_task(1, "review")

        assert result.status == TaskStatus.REVIEW

    async def test_resync_refetches_everything(self):
        self.session.cache.set(SPRINT_LIST, [])
        self.session.cache.set(ACTIVE_SPRINT, None)
        self.client.server[SPRINT_LIST] = [make_sprint()]
        self.client.server[ACTIVE_SPRINT] = make_board()

        await self.session.resync()

        assert len(self.session.cache.get(SPRINT_LIST)) == 1
        assert self.session.cache.get(ACTIVE_SPRINT).id == 1


class ScriptedChannel(FakeClient):
    """FakeClient whose push channel replays canned connections of frames"""

    def __init__(self, *connections):
        super().__init__()
        self.connections = connections
        self.handled = 0
        self.task_list_errors = []

    async def get_tasks(self, sprint_id=None):
        if self.task_list_errors:
            self.fetched.append(("tasks",))
            raise self.task_list_errors.pop(0)
        return await super().get_tasks(sprint_id)

    async def listen(self, on_frame, on_open=None):
        for frames in self.connections:
            if on_open is not None:
                await on_open()
            for frame in frames:
                await on_frame(frame)
                self.handled += 1


class TestRun:

    async def test_failed_refetch_keeps_following_the_channel(self):
        frames = [events.TaskCreatedEvent(data=make_task(n)).to_frame() for n in (2, 3)]
        client = ScriptedChannel(frames)
        client.server[("tasks",)] = [make_task(1), make_task(2), make_task(3)]
        client.task_list_errors.append(ViewerClientError(503, "db hiccup"))
        session = ViewerSession(client=client)
        session.cache.set(("tasks",), [make_task(1)])

        await session.run()

        assert client.handled == 2
        assert client.fetched == [("tasks",), ("tasks",)]
        assert [t.id for t in session.cache.get(("tasks",))] == [1, 2, 3]
        assert not session.cache.is_stale(("tasks",))

    async def test_failed_refetch_leaves_entry_stale(self):
        client = ScriptedChannel([events.TaskCreatedEvent(data=make_task(2)).to_frame()])
        client.task_list_errors.append(ViewerClientError(500, "boom"))
        session = ViewerSession(client=client)
        session.cache.set(("tasks",), [make_task(1)])

        await session.run()

        assert session.cache.is_stale(("tasks",))
        assert [t.id for t in session.cache.get(("tasks",))] == [1]

    async def test_reconnect_resyncs(self):
        client = ScriptedChannel([], [])
        client.server[SPRINT_LIST] = [make_sprint(1), make_sprint(2, active=False)]
        session = ViewerSession(client=client)
        session.cache.set(SPRINT_LIST, [])

        await session.run()

        assert client.fetched == [SPRINT_LIST]
        assert len(session.cache.get(SPRINT_LIST)) == 2
