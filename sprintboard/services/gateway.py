# sprintboard/services/gateway.py
"""Single write path: validate, commit, then notify viewers"""
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core import tracing
from sprintboard.db import crud
from sprintboard.db.models.enums import TaskStatus, DeploymentStatus
from sprintboard.api.v1.schemas.sprints import SprintCreate, SprintRead
from sprintboard.api.v1.schemas.tasks import TaskCreate, TaskDetail
from sprintboard.api.v1.schemas.deployments import DeploymentCreate, DeploymentRead
from sprintboard.api.v1.schemas.webhooks import GithubPullRequestEvent
from sprintboard.realtime.notifier import ChangeNotifier
from sprintboard.realtime.events import (
    TaskCreatedEvent, TaskUpdatedEvent, TaskStatusChangedEvent, TaskDeletedEvent,
    SprintCreatedEvent, SprintUpdatedEvent, SprintHackathonModeToggledEvent,
    DeploymentCreatedEvent, DeploymentStatusUpdatedEvent,
    TaskStatusChanged, TaskDeleted, SprintHackathonModeToggled, DeploymentCreated,
)
from sprintboard.services.github import derive_ci_status


class MutationGateway:
    """Applies state changes through the store and announces each commit.

    Every method commits first and publishes afterwards; when the store
    raises, the exception propagates and nothing is published.
    """

    def __init__(self, db: AsyncSession, notifier: ChangeNotifier):
        self.db = db
        self.notifier = notifier

    def _publish(self, event) -> None:
        try:
            self.notifier.publish(event)
        except Exception as e:
            # The write is already committed; a broken fanout must not turn it into an error
            tracing.log_error_with_context("Failed to publish change event", exception=e, change_event=event.type)

    # Sprints

    async def create_sprint(self, data: SprintCreate) -> SprintRead:
        sprint = SprintRead.model_validate(await crud.sprint.create_sprint(self.db, data))
        self._publish(SprintCreatedEvent(data=sprint))
        return sprint

    async def update_sprint(self, sprint_id: int, updates: Dict[str, Any]) -> SprintRead:
        sprint = SprintRead.model_validate(await crud.sprint.update_sprint(self.db, sprint_id, updates))
        self._publish(SprintUpdatedEvent(data=sprint))
        return sprint

    async def toggle_hackathon_mode(self, sprint_id: int, hackathon_mode: bool) -> SprintRead:
        record, previous = await crud.sprint.toggle_hackathon_mode(self.db, sprint_id, hackathon_mode)
        sprint = SprintRead.model_validate(record)
        self._publish(SprintHackathonModeToggledEvent(data=SprintHackathonModeToggled(
            sprint_id=sprint.id,
            hackathon_mode=sprint.hackathon_mode,
            previous_hackathon_mode=previous,
            sprint=sprint,
        )))
        return sprint

    # Tasks

    async def create_task(self, data: TaskCreate) -> TaskDetail:
        task = TaskDetail.model_validate(await crud.task.create_task(self.db, data))
        self._publish(TaskCreatedEvent(data=task))
        return task

    async def update_task(self, task_id: int, updates: Dict[str, Any]) -> TaskDetail:
        task = TaskDetail.model_validate(await crud.task.update_task(self.db, task_id, updates))
        self._publish(TaskUpdatedEvent(data=task))
        return task

    async def update_task_status(self, task_id: int, status: TaskStatus) -> TaskDetail:
        record, old_status = await crud.task.update_task_status(self.db, task_id, status)
        task = TaskDetail.model_validate(record)
        self._publish(TaskStatusChangedEvent(data=TaskStatusChanged(
            task_id=task.id,
            old_status=old_status,
            new_status=task.status,
            task=task,
        )))
        return task

    async def delete_task(self, task_id: int) -> TaskDetail:
        """Delete a task and announce it with the snapshot taken just before"""
        record = await crud.task.get_task_or_404(self.db, task_id)
        snapshot = TaskDetail.model_validate(record)
        await crud.task.delete_task(self.db, record)
        self._publish(TaskDeletedEvent(data=TaskDeleted(task_id=task_id, task_details=snapshot)))
        return snapshot

    # Deployments

    async def create_deployment(self, data: DeploymentCreate) -> DeploymentRead:
        record = await crud.deployment.create_deployment(
            self.db, task_id=data.task_id, status=data.status, url=data.url
        )
        deployment = DeploymentRead.model_validate(record)
        task = TaskDetail.model_validate(await crud.task.get_task_or_404(self.db, deployment.task_id))
        self._publish(DeploymentCreatedEvent(data=DeploymentCreated(deployment=deployment, task=task)))
        return deployment

    async def update_deployment_status(self, deployment_id: int, status: DeploymentStatus) -> DeploymentRead:
        record = await crud.deployment.update_deployment_status(self.db, deployment_id, status)
        deployment = DeploymentRead.model_validate(record)
        self._publish(DeploymentStatusUpdatedEvent(data=deployment))
        return deployment

    # Integrations

    async def ingest_pull_request_event(self, event: GithubPullRequestEvent) -> List[TaskDetail]:
        """Copy PR state onto every task linked to the PR number.

        Applying the same payload twice leaves the same end state.
        """
        pull_request = event.pull_request
        ci_status = derive_ci_status(event.action, pull_request.merged)

        updates: Dict[str, Any] = {}
        if pull_request.html_url:
            updates["github_pr_url"] = pull_request.html_url
        if ci_status is not None:
            updates["ci_status"] = ci_status.value

        tasks = await crud.task.get_tasks_by_pr_number(self.db, pull_request.number)
        if not tasks or not updates:
            tracing.info(
                "Pull request event matched nothing to update",
                pr_number=pull_request.number,
                action=event.action,
                matching_tasks=len(tasks)
            )
            return []

        updated = []
        for record in tasks:
            updated.append(await self.update_task(record.id, updates))

        tracing.info(
            "Pull request event applied",
            pr_number=pull_request.number,
            action=event.action,
            updated_tasks=len(updated)
        )
        return updated
