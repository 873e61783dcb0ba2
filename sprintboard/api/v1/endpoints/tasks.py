# sprintboard/api/v1/endpoints/tasks.py
"""Task endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.api.deps import get_gateway
from sprintboard.api.v1.schemas.common import SuccessResponse
from sprintboard.api.v1.schemas.deployments import DeploymentRead
from sprintboard.api.v1.schemas.tasks import TaskCreate, TaskUpdate, TaskDetail, TaskStatusUpdate
from sprintboard.auth.dependencies import require_session
from sprintboard.core import tracing
from sprintboard.db import crud
from sprintboard.db.database import get_db
from sprintboard.services.gateway import MutationGateway

router = APIRouter()


@router.get("", response_model=List[TaskDetail])
async def list_tasks(
        sprint_id: Optional[int] = Query(None, alias="sprintId", description="Only tasks of this sprint"),
        db: AsyncSession = Depends(get_db)
):
    """List tasks in workflow order, each with assignee and deployments"""
    return await crud.task.get_tasks(db, sprint_id=sprint_id)


@router.get("/{task_id}", response_model=TaskDetail)
async def get_task(task_id: int, db: AsyncSession = Depends(get_db)):
    return await crud.task.get_task_or_404(db, task_id)


@router.get("/{task_id}/deployments", response_model=List[DeploymentRead])
async def list_task_deployments(task_id: int, db: AsyncSession = Depends(get_db)):
    """Deployments of a task, newest first; the first one drives the badge"""
    await crud.task.get_task_or_404(db, task_id)
    return await crud.deployment.get_deployments_by_task_id(db, task_id)


@router.post(
    "",
    response_model=TaskDetail,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_session)]
)
async def create_task(task_data: TaskCreate, gateway: MutationGateway = Depends(get_gateway)):
    """Create a new task"""
    task = await gateway.create_task(task_data)
    tracing.info("Task created", task_id=task.id, sprint_id=task.sprint_id)
    return task


@router.patch("/{task_id}", response_model=TaskDetail, dependencies=[Depends(require_session)])
async def update_task(
        task_id: int,
        updates: TaskUpdate,
        gateway: MutationGateway = Depends(get_gateway)
):
    """Partially update a task"""
    return await gateway.update_task(task_id, updates.model_dump(exclude_unset=True))


@router.patch("/{task_id}/status", response_model=TaskDetail, dependencies=[Depends(require_session)])
async def update_task_status(
        task_id: int,
        status_update: TaskStatusUpdate,
        gateway: MutationGateway = Depends(get_gateway)
):
    """Move a task to another board column"""
    return await gateway.update_task_status(task_id, status_update.status)


@router.delete("/{task_id}", response_model=SuccessResponse, dependencies=[Depends(require_session)])
async def delete_task(task_id: int, gateway: MutationGateway = Depends(get_gateway)):
    await gateway.delete_task(task_id)
    tracing.info("Task deleted", task_id=task_id)
    return SuccessResponse()
