# sprintboard/db/crud/deployment.py
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, List
from loguru import logger

from sprintboard.db.models import Deployment, DeploymentStatus, Task
from sprintboard.db.crud.transaction import commit_or_raise, rollback_and_raise
from sprintboard.exceptions.store import EntityNotFoundError


def completion_time(status: DeploymentStatus) -> Optional[datetime]:
    """completed_at for a status: now for terminal outcomes, None otherwise"""
    if DeploymentStatus(status).is_completed:
        return datetime.now(timezone.utc)
    return None


async def get_deployment_by_id(db: AsyncSession, deployment_id: int) -> Optional[Deployment]:
    try:
        return await db.get(Deployment, deployment_id, populate_existing=True)
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load deployment", e)


async def get_deployments_by_task_id(db: AsyncSession, task_id: int) -> List[Deployment]:
    """Deployments of a task, newest first"""
    try:
        result = await db.execute(
            select(Deployment)
            .filter(Deployment.task_id == task_id)
            .order_by(Deployment.created_at.desc(), Deployment.id.desc())
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "list deployments", e)


async def create_deployment(
        db: AsyncSession,
        task_id: int,
        status: DeploymentStatus,
        url: Optional[str] = None
) -> Deployment:
    """Record a deploy run for an existing task"""
    if await db.get(Task, task_id) is None:
        raise EntityNotFoundError("Task", task_id)

    deployment = Deployment(
        task_id=task_id,
        status=status,
        url=url,
        completed_at=completion_time(status)
    )
    db.add(deployment)
    await commit_or_raise(db, "create deployment")

    logger.info(f"Deployment {deployment.id} created for task {task_id} with status {deployment.status.value}")
    return deployment


async def update_deployment_status(db: AsyncSession, deployment_id: int, status: DeploymentStatus) -> Deployment:
    """Set the status and re-derive completed_at from it"""
    deployment = await get_deployment_by_id(db, deployment_id)
    if deployment is None:
        raise EntityNotFoundError("Deployment", deployment_id)

    deployment.status = status
    deployment.completed_at = completion_time(status)

    await commit_or_raise(db, "update deployment status")
    logger.info(f"Deployment {deployment_id} status set to {deployment.status.value}")
    return deployment
