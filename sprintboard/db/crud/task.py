# sprintboard/db/crud/task.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload
from typing import Optional, List, Dict, Any, Tuple
from loguru import logger

from sprintboard.db.models import Task, TaskStatus, TaskType
from sprintboard.db.crud.transaction import commit_or_raise, rollback_and_raise
from sprintboard.exceptions.store import EntityNotFoundError
from sprintboard.api.v1.schemas.tasks import TaskCreate

# Board order: backlog first, done last
STATUS_ORDER = case(
    {status.value: status.position for status in TaskStatus},
    value=Task.status
)


def _with_relations(query):
    return query.options(
        joinedload(Task.assignee),
        selectinload(Task.deployments)
    ).execution_options(populate_existing=True)


async def get_task_by_id(db: AsyncSession, task_id: int) -> Optional[Task]:
    """Get task by id with assignee and deployments loaded"""
    try:
        result = await db.execute(_with_relations(select(Task).filter(Task.id == task_id)))
        return result.scalars().first()
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load task", e)


async def get_task_or_404(db: AsyncSession, task_id: int) -> Task:
    task = await get_task_by_id(db, task_id)
    if task is None:
        raise EntityNotFoundError("Task", task_id)
    return task


async def get_tasks(db: AsyncSession, sprint_id: Optional[int] = None) -> List[Task]:
    """All tasks, or those of one sprint, in workflow order"""
    try:
        query = select(Task)
        if sprint_id is not None:
            query = query.filter(Task.sprint_id == sprint_id)
        query = query.order_by(STATUS_ORDER.asc(), Task.id.asc())

        result = await db.execute(_with_relations(query))
        return list(result.scalars().unique().all())
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "list tasks", e)


async def get_tasks_by_pr_number(db: AsyncSession, pr_number: int) -> List[Task]:
    """Tasks linked to the given pull request number"""
    try:
        query = select(Task).filter(Task.github_pr_number == pr_number).order_by(Task.id.asc())
        result = await db.execute(_with_relations(query))
        return list(result.scalars().unique().all())
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "find tasks by pull request", e)


async def create_task(db: AsyncSession, task_data: TaskCreate) -> Task:
    """Create a new task; status and type fall back to backlog/other"""
    values = task_data.model_dump()
    values["status"] = values.get("status") or TaskStatus.BACKLOG
    values["type"] = values.get("type") or TaskType.OTHER
    if values.get("progress") is None:
        values["progress"] = 0

    task = Task(**values)
    db.add(task)
    await commit_or_raise(db, "create task")

    logger.info(f"Task created: {task.title} (ID: {task.id}, sprint={task.sprint_id})")
    return await get_task_or_404(db, task.id)


async def update_task(db: AsyncSession, task_id: int, updates: Dict[str, Any]) -> Task:
    """Merge the given fields into the task"""
    task = await get_task_or_404(db, task_id)

    for field, value in updates.items():
        if hasattr(task, field):
            setattr(task, field, value)

    await commit_or_raise(db, "update task")
    logger.info(f"Task {task.title} updated: {sorted(updates)}")
    return await get_task_or_404(db, task_id)


async def update_task_status(db: AsyncSession, task_id: int, new_status: TaskStatus) -> Tuple[Task, TaskStatus]:
    """Move a task to another column; returns the task and its previous status"""
    task = await get_task_or_404(db, task_id)
    old_status = task.status
    task.status = new_status

    await commit_or_raise(db, "update task status")
    logger.info(f"Task {task.title} status {old_status.value} -> {new_status.value}")
    return await get_task_or_404(db, task_id), old_status


async def delete_task(db: AsyncSession, task: Task) -> None:
    """Delete a task (hard delete); its deployments go with it"""
    try:
        await db.delete(task)
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "delete task", e)

    await commit_or_raise(db, "delete task")
    logger.info(f"Task {task.title} deleted")
