# sprintboard/db/crud/sprint.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload
from typing import Optional, List, Dict, Any, Tuple
from loguru import logger

from sprintboard.db.models import Sprint, Task
from sprintboard.db.crud.transaction import commit_or_raise, rollback_and_raise
from sprintboard.exceptions.store import EntityNotFoundError, InvalidUpdateError
from sprintboard.api.v1.schemas.sprints import SprintCreate, as_utc


async def get_sprints(db: AsyncSession) -> List[Sprint]:
    """All sprints, most recent start date first"""
    try:
        result = await db.execute(
            select(Sprint).order_by(Sprint.start_date.desc(), Sprint.id.desc())
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "list sprints", e)


async def get_sprint_by_id(db: AsyncSession, sprint_id: int) -> Optional[Sprint]:
    try:
        result = await db.execute(
            select(Sprint)
            .filter(Sprint.id == sprint_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load sprint", e)


async def get_sprint_or_404(db: AsyncSession, sprint_id: int) -> Sprint:
    sprint = await get_sprint_by_id(db, sprint_id)
    if sprint is None:
        raise EntityNotFoundError("Sprint", sprint_id)
    return sprint


async def get_active_sprint_with_tasks(db: AsyncSession) -> Optional[Sprint]:
    """Active sprint with its tasks, each carrying assignee and deployments.

    Sprint and tasks are loaded by one session inside one transaction, so a
    concurrently deleted task is either fully present or fully absent.
    """
    try:
        result = await db.execute(
            select(Sprint)
            .options(
                selectinload(Sprint.tasks).options(
                    joinedload(Task.assignee),
                    selectinload(Task.deployments)
                )
            )
            .filter(Sprint.is_active.is_(True))
            .execution_options(populate_existing=True)
        )
        sprint = result.scalars().first()
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load active sprint", e)

    if sprint is not None:
        sprint.tasks.sort(key=lambda task: (task.status.position, task.id))
    return sprint


async def _deactivate_other_sprints(db: AsyncSession, keep_id: Optional[int] = None) -> List[int]:
    """Clear is_active on every sprint except keep_id, inside the caller's transaction.

    The currently-active rows are locked first so two concurrent activations
    serialize on them; the partial unique index rejects whichever loses.
    """
    result = await db.execute(
        select(Sprint.id).filter(Sprint.is_active.is_(True)).with_for_update()
    )
    others = [sprint_id for sprint_id in result.scalars().all() if sprint_id != keep_id]
    if others:
        await db.execute(
            update(Sprint)
            .where(Sprint.id.in_(others))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        logger.info(f"Deactivated sprints {others}")
    return others


async def create_sprint(db: AsyncSession, sprint_data: SprintCreate) -> Sprint:
    """Insert a sprint; activating it deactivates every other sprint atomically"""
    try:
        if sprint_data.is_active:
            await _deactivate_other_sprints(db)

        sprint = Sprint(**sprint_data.model_dump())
        db.add(sprint)
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "create sprint", e)

    await commit_or_raise(db, "create sprint")
    logger.info(f"Sprint created: {sprint.name} (ID: {sprint.id}, active={sprint.is_active})")
    return sprint


async def update_sprint(db: AsyncSession, sprint_id: int, updates: Dict[str, Any]) -> Sprint:
    """Merge the given fields into the sprint"""
    sprint = await get_sprint_or_404(db, sprint_id)

    start_date = updates.get("start_date", sprint.start_date)
    end_date = updates.get("end_date", sprint.end_date)
    if as_utc(end_date) <= as_utc(start_date):
        field = "endDate" if "end_date" in updates else "startDate"
        raise InvalidUpdateError(field, "endDate must be after startDate")

    try:
        if updates.get("is_active"):
            await _deactivate_other_sprints(db, keep_id=sprint.id)

        for field, value in updates.items():
            if hasattr(sprint, field):
                setattr(sprint, field, value)
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "update sprint", e)

    await commit_or_raise(db, "update sprint")
    logger.info(f"Sprint {sprint.name} updated: {sorted(updates)}")
    return sprint


async def toggle_hackathon_mode(db: AsyncSession, sprint_id: int, hackathon_mode: bool) -> Tuple[Sprint, bool]:
    """Set the hackathon flag; returns the sprint and the previous flag value"""
    sprint = await get_sprint_or_404(db, sprint_id)
    previous = bool(sprint.hackathon_mode)
    sprint.hackathon_mode = hackathon_mode

    await commit_or_raise(db, "toggle hackathon mode")
    logger.info(f"Sprint {sprint.name} hackathon mode {previous} -> {hackathon_mode}")
    return sprint, previous
