# sprintboard/api/v1/endpoints/sprints.py
"""Sprint endpoints"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.api.deps import get_gateway
from sprintboard.api.v1.schemas.sprints import (
    SprintCreate, SprintUpdate, SprintRead, SprintWithTasks, HackathonModeToggle
)
from sprintboard.auth.dependencies import require_session
from sprintboard.core import tracing
from sprintboard.db import crud
from sprintboard.db.database import get_db
from sprintboard.services.gateway import MutationGateway

router = APIRouter()


@router.get("", response_model=List[SprintRead])
async def list_sprints(db: AsyncSession = Depends(get_db)):
    """All sprints, newest first"""
    return await crud.sprint.get_sprints(db)


@router.get("/active", response_model=SprintWithTasks)
async def get_active_sprint(db: AsyncSession = Depends(get_db)):
    """The active sprint with its tasks, assignees and deployments"""
    sprint = await crud.sprint.get_active_sprint_with_tasks(db)
    if sprint is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active sprint found")
    return sprint


@router.get("/{sprint_id}", response_model=SprintRead)
async def get_sprint(sprint_id: int, db: AsyncSession = Depends(get_db)):
    return await crud.sprint.get_sprint_or_404(db, sprint_id)


@router.post(
    "",
    response_model=SprintRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_session)]
)
async def create_sprint(sprint_data: SprintCreate, gateway: MutationGateway = Depends(get_gateway)):
    """Create a sprint; creating it active deactivates the current one"""
    sprint = await gateway.create_sprint(sprint_data)
    tracing.info("Sprint created", sprint_id=sprint.id, is_active=sprint.is_active)
    return sprint


@router.patch("/{sprint_id}", response_model=SprintRead, dependencies=[Depends(require_session)])
async def update_sprint(
        sprint_id: int,
        updates: SprintUpdate,
        gateway: MutationGateway = Depends(get_gateway)
):
    """Partially update a sprint"""
    return await gateway.update_sprint(sprint_id, updates.model_dump(exclude_unset=True))


@router.post(
    "/{sprint_id}/toggle-hackathon",
    response_model=SprintRead,
    dependencies=[Depends(require_session)]
)
async def toggle_hackathon_mode(
        sprint_id: int,
        toggle: HackathonModeToggle,
        gateway: MutationGateway = Depends(get_gateway)
):
    return await gateway.toggle_hackathon_mode(sprint_id, toggle.hackathon_mode)
