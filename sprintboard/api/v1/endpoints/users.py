# sprintboard/api/v1/endpoints/users.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.api.v1.schemas.common import SuccessResponse
from sprintboard.api.v1.schemas.users import UserCreate, UserUpdate, UserRead
from sprintboard.auth.dependencies import require_session
from sprintboard.core import tracing
from sprintboard.db import crud
from sprintboard.db.database import get_db

router = APIRouter()


@router.get("", response_model=List[UserRead])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await crud.user.get_users(db)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await crud.user.get_user_or_404(db, user_id)


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_session)]
)
async def create_user(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Add a team member"""
    user = await crud.user.create_user(db, user_data.model_dump())
    tracing.info("User created", user_id=user.id, username=user.username)
    return user


@router.patch("/{user_id}", response_model=UserRead, dependencies=[Depends(require_session)])
async def update_user(user_id: int, updates: UserUpdate, db: AsyncSession = Depends(get_db)):
    """Refresh avatar or linked access token"""
    return await crud.user.update_user(db, user_id, updates.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=SuccessResponse, dependencies=[Depends(require_session)])
async def delete_user(user_id: int, db: AsyncSession = Depends(get_db)):
    """Remove a team member; their tasks stay on the board unassigned"""
    await crud.user.delete_user(db, user_id)
    tracing.info("User deleted", user_id=user_id)
    return SuccessResponse()
