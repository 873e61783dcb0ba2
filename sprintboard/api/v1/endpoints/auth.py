# sprintboard/api/v1/endpoints/auth.py
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from sprintboard.api.v1.schemas.common import CamelModel
from sprintboard.api.v1.schemas.users import UserRead
from sprintboard.auth.dependencies import get_optional_user
from sprintboard.db.models import User

router = APIRouter()


class AuthStatus(CamelModel):
    authenticated: bool
    user: Optional[UserRead] = Field(None)


@router.get("/status", response_model=AuthStatus, response_model_exclude_none=True)
async def auth_status(user: Optional[User] = Depends(get_optional_user)):
    """Whether the caller presented a valid session token"""
    if user is None:
        return AuthStatus(authenticated=False)
    return AuthStatus(authenticated=True, user=UserRead.model_validate(user))
