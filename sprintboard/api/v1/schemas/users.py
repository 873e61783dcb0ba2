# sprintboard/api/v1/schemas/users.py
from pydantic import EmailStr, Field
from typing import Optional

from sprintboard.api.v1.schemas.common import CamelModel


class UserBase(CamelModel):
    """Common team member attributes"""
    username: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    avatar: Optional[str] = None
    github_id: Optional[str] = Field(None, max_length=64)
    github_username: Optional[str] = Field(None, max_length=255)


class UserCreate(UserBase):
    """Schema for creating a user"""
    github_access_token: Optional[str] = None


class UserUpdate(CamelModel):
    """Only the avatar and the external access token may be refreshed"""
    avatar: Optional[str] = None
    github_access_token: Optional[str] = None


class UserRead(UserBase):
    """User as returned by the API; the access token is never exposed"""
    id: int
