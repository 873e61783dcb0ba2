# sprintboard/api/v1/schemas/tasks.py
from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime

from sprintboard.api.v1.schemas.common import CamelModel
from sprintboard.api.v1.schemas.users import UserRead
from sprintboard.api.v1.schemas.deployments import DeploymentRead
from sprintboard.db.models.enums import TaskStatus, TaskType


class TaskBase(CamelModel):
    """Fields shared by task create and read schemas"""
    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    due_date: Optional[datetime] = Field(None, description="Due date for the task")
    github_pr_url: Optional[str] = Field(None, description="Linked pull request URL")
    github_pr_number: Optional[int] = Field(None, ge=1, description="Linked pull request number")
    ci_status: Optional[str] = Field(None, max_length=64, description="CI badge text")
    assignee_id: Optional[int] = Field(None, ge=1)
    sprint_id: Optional[int] = Field(None, ge=1)


class TaskCreate(TaskBase):
    """Schema for creating a task; status and type default to backlog/other"""
    status: Optional[TaskStatus] = None
    type: Optional[TaskType] = None
    progress: int = Field(0, ge=0, le=100)


class TaskUpdate(CamelModel):
    """Partial update; only the fields sent are applied"""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    type: Optional[TaskType] = None
    due_date: Optional[datetime] = None
    github_pr_url: Optional[str] = None
    github_pr_number: Optional[int] = Field(None, ge=1)
    ci_status: Optional[str] = Field(None, max_length=64)
    progress: Optional[int] = Field(None, ge=0, le=100)
    assignee_id: Optional[int] = Field(None, ge=1)
    sprint_id: Optional[int] = Field(None, ge=1)

    @field_validator("title", "status", "type", "progress")
    @classmethod
    def reject_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class TaskStatusUpdate(CamelModel):
    """Body of PATCH /tasks/{id}/status"""
    status: TaskStatus = Field(..., description="Target board column")


class TaskRead(TaskBase):
    id: int
    status: TaskStatus
    type: TaskType
    progress: int = 0


class TaskDetail(TaskRead):
    """Task with its assignee and deployments (newest first)"""
    assignee: Optional[UserRead] = None
    deployments: List[DeploymentRead] = Field(default_factory=list)
