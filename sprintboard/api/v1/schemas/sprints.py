# sprintboard/api/v1/schemas/sprints.py
from pydantic import Field, StrictBool, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, timezone

from sprintboard.api.v1.schemas.common import CamelModel
from sprintboard.api.v1.schemas.tasks import TaskDetail


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC so mixed inputs still compare"""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SprintBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255, description="Sprint name")
    description: Optional[str] = Field(None, description="Sprint goal")
    start_date: datetime
    end_date: datetime


class SprintCreate(SprintBase):
    """Schema for creating a sprint"""
    is_active: bool = False
    hackathon_mode: bool = False

    @model_validator(mode="after")
    def check_window(self):
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("endDate must be after startDate")
        return self


class SprintUpdate(CamelModel):
    """Partial sprint update"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    hackathon_mode: Optional[bool] = None

    @field_validator("name", "start_date", "end_date", "is_active", "hackathon_mode")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("endDate must be after startDate")
        return self


class HackathonModeToggle(CamelModel):
    """Body of POST /sprints/{id}/toggle-hackathon"""
    hackathon_mode: StrictBool


class SprintRead(SprintBase):
    id: int
    is_active: bool = False
    hackathon_mode: bool = False


class SprintWithTasks(SprintRead):
    """The active sprint with its board"""
    tasks: List[TaskDetail] = Field(default_factory=list)
