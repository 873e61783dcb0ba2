# sprintboard/api/v1/schemas/deployments.py
from pydantic import Field
from typing import Optional
from datetime import datetime

from sprintboard.api.v1.schemas.common import CamelModel
from sprintboard.db.models.enums import DeploymentStatus


class DeploymentCreate(CamelModel):
    """Body of POST /deployments"""
    task_id: int = Field(..., ge=1, description="Task the run belongs to")
    status: DeploymentStatus
    url: Optional[str] = Field(None, description="Link to the run or preview")


class DeploymentStatusUpdate(CamelModel):
    """Body of POST /webhooks/deployment"""
    deployment_id: int = Field(..., ge=1)
    status: DeploymentStatus


class DeploymentRead(CamelModel):
    id: int
    task_id: int
    status: DeploymentStatus
    url: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
