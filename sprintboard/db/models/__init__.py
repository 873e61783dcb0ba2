# sprintboard/db/models/__init__.py
"""
Database models package
Imports all models so they register on Base.metadata
"""

from sprintboard.db.models.base import Base, IdMixin

from sprintboard.db.models.enums import (
    TaskStatus, TaskType, DeploymentStatus, CiStatus, COMPLETED_DEPLOYMENT_STATUSES
)

from sprintboard.db.models.user import User
from sprintboard.db.models.sprint import Sprint
from sprintboard.db.models.task import Task
from sprintboard.db.models.deployment import Deployment

__all__ = [
    # Base classes
    'Base', 'IdMixin',

    # Enums
    'TaskStatus', 'TaskType', 'DeploymentStatus', 'CiStatus', 'COMPLETED_DEPLOYMENT_STATUSES',

    # Models
    'User', 'Sprint', 'Task', 'Deployment',
]
