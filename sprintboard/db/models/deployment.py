# sprintboard/db/models/deployment.py
"""CI/deploy run model"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, ForeignKey, Index, Enum, DateTime
from sqlalchemy.orm import relationship

from sprintboard.db.models.base import Base, IdMixin
from sprintboard.db.models.enums import DeploymentStatus, enum_values


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Deployment(Base, IdMixin):
    """One deploy run of a task; completed_at is derived from status by the store"""
    __tablename__ = "deployments"

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        Enum(DeploymentStatus, name="deployment_status", values_callable=enum_values),
        nullable=False,
        default=DeploymentStatus.PENDING
    )
    url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    task = relationship("Task", back_populates="deployments")

    __table_args__ = (
        Index('idx_deployment_task_created', 'task_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Deployment task_id={self.task_id} status={self.status}>"
