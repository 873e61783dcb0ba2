# sprintboard/db/models/task.py
"""Task model"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, Enum, DateTime
from sqlalchemy.orm import relationship

from sprintboard.db.models.base import Base, IdMixin
from sprintboard.db.models.enums import TaskStatus, TaskType, enum_values


class Task(Base, IdMixin):
    """A card on the sprint board"""
    __tablename__ = "tasks"

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values),
        nullable=False,
        default=TaskStatus.BACKLOG,
        index=True
    )
    type = Column(
        Enum(TaskType, name="task_type", values_callable=enum_values),
        nullable=False,
        default=TaskType.OTHER
    )
    due_date = Column(DateTime(timezone=True), nullable=True)
    github_pr_url = Column(Text, nullable=True)
    github_pr_number = Column(Integer, nullable=True)
    ci_status = Column(String(64), nullable=True)
    progress = Column(Integer, nullable=False, default=0)

    # Foreign keys
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sprint_id = Column(Integer, ForeignKey("sprints.id", ondelete="CASCADE"), nullable=True)

    # Relationships
    assignee = relationship("User", back_populates="assigned_tasks")
    sprint = relationship("Sprint", back_populates="tasks")
    deployments = relationship(
        "Deployment",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[Deployment.created_at.desc(), Deployment.id.desc()]"
    )

    __table_args__ = (
        Index('idx_task_sprint_status', 'sprint_id', 'status'),
        Index('idx_task_pr_number', 'github_pr_number'),
        Index('idx_task_assignee', 'assignee_id'),
    )

    def __repr__(self):
        return f"<Task title={self.title} status={self.status}>"
