# sprintboard/db/models/sprint.py
"""Sprint model"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from sprintboard.db.models.base import Base, IdMixin


class Sprint(Base, IdMixin):
    """A time box of work; at most one sprint is active at a time"""
    __tablename__ = "sprints"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    hackathon_mode = Column(Boolean, nullable=False, default=False)

    tasks = relationship(
        "Task",
        back_populates="sprint",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        # Only one row may carry is_active = true
        Index(
            'uq_sprints_single_active',
            'is_active',
            unique=True,
            postgresql_where=text('is_active'),
            sqlite_where=text('is_active = 1'),
        ),
        Index('idx_sprint_start_date', 'start_date'),
        CheckConstraint('end_date > start_date', name='ck_sprint_window'),
    )

    def __repr__(self):
        return f"<Sprint name={self.name} active={self.is_active}>"
