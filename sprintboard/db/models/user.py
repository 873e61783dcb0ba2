# sprintboard/db/models/user.py
"""Team member model"""
from sqlalchemy import Column, String, Text, Index
from sqlalchemy.orm import relationship

from sprintboard.db.models.base import Base, IdMixin


class User(Base, IdMixin):
    """A team member, optionally linked to a GitHub account"""
    __tablename__ = "users"

    username = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    avatar = Column(Text, nullable=True)

    # External identity linkage
    github_id = Column(String(64), nullable=True)
    github_username = Column(String(255), nullable=True)
    github_access_token = Column(Text, nullable=True)

    # Assigned tasks keep existing when the user goes away (FK is SET NULL)
    assigned_tasks = relationship("Task", back_populates="assignee", passive_deletes=True)

    __table_args__ = (
        Index('idx_user_github_id', 'github_id'),
    )

    def __repr__(self):
        return f"<User username={self.username}>"
