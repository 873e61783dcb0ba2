from sqlalchemy import Column, Integer
from sprintboard.db.database import Base


class IdMixin:
    """Mixin for the serial integer primary key every entity exposes as `id`"""
    id = Column(Integer, primary_key=True, index=True)
