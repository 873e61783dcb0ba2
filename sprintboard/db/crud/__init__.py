"""CRUD operations for database models"""
from . import user
from . import sprint
from . import task
from . import deployment

__all__ = ["user", "sprint", "task", "deployment"]
