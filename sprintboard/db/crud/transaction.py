# sprintboard/db/crud/transaction.py
"""Commit helper shared by the CRUD modules"""
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from sprintboard.exceptions.store import ConstraintViolationError, StoreError


async def commit_or_raise(db: AsyncSession, action: str) -> None:
    """Commit the session, translating driver failures into store errors.

    The session is rolled back on any failure so nothing from the failed
    unit of work remains visible.
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Constraint violation during {action}: {e.orig}")
        raise ConstraintViolationError(f"Constraint violation during {action}") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Store failure during {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


async def rollback_and_raise(db: AsyncSession, action: str, exc: SQLAlchemyError) -> None:
    """Roll back after a failed statement and re-raise as a store error"""
    await db.rollback()
    if isinstance(exc, IntegrityError):
        logger.warning(f"Constraint violation during {action}: {exc.orig}")
        raise ConstraintViolationError(f"Constraint violation during {action}") from exc
    logger.error(f"Store failure during {action}: {exc}")
    raise StoreError(f"Failed to {action}") from exc
