from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, Dict, Any, List
from loguru import logger

from sprintboard.db.models import User
from sprintboard.db.crud.transaction import commit_or_raise, rollback_and_raise
from sprintboard.exceptions.store import EntityNotFoundError

# Identity fields are fixed at creation; only these may be refreshed later
REFRESHABLE_FIELDS = {"avatar", "github_access_token"}


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    """Retrieve a user by id, or None."""
    try:
        return await db.get(User, user_id)
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load user", e)


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise EntityNotFoundError("User", user_id)
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    try:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalars().first()
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load user", e)


async def get_user_by_github_id(db: AsyncSession, github_id: str) -> Optional[User]:
    """Look up the user linked to an external GitHub account id."""
    try:
        result = await db.execute(select(User).where(User.github_id == github_id))
        return result.scalars().first()
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "load user", e)


async def get_users(db: AsyncSession) -> List[User]:
    try:
        result = await db.execute(select(User).order_by(User.name.asc(), User.id.asc()))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        await rollback_and_raise(db, "list users", e)


async def create_user(db: AsyncSession, user_data: Dict[str, Any]) -> User:
    """Insert a new user; a taken username surfaces as a constraint violation."""
    user = User(**user_data)
    db.add(user)
    await commit_or_raise(db, "create user")
    logger.info(f"User created: {user.username} (ID: {user.id})")
    return user


async def update_user(db: AsyncSession, user_id: int, updates: Dict[str, Any]) -> User:
    """Refresh avatar or access token; identity fields are left untouched."""
    user = await get_user_or_404(db, user_id)

    for key, value in updates.items():
        if key not in REFRESHABLE_FIELDS:
            logger.warning(f"Attempt to update immutable user field: {key}")
            continue
        setattr(user, key, value)

    await commit_or_raise(db, "update user")
    logger.info(f"User updated: {user.username}")
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Delete a user; tasks assigned to them are kept with the assignee cleared."""
    user = await get_user_or_404(db, user_id)
    await db.delete(user)
    await commit_or_raise(db, "delete user")
    logger.info(f"User {user.username} deleted")
