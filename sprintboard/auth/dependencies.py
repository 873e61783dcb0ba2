# sprintboard/auth/dependencies.py
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError
from loguru import logger

from sprintboard.db.database import get_db
from sprintboard.auth.security import decode_token
from sprintboard.core.config import settings
from sprintboard.db.crud.user import get_user
from sprintboard.db.models import User
from sprintboard.exceptions.auth import MissingSessionError, InvalidSessionError

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user(
        db: AsyncSession = Depends(get_db),
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[User]:
    """
    Resolve the bearer token to a user, or None when no token was sent
    """
    if credentials is None:
        return None

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise InvalidSessionError()

    subject = payload.get("sub")
    if payload.get("type") != "access" or subject is None or not str(subject).isdigit():
        logger.warning("Invalid token payload - missing or malformed subject")
        raise InvalidSessionError()

    user = await get_user(db, int(subject))
    if user is None:
        logger.warning(f"Session for unknown user | user_id={subject}")
        raise InvalidSessionError()

    logger.debug(f"Session resolved | username={user.username} | user_id={user.id}")
    return user


async def require_session(user: Optional[User] = Depends(get_optional_user)) -> Optional[User]:
    """
    Guard for mutating endpoints; a no-op when AUTH_REQUIRED is off
    """
    if user is None and settings.AUTH_REQUIRED:
        raise MissingSessionError()
    return user
