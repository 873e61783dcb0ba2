"""
Create a team member and print a bearer token for the API
"""
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sprintboard.auth.security import create_access_token
from sprintboard.db.database import AsyncSessionLocal, init_db
from sprintboard.db.crud.user import create_user, get_user_by_username
from loguru import logger


async def create_team_member():
    """Create a user interactively, or issue a token for an existing one"""
    logger.info("Creating a Sprintboard team member...")

    username = input("Username: ").strip()
    if not username:
        logger.error("Username is required")
        return

    await init_db()

    async with AsyncSessionLocal() as db:
        user = await get_user_by_username(db, username)
        if user:
            logger.warning(f"User {username} already exists (ID: {user.id}); issuing a token")
        else:
            name = input("Display name: ").strip() or username
            email = input("Email: ").strip()
            if not email:
                logger.error("Email is required")
                return
            user = await create_user(db, {"username": username, "name": name, "email": email})
            logger.info(f"User created: {user.username} (ID: {user.id})")

    token = create_access_token({"sub": str(user.id)})
    print(token)


if __name__ == "__main__":
    asyncio.run(create_team_member())
