"""
Database connectivity and health check script
"""
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sprintboard.db.database import AsyncSessionLocal
from sprintboard.db.models import User, Sprint, Task, Deployment
from sqlalchemy import func, select
from loguru import logger


async def check_database():
    """Check database connectivity and table status"""
    logger.info("Checking database connectivity...")

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(select(1))
            logger.info("Database connection successful")

            logger.info("Database statistics:")
            for model in (User, Sprint, Task, Deployment):
                count = await db.scalar(select(func.count()).select_from(model))
                logger.info(f"   {model.__tablename__}: {count}")

            active = await db.scalar(select(Sprint.name).where(Sprint.is_active.is_(True)))
            logger.info(f"   active sprint: {active or 'none'}")

    except Exception as e:
        logger.error(f"Database check failed: {e}")
        raise

if __name__ == "__main__":
    asyncio.run(check_database())
