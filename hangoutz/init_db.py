from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from .database import AsyncSessionLocal


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session. Uncommitted work is rolled back if the handler raises."""
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise
