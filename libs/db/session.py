from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.db.config import AsyncSessionLocal


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit the work done inside the block, or roll all of it back.

    Service operations that write several rows wrap themselves in this so a
    failure at any step leaves nothing behind.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
