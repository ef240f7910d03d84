"""Background tasks for the orders service."""

from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.orders_service.services.settlement import expire_overdue_payments
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


async def expire_overdue_order_payments(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Expire pending payments of orders past their payment deadline."""
    settings = get_settings()
    factory = session_factory or AsyncSessionLocal
    async with factory() as db:
        expired = await expire_overdue_payments(
            db, batch_size=settings.EXPIRY_SWEEP_BATCH_SIZE
        )
    if expired:
        logger.info("Expiry sweep updated %d order(s)", expired)
    return expired
