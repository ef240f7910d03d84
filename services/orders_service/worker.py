"""ARQ worker for scheduled order maintenance."""

from arq import cron
from arq.connections import RedisSettings
from libs.common.config import get_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)

settings = get_settings()


async def startup(ctx: dict):
    configure_logging()


async def task_expire_overdue_payments(ctx: dict):
    from services.orders_service.tasks import expire_overdue_order_payments

    logger.info("Running: expire_overdue_order_payments")
    await expire_overdue_order_payments()


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    queue_name = settings.ARQ_QUEUE_NAME
    on_startup = startup

    functions = [task_expire_overdue_payments]

    cron_jobs = [
        cron(
            task_expire_overdue_payments,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
            run_at_startup=True,
        ),
    ]
