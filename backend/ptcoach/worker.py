# backend/ptcoach/worker.py
from zoneinfo import ZoneInfo
import structlog
from arq import cron
from ptcoach.arq_config import redis_settings
from ptcoach.core.config import settings
from ptcoach.core.logging import configure_logging

from ptcoach.tasks.cron_jobs import expire_elapsed_purchases_job, send_weekly_checkin_emails_job

configure_logging()
log = structlog.get_logger(__name__)

cron_jobs = [
    cron(expire_elapsed_purchases_job, minute={0, 15, 30, 45}),
    # Понедельник и пятница, 09:00 по CRON_TIMEZONE
    cron(send_weekly_checkin_emails_job, weekday={0, 4}, hour=9, minute=0),
]

async def startup(ctx):
    log.info("worker.started")

async def shutdown(ctx):
    log.info("worker.stopped")

class WorkerSettings:
    functions = []
    cron_jobs = cron_jobs
    redis_settings = redis_settings
    timezone = ZoneInfo(settings.CRON_TIMEZONE)
    on_startup = startup
    on_shutdown = shutdown
