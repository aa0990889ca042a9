# backend/ptcoach/tasks/cron_jobs.py
import structlog

from ptcoach.db.session import AsyncSessionFactory
from ptcoach.tasks.logic.subscription_jobs import (
    _expire_elapsed_purchases_async, _send_weekly_checkin_emails_async,
)

log = structlog.get_logger(__name__)


async def expire_elapsed_purchases_job(ctx):
    async with AsyncSessionFactory() as session:
        await _expire_elapsed_purchases_async(session=session)


async def send_weekly_checkin_emails_job(ctx):
    async with AsyncSessionFactory() as session:
        await _send_weekly_checkin_emails_async(session=session)
