# backend/ptcoach/tasks/logic/subscription_jobs.py
from contextlib import asynccontextmanager
from datetime import datetime
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.timeutils import utcnow
from ptcoach.db.models import User
from ptcoach.db.session import AsyncSessionFactory
from ptcoach.repositories.package import PurchaseRepository
from ptcoach.services.email_templates import weekly_checkin_email
from ptcoach.services.mail import safe_send
from ptcoach.services.subscription_ledger import SubscriptionLedger

log = structlog.get_logger(__name__)


@asynccontextmanager
async def get_session(provided_session: AsyncSession | None = None):
    """Контекстный менеджер для получения сессии БД."""
    if provided_session:
        yield provided_session
    else:
        async with AsyncSessionFactory() as session:
            yield session


async def _expire_elapsed_purchases_async(session: AsyncSession | None = None, now: datetime | None = None) -> int:
    """Переводит истекшие ACTIVE/PENDING покупки в EXPIRED. На проверку доступа не влияет."""
    async with get_session(session) as db_session:
        count = await SubscriptionLedger(db_session).expire_elapsed(now)
        if count > 0:
            log.info("subscription.expired_purchases", count=count)
        return count


async def _send_weekly_checkin_emails_async(session: AsyncSession | None = None, now: datetime | None = None) -> int:
    """Напоминание о еженедельном отчете для всех, у кого есть действующий или назначенный пакет. Одно письмо на пользователя."""
    async with get_session(session) as db_session:
        purchases = await PurchaseRepository(db_session).list_current_holders(now or utcnow())
        user_ids = sorted({p.user_id for p in purchases})
        if not user_ids:
            log.info("checkin.no_recipients")
            return 0

        sent = 0
        for user_id in user_ids:
            user = await db_session.get(User, user_id)
            if not user or not user.is_active or not user.email:
                continue
            if await safe_send(
                db_session, user.email, weekly_checkin_email(user.full_name),
                label="Haftalık kontrol", source="cron", context={"user_id": user.id},
            ):
                sent += 1
        log.info("checkin.emails_sent", sent=sent, recipients=len(user_ids))
        return sent
