# backend/ptcoach/repositories/system.py
from typing import Sequence
from sqlalchemy import select, or_

from ptcoach.core.enums import LogLevel
from ptcoach.db.models import AdminLog, ManualPaymentAccount
from ptcoach.repositories.base import BaseRepository


class AdminLogRepository(BaseRepository):

    async def page(
        self,
        limit: int,
        level: LogLevel | None = None,
        source: str | None = None,
        search: str | None = None,
        cursor: int | None = None,
    ) -> tuple[list[AdminLog], int | None]:
        """Страница журнала от новых к старым. Курсор - id последней записи предыдущей страницы."""
        query = select(AdminLog)
        if level:
            query = query.where(AdminLog.level == level)
        if source and source != "ALL":
            query = query.where(AdminLog.source == source)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                AdminLog.message.ilike(pattern),
                AdminLog.actor_email.ilike(pattern),
                AdminLog.source.ilike(pattern),
            ))
        if cursor:
            query = query.where(AdminLog.id < cursor)
        query = query.order_by(AdminLog.id.desc()).limit(limit + 1)

        logs = list((await self.session.execute(query)).scalars().all())
        if len(logs) > limit:
            items = logs[:limit]
            return items, items[-1].id
        return logs, None


class ManualPaymentRepository(BaseRepository):

    async def list_accounts(self, active_only: bool = True) -> Sequence[ManualPaymentAccount]:
        query = select(ManualPaymentAccount)
        if active_only:
            query = query.where(ManualPaymentAccount.is_active.is_(True))
        query = query.order_by(ManualPaymentAccount.sort_order.asc(), ManualPaymentAccount.created_at.asc())
        return (await self.session.execute(query)).scalars().all()
