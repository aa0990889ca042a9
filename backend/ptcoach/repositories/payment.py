# backend/ptcoach/repositories/payment.py
from typing import Any, Iterable, Sequence
from sqlalchemy import select, update

from ptcoach.core.enums import PaytrLogAction, PaytrLogStatus
from ptcoach.db.models import PaytrSetting, PaytrLog
from ptcoach.repositories.base import BaseRepository


class PaytrRepository(BaseRepository):

    async def get_current_setting(self) -> PaytrSetting | None:
        """Действующими считаются последние сохраненные настройки."""
        query = select(PaytrSetting).order_by(PaytrSetting.updated_at.desc(), PaytrSetting.id.desc()).limit(1)
        return (await self.session.execute(query)).scalar_one_or_none()

    async def add_log(
        self,
        action: PaytrLogAction,
        status: PaytrLogStatus,
        message: str | None = None,
        *,
        user_id: int | None = None,
        user_email: str | None = None,
        ip_address: str | None = None,
        payload: dict[str, Any] | None = None,
        error: dict[str, Any] | None = None,
        setting_id: int | None = None,
    ) -> PaytrLog:
        entry = PaytrLog(
            action=action.value,
            status=status.value,
            message=message,
            user_id=user_id,
            user_email=user_email,
            ip_address=ip_address,
            payload=payload,
            error=error,
            setting_id=setting_id,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def latest_logs(self, limit: int) -> Sequence[PaytrLog]:
        query = select(PaytrLog).order_by(PaytrLog.created_at.desc(), PaytrLog.id.desc()).limit(limit)
        return (await self.session.execute(query)).scalars().all()

    async def find_initiated(
        self,
        merchant_oid: str,
        user_id: int | None = None,
        statuses: Iterable[PaytrLogStatus] | None = None,
    ) -> PaytrLog | None:
        query = select(PaytrLog).where(
            PaytrLog.action == PaytrLogAction.PAYMENT_INITIATED.value,
            PaytrLog.message == merchant_oid,
        )
        if user_id is not None:
            query = query.where(PaytrLog.user_id == user_id)
        if statuses is not None:
            query = query.where(PaytrLog.status.in_([s.value for s in statuses]))
        query = query.order_by(PaytrLog.created_at.desc(), PaytrLog.id.desc()).limit(1)
        return (await self.session.execute(query)).scalar_one_or_none()

    async def claim_for_completion(self, log_id: int) -> bool:
        """
        Атомарно помечает попытку как completed.
        Возвращает False, если другой запрос уже успел это сделать.
        """
        stmt = (
            update(PaytrLog)
            .where(
                PaytrLog.id == log_id,
                PaytrLog.status != PaytrLogStatus.COMPLETED.value,
            )
            .values(status=PaytrLogStatus.COMPLETED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_failed(self, log_id: int) -> bool:
        stmt = (
            update(PaytrLog)
            .where(
                PaytrLog.id == log_id,
                PaytrLog.status != PaytrLogStatus.COMPLETED.value,
            )
            .values(status=PaytrLogStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
