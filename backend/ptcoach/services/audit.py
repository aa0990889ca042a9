# backend/ptcoach/services/audit.py
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ptcoach.core.enums import LogLevel
from ptcoach.db.models import AdminLog, User

log = structlog.get_logger(__name__)


def _jsonable(context: dict[str, Any] | None) -> dict[str, Any] | None:
    if context is None:
        return None
    return {key: value.isoformat() if hasattr(value, "isoformat") else value for key, value in context.items()}


async def record_admin_log(
    session: AsyncSession,
    message: str,
    *,
    level: LogLevel = LogLevel.AUDIT,
    source: str | None = None,
    actor: User | None = None,
    context: dict[str, Any] | None = None,
) -> AdminLog:
    """
    Добавляет запись в журнал аудита. Коммит остается за вызывающим кодом,
    чтобы запись попадала в ту же транзакцию, что и само действие.
    """
    entry = AdminLog(
        level=level,
        message=message,
        source=source,
        actor_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        context=_jsonable(context),
    )
    session.add(entry)
    log.info("audit.recorded", message=message, source=source, actor_id=entry.actor_id)
    return entry
