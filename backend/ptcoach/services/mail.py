# backend/ptcoach/services/mail.py
import asyncio
from typing import Any
import resend
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.config import settings
from ptcoach.core.enums import LogLevel
from ptcoach.core.exceptions import BaseAppException
from ptcoach.db.models import User
from ptcoach.services.audit import record_admin_log
from ptcoach.services.email_templates import EmailTemplate

log = structlog.get_logger(__name__)


class MailNotConfiguredError(BaseAppException):
    pass


async def send_mail(to: str, template: EmailTemplate) -> dict:
    """Отправляет письмо через Resend. SDK синхронный, поэтому уходит в поток."""
    if not settings.RESEND_API_KEY:
        raise MailNotConfiguredError("E-posta yapılandırması bulunamadı")
    resend.api_key = settings.RESEND_API_KEY
    params: dict[str, Any] = {
        "from": settings.MAIL_FROM,
        "to": [to],
        "subject": template.subject,
        "html": template.html,
    }
    if template.text:
        params["text"] = template.text
    return await asyncio.to_thread(resend.Emails.send, params)


async def safe_send(
    session: AsyncSession,
    to: str,
    template: EmailTemplate,
    *,
    label: str,
    source: str = "mail",
    actor: User | None = None,
    context: dict[str, Any] | None = None,
) -> bool:
    """
    Отправляет письмо и пишет результат в журнал аудита.
    Ошибка доставки никогда не прерывает основную операцию.
    """
    if not settings.RESEND_API_KEY:
        log.warning("mail.not_configured", to=to, label=label)
        return False

    log_context = {**(context or {}), "recipients": [to], "subject": template.subject}
    try:
        response = await send_mail(to, template)
    except Exception as e:
        log.warning("mail.send_failed", to=to, label=label, error=str(e))
        await record_admin_log(
            session, f"{label} bildirimi gönderilemedi",
            level=LogLevel.ERROR, source=source, actor=actor,
            context={**log_context, "error": {"name": type(e).__name__, "message": str(e)}},
        )
        await session.commit()
        return False

    message_id = response.get("id") if isinstance(response, dict) else None
    await record_admin_log(
        session, f"{label} bildirimi gönderildi",
        level=LogLevel.AUDIT, source=source, actor=actor,
        context={**log_context, "delivery": {"message_id": message_id}},
    )
    await session.commit()
    log.info("mail.sent", to=to, label=label, message_id=message_id)
    return True
