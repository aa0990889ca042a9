# backend/ptcoach/services/paytr_settings.py
from typing import Any
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import PaytrLogAction, PaytrLogStatus, PaytrMode
from ptcoach.core.exceptions import InvalidRequestError
from ptcoach.core.security import encrypt_data
from ptcoach.core.timeutils import utcnow
from ptcoach.db.models import PaytrSetting, User
from ptcoach.repositories.payment import PaytrRepository
from ptcoach.services.paytr_gateway import (
    MASKED_SECRET, MAX_INSTALLMENT, PaymentGatewayAdapter, PaytrClient, PaytrCredentials, mask_secret,
)

log = structlog.get_logger(__name__)

DEFAULT_LOG_LIMIT = 20


def clamp_log_limit(value: int | None) -> int:
    if not value:
        return DEFAULT_LOG_LIMIT
    return min(100, max(5, value))


def parse_mode(value: Any, fallback: PaytrMode = PaytrMode.TEST) -> PaytrMode:
    if isinstance(value, PaytrMode):
        return value
    if not isinstance(value, str):
        return fallback
    return PaytrMode.LIVE if value.strip().upper() == PaytrMode.LIVE.value else PaytrMode.TEST


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _submitted_secret(value: Any) -> str:
    """Пустое значение или маска означают "оставить сохраненный секрет"."""
    secret = _text(value)
    return "" if secret == MASKED_SECRET else secret


def serialize_setting(setting: PaytrSetting) -> dict[str, Any]:
    return {
        "id": setting.id,
        "mode": setting.mode,
        "merchant_id": setting.merchant_id,
        "merchant_key": MASKED_SECRET if setting.encrypted_merchant_key else "",
        "merchant_salt": MASKED_SECRET if setting.encrypted_merchant_salt else "",
        "merchant_ok_url": setting.merchant_ok_url,
        "merchant_fail_url": setting.merchant_fail_url,
        "merchant_webhook_url": setting.merchant_webhook_url,
        "currency": setting.currency,
        "language": setting.language,
        "iframe_debug": setting.iframe_debug,
        "non_3d": setting.non_3d,
        "max_installment": setting.max_installment,
        "payment_methods": setting.payment_methods,
        "installment_config": setting.installment_config,
        "extra_config": setting.extra_config,
        "last_synced_at": setting.last_synced_at,
        "updated_at": setting.updated_at,
        "updated_by_email": setting.updated_by_email,
    }


class PaytrSettingsService:
    def __init__(self, session: AsyncSession, client: PaytrClient | None = None):
        self.session = session
        self.repo = PaytrRepository(session)
        self.client = client

    async def get_view(self, log_limit: int | None = None) -> dict[str, Any]:
        setting = await self.repo.get_current_setting()
        if not setting:
            return {"setting": None, "logs": []}
        logs = await self.repo.latest_logs(clamp_log_limit(log_limit))
        return {"setting": serialize_setting(setting), "logs": logs}

    async def update(self, data: dict[str, Any], admin: User, ip_address: str | None = None) -> dict[str, Any]:
        merchant_id = _text(data.get("merchant_id"))
        if not merchant_id:
            raise InvalidRequestError("Mağaza (merchant) ID zorunludur")

        existing = await self.repo.get_current_setting()

        merchant_key = _submitted_secret(data.get("merchant_key"))
        merchant_salt = _submitted_secret(data.get("merchant_salt"))
        encrypted_key = encrypt_data(merchant_key) if merchant_key else (existing.encrypted_merchant_key if existing else None)
        encrypted_salt = encrypt_data(merchant_salt) if merchant_salt else (existing.encrypted_merchant_salt if existing else None)
        if not encrypted_key or not encrypted_salt:
            raise InvalidRequestError("Merchant key ve merchant salt alanları zorunludur")

        try:
            max_installment = int(data.get("max_installment") or 0)
        except (TypeError, ValueError):
            max_installment = 0

        setting = existing or PaytrSetting()
        setting.mode = parse_mode(data.get("mode"))
        setting.merchant_id = merchant_id
        setting.encrypted_merchant_key = encrypted_key
        setting.encrypted_merchant_salt = encrypted_salt
        setting.merchant_ok_url = _text(data.get("merchant_ok_url")) or None
        setting.merchant_fail_url = _text(data.get("merchant_fail_url")) or None
        setting.merchant_webhook_url = _text(data.get("merchant_webhook_url")) or None
        setting.currency = _text(data.get("currency")) or "TL"
        setting.language = _text(data.get("language")) or "tr"
        setting.iframe_debug = bool(data.get("iframe_debug"))
        setting.non_3d = bool(data.get("non_3d"))
        setting.max_installment = max(0, min(MAX_INSTALLMENT, max_installment))
        for field in ("payment_methods", "installment_config", "extra_config"):
            value = data.get(field)
            if isinstance(value, (dict, list)):
                setattr(setting, field, value)
        setting.updated_by_id = admin.id
        setting.updated_by_email = admin.email
        setting.updated_at = utcnow()
        if not existing:
            self.session.add(setting)
        await self.session.flush()

        await self.repo.add_log(
            PaytrLogAction.SETTINGS_UPDATED, PaytrLogStatus.SUCCESS, "PayTR ayarları güncellendi",
            user_id=admin.id, user_email=admin.email, ip_address=ip_address,
            payload={
                "mode": setting.mode.value,
                "merchant_id": setting.merchant_id,
                "merchant_key": mask_secret(merchant_key) if merchant_key else MASKED_SECRET,
                "merchant_salt": mask_secret(merchant_salt) if merchant_salt else MASKED_SECRET,
                "currency": setting.currency,
                "non_3d": setting.non_3d,
                "max_installment": setting.max_installment,
            },
            setting_id=setting.id,
        )
        await self.session.commit()
        await self.session.refresh(setting)
        log.info("paytr.settings.updated", setting_id=setting.id, admin_id=admin.id, mode=setting.mode.value)
        return serialize_setting(setting)

    async def run_test(self, data: dict[str, Any], admin: User, ip_address: str | None = None) -> dict[str, Any]:
        """Значения из запроса перекрывают сохраненные настройки только для этого теста."""
        existing = await self.repo.get_current_setting()
        stored = PaytrCredentials.from_setting(existing) if existing else None

        def pick(field: str, default: Any = None) -> Any:
            value = data.get(field)
            if isinstance(value, str):
                value = value.strip()
            if value not in (None, ""):
                return value
            return getattr(stored, field) if stored else default

        credentials = PaytrCredentials(
            merchant_id=pick("merchant_id", ""),
            merchant_key=_submitted_secret(data.get("merchant_key")) or (stored.merchant_key if stored else ""),
            merchant_salt=_submitted_secret(data.get("merchant_salt")) or (stored.merchant_salt if stored else ""),
            mode=parse_mode(pick("mode", PaytrMode.TEST)),
            merchant_ok_url=pick("merchant_ok_url"),
            merchant_fail_url=pick("merchant_fail_url"),
            currency=pick("currency", "TL"),
            iframe_debug=bool(pick("iframe_debug", False)),
            non_3d=bool(pick("non_3d", False)),
            setting_id=existing.id if existing else None,
        )
        if not credentials.is_complete:
            raise InvalidRequestError("Test bağlantısı için merchant bilgileri eksik")

        result = await PaymentGatewayAdapter(self.session, client=self.client).test_connection(credentials)

        if result["ok"] and existing:
            existing.last_synced_at = utcnow()

        await self.repo.add_log(
            PaytrLogAction.SETTINGS_TEST,
            PaytrLogStatus.SUCCESS if result["ok"] else PaytrLogStatus.ERROR,
            "PayTR bağlantı testi başarılı" if result["ok"] else "PayTR bağlantı testi başarısız",
            user_id=admin.id, user_email=admin.email, ip_address=ip_address,
            payload={
                "mode": credentials.mode.value,
                "merchant_id": credentials.merchant_id,
                "currency": credentials.resolved_currency,
            },
            error=None if result["ok"] else {"reason": result["reason"]},
            setting_id=credentials.setting_id,
        )
        await self.session.commit()
        log.info("paytr.settings.tested", ok=result["ok"], admin_id=admin.id)
        return result
