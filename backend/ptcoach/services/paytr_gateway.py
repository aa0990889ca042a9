# backend/ptcoach/services/paytr_gateway.py
import asyncio
import base64
import hashlib
import hmac
import json
import random
import re
import time
from dataclasses import dataclass, field
from typing import Any
import aiohttp
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.config import settings
from ptcoach.core.enums import PaytrLogAction, PaytrLogStatus, PaytrMode
from ptcoach.core.exceptions import (
    InvalidRequestError, NotFoundError, PaymentGatewayError,
    PaymentGatewayUnavailableError, PaymentNotConfiguredError,
)
from ptcoach.core.security import decrypt_data
from ptcoach.db.models import PaytrSetting, User
from ptcoach.repositories.package import PackageRepository
from ptcoach.repositories.payment import PaytrRepository

log = structlog.get_logger(__name__)

MASKED_SECRET = "********"
PAYMENT_TYPE = "card"
MAX_INSTALLMENT = 12
DEFAULT_CURRENCY = "TL"
DEFAULT_PHONE = "5555555555"
DEFAULT_ADDRESS = "Adres belirtilmedi, lütfen hesap ayarlarınızdan güncelleyiniz."
DEFAULT_CUSTOMER_NAME = "Müşteri"

_NON_DIGITS_RE = re.compile(r"\D+")


def build_paytr_hash(
    merchant_id: str,
    user_ip: str,
    merchant_oid: str,
    email: str,
    payment_amount: str,
    payment_type: str,
    installment_count: str,
    currency: str,
    test_mode: str,
    non_3d: str,
    merchant_salt: str,
    merchant_key: str,
) -> str:
    hash_str = "".join([
        merchant_id, user_ip, merchant_oid, email, payment_amount, payment_type,
        installment_count, currency, test_mode, non_3d, merchant_salt,
    ])
    digest = hmac.new(merchant_key.encode("utf-8"), hash_str.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def build_callback_hash(merchant_key: str, merchant_salt: str, merchant_oid: str, status: str, total_amount: str) -> str:
    hash_str = f"{merchant_oid}{merchant_salt}{status}{total_amount}"
    digest = hmac.new(merchant_key.encode("utf-8"), hash_str.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_callback_hash(
    merchant_key: str, merchant_salt: str, merchant_oid: str, status: str, total_amount: str, received_hash: str
) -> bool:
    expected = build_callback_hash(merchant_key, merchant_salt, merchant_oid, status, total_amount)
    return hmac.compare_digest(expected.encode("utf-8"), (received_hash or "").encode("utf-8"))


def build_user_basket(label: str, price: str) -> str:
    return base64.b64encode(json.dumps([[label, "1", price]], ensure_ascii=False).encode("utf-8")).decode()


def normalize_installment(value: Any) -> str:
    """Количество платежей в рассрочку, ограниченное диапазоном 0..12."""
    if isinstance(value, bool):
        return "0"
    if isinstance(value, (int, float)):
        return str(max(0, min(MAX_INSTALLMENT, int(value))))
    if isinstance(value, str):
        match = re.match(r"\s*-?\d+", value)
        if match:
            return str(max(0, min(MAX_INSTALLMENT, int(match.group()))))
    return "0"


def format_kurus(price: int | float) -> str:
    return str(round(max(0, price) * 100))


def generate_merchant_oid(package_id: int) -> str:
    return f"pkg_{package_id}_{int(time.time() * 1000)}_{random.randrange(1_000_000)}"


def mask_secret(secret: str | None) -> str:
    if not secret:
        return ""
    if len(secret) <= 4:
        return "*" * len(secret)
    return f"{secret[:2]}{'*' * max(len(secret) - 4, 4)}{secret[-2:]}"


@dataclass
class PaytrCredentials:
    merchant_id: str
    merchant_key: str
    merchant_salt: str
    mode: PaytrMode = PaytrMode.TEST
    merchant_ok_url: str | None = None
    merchant_fail_url: str | None = None
    currency: str = DEFAULT_CURRENCY
    language: str = "tr"
    iframe_debug: bool = False
    non_3d: bool = False
    max_installment: int = 0
    payment_methods: Any = None
    installment_config: Any = None
    setting_id: int | None = field(default=None)

    @property
    def is_complete(self) -> bool:
        return bool(self.merchant_id and self.merchant_key and self.merchant_salt)

    @property
    def resolved_currency(self) -> str:
        return (self.currency or "").strip() or DEFAULT_CURRENCY

    @classmethod
    def from_setting(cls, setting: PaytrSetting) -> "PaytrCredentials":
        return cls(
            merchant_id=setting.merchant_id or "",
            merchant_key=decrypt_data(setting.encrypted_merchant_key) or "",
            merchant_salt=decrypt_data(setting.encrypted_merchant_salt) or "",
            mode=setting.mode or PaytrMode.TEST,
            merchant_ok_url=setting.merchant_ok_url,
            merchant_fail_url=setting.merchant_fail_url,
            currency=setting.currency or DEFAULT_CURRENCY,
            language=setting.language or "tr",
            iframe_debug=bool(setting.iframe_debug),
            non_3d=bool(setting.non_3d),
            max_installment=setting.max_installment or 0,
            payment_methods=setting.payment_methods,
            installment_config=setting.installment_config,
            setting_id=setting.id,
        )


class PaytrClient:
    """Тонкая обертка над get-token API PayTR."""

    def __init__(self, token_url: str | None = None, timeout: int | None = None):
        self.token_url = token_url or settings.PAYTR_TOKEN_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.PAYTR_REQUEST_TIMEOUT)

    async def request_token(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.token_url, data=form) as response:
                    raw_text = await response.text()
        except aiohttp.ClientError as e:
            raise PaymentGatewayUnavailableError(f"PayTR bağlantı hatası ({type(e).__name__}): {e}")
        except asyncio.TimeoutError:
            raise PaymentGatewayUnavailableError("PayTR zaman aşımı")
        except UnicodeDecodeError as e:
            raise PaymentGatewayUnavailableError(f"PayTR yanıtı çözümlenemedi: {e.reason}")

        try:
            data = json.loads(raw_text)
        except ValueError:
            data = {"status": "failed", "reason": raw_text}

        if not isinstance(data, dict):
            raise PaymentGatewayUnavailableError("PayTR beklenmeyen yanıt döndürdü")
        return data


class PaymentGatewayAdapter:
    """Формирует подписанные запросы к PayTR и журналирует каждую попытку оплаты."""

    def __init__(self, session: AsyncSession, client: PaytrClient | None = None):
        self.session = session
        self.client = client or PaytrClient()
        self.repo = PaytrRepository(session)
        self.packages = PackageRepository(session)

    async def load_credentials(self) -> PaytrCredentials | None:
        setting = await self.repo.get_current_setting()
        if not setting:
            return None
        return PaytrCredentials.from_setting(setting)

    async def _log_failure(
        self,
        status: PaytrLogStatus,
        merchant_oid: str | None,
        user: User,
        user_ip: str,
        payload: dict[str, Any],
        error: dict[str, Any],
        setting_id: int | None,
    ):
        await self.repo.add_log(
            PaytrLogAction.PAYMENT_INITIATED, status, merchant_oid,
            user_id=user.id, user_email=user.email, ip_address=user_ip,
            payload=payload, error=error, setting_id=setting_id,
        )
        await self.session.commit()
        log.warning("paytr.checkout.failed", user_id=user.id, merchant_oid=merchant_oid, status=status.value, error=error)

    async def build_checkout_request(
        self,
        user: User,
        package_id: int,
        installment_count: Any = None,
        user_ip: str = "127.0.0.1",
        source: str | None = None,
    ) -> dict[str, Any]:
        package = await self.packages.get_package(package_id, active_only=True)
        if not package:
            raise NotFoundError("Paket bulunamadı")

        credentials = await self.load_credentials()
        installment = normalize_installment(installment_count)
        base_payload = {
            "package_id": package.id,
            "package_name": package.name,
            "price": package.price,
            "installment_count": installment,
            "source": source,
        }

        if not credentials or not credentials.is_complete:
            message = "Ödeme altyapısı yapılandırılmamış"
            await self._log_failure(
                PaytrLogStatus.ERROR, None, user, user_ip, base_payload, {"message": message},
                credentials.setting_id if credentials else None,
            )
            raise PaymentNotConfiguredError(message)

        if not user.email:
            message = "Kullanıcı e-posta bilgisi bulunamadı"
            await self._log_failure(
                PaytrLogStatus.FAILED, None, user, user_ip, base_payload, {"message": message},
                credentials.setting_id,
            )
            raise InvalidRequestError(message)

        currency = credentials.resolved_currency
        merchant_oid = generate_merchant_oid(package.id)
        payment_amount = format_kurus(package.price)
        test_mode = "1" if credentials.mode == PaytrMode.TEST else "0"
        non_3d = "1" if credentials.non_3d else "0"
        payload = {**base_payload, "currency": currency, "merchant_oid": merchant_oid}

        paytr_token = build_paytr_hash(
            credentials.merchant_id, user_ip, merchant_oid, user.email, payment_amount,
            PAYMENT_TYPE, installment, currency, test_mode, non_3d,
            credentials.merchant_salt, credentials.merchant_key,
        )

        base_url = settings.app_base_url
        ok_url = (credentials.merchant_ok_url or "").strip() or \
            f"{base_url}/paket-satin-al/odeme-sonucu?status=success&merchant_oid={merchant_oid}"
        fail_url = (credentials.merchant_fail_url or "").strip() or \
            f"{base_url}/paket-satin-al/odeme-sonucu?status=failed&merchant_oid={merchant_oid}"

        form = {
            "merchant_id": credentials.merchant_id,
            "user_ip": user_ip,
            "merchant_oid": merchant_oid,
            "email": user.email,
            "payment_amount": payment_amount,
            "payment_type": PAYMENT_TYPE,
            "installment_count": installment,
            "currency": currency,
            "test_mode": test_mode,
            "non_3d": non_3d,
            "merchant_ok_url": ok_url,
            "merchant_fail_url": fail_url,
            "user_name": user.full_name or DEFAULT_CUSTOMER_NAME,
            "user_address": (user.address or "").strip() or DEFAULT_ADDRESS,
            "user_phone": _NON_DIGITS_RE.sub("", user.phone or "") or DEFAULT_PHONE,
            "user_basket": build_user_basket(package.name, payment_amount),
            "debug_on": "1" if credentials.iframe_debug else "0",
            "lang": credentials.language or "tr",
            "paytr_token": paytr_token,
        }
        if credentials.max_installment and credentials.max_installment > 0:
            form["max_installment"] = str(credentials.max_installment)
        if credentials.payment_methods:
            form["payment_methods"] = json.dumps(credentials.payment_methods)
        if credentials.installment_config:
            form["installment_commission"] = json.dumps(credentials.installment_config)

        try:
            data = await self.client.request_token(form)
        except PaymentGatewayUnavailableError as e:
            await self._log_failure(
                PaytrLogStatus.ERROR, merchant_oid, user, user_ip, payload, {"message": e.message},
                credentials.setting_id,
            )
            raise PaymentGatewayUnavailableError("Ödeme ekranı oluşturulamadı. Lütfen daha sonra tekrar deneyin.")

        token = data.get("token")
        if data.get("status") != "success" or not isinstance(token, str):
            reason = data.get("reason")
            if not isinstance(reason, str) or not reason.strip():
                reason = "Ödeme başlatılamadı"
            await self._log_failure(
                PaytrLogStatus.FAILED, merchant_oid, user, user_ip, payload,
                {"reason": reason, "response": data}, credentials.setting_id,
            )
            raise PaymentGatewayError(reason, response=data)

        await self.repo.add_log(
            PaytrLogAction.PAYMENT_INITIATED, PaytrLogStatus.SUCCESS, merchant_oid,
            user_id=user.id, user_email=user.email, ip_address=user_ip,
            payload={**payload, "token": token}, setting_id=credentials.setting_id,
        )
        await self.session.commit()
        log.info("paytr.checkout.initiated", user_id=user.id, package_id=package.id, merchant_oid=merchant_oid)

        return {
            "token": token,
            "iframe_url": f"{settings.PAYTR_IFRAME_URL.rstrip('/')}/{token}",
            "merchant_oid": merchant_oid,
            "package": {
                "id": package.id,
                "name": package.name,
                "price": package.price,
                "currency": currency,
                "duration_in_days": package.duration_in_days,
            },
        }

    async def test_connection(self, credentials: PaytrCredentials) -> dict[str, Any]:
        """Пробный запрос токена с фиксированными тестовыми данными. Ledger не затрагивается."""
        user_ip = "127.0.0.1"
        merchant_oid = f"TEST-{int(time.time() * 1000)}"
        email = "test@example.com"
        payment_amount = "100"
        installment = "0"
        currency = credentials.resolved_currency
        test_mode = "1" if credentials.mode == PaytrMode.TEST else "0"
        non_3d = "1" if credentials.non_3d else "0"

        form = {
            "merchant_id": credentials.merchant_id,
            "user_ip": user_ip,
            "merchant_oid": merchant_oid,
            "email": email,
            "payment_amount": payment_amount,
            "payment_type": PAYMENT_TYPE,
            "installment_count": installment,
            "currency": currency,
            "test_mode": test_mode,
            "non_3d": non_3d,
            "merchant_ok_url": credentials.merchant_ok_url or "https://localhost/paytr/success",
            "merchant_fail_url": credentials.merchant_fail_url or "https://localhost/paytr/fail",
            "user_name": "Test Kullanıcı",
            "user_address": "Test Mah. Test Sok. No:1",
            "user_phone": DEFAULT_PHONE,
            "user_basket": build_user_basket("Test Ürünü", payment_amount),
            "debug_on": "1" if credentials.iframe_debug else "0",
            "paytr_token": build_paytr_hash(
                credentials.merchant_id, user_ip, merchant_oid, email, payment_amount,
                PAYMENT_TYPE, installment, currency, test_mode, non_3d,
                credentials.merchant_salt, credentials.merchant_key,
            ),
        }

        try:
            data = await self.client.request_token(form)
        except PaymentGatewayUnavailableError as e:
            return {"ok": False, "reason": e.message, "raw": None}

        if data.get("status") == "success":
            return {"ok": True, "token": data.get("token"), "raw": data}

        reason = data.get("reason")
        if not isinstance(reason, str) or not reason:
            reason = "PayTR bağlantısı doğrulanamadı"
        return {"ok": False, "reason": reason, "raw": data}
