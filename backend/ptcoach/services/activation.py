# backend/ptcoach/services/activation.py
from dataclasses import dataclass
from datetime import datetime
from typing import Any
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import PaytrLogAction, PaytrLogStatus
from ptcoach.core.exceptions import (
    InvalidRequestError, NotFoundError, PaymentNotConfiguredError, UserActionException,
)
from ptcoach.core.timeutils import utcnow
from ptcoach.db.models import PackagePurchase, PaytrLog
from ptcoach.repositories.package import PackageRepository
from ptcoach.repositories.payment import PaytrRepository
from ptcoach.services.paytr_gateway import PaymentGatewayAdapter, verify_callback_hash
from ptcoach.services.subscription_ledger import SubscriptionLedger

log = structlog.get_logger(__name__)

ACTIVATABLE_STATUSES = (PaytrLogStatus.SUCCESS, PaytrLogStatus.COMPLETED)


@dataclass
class ActivationResult:
    purchase: PackagePurchase | None
    already_completed: bool = False


class ActivationReconciler:
    """
    Превращает подтвержденную попытку оплаты ровно в одну покупку.
    Повторные и конкурентные вызовы для одного merchant_oid возвращают ту же покупку.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = PaytrRepository(session)
        self.packages = PackageRepository(session)
        self.ledger = SubscriptionLedger(session)

    async def _prior_result(self, attempt: PaytrLog) -> ActivationResult:
        purchase_id = (attempt.payload or {}).get("purchase_id")
        purchase = await self.session.get(PackagePurchase, purchase_id) if purchase_id else None
        return ActivationResult(purchase=purchase, already_completed=True)

    async def complete(
        self,
        user_id: int,
        merchant_oid: str,
        user_email: str | None = None,
        now: datetime | None = None,
    ) -> ActivationResult:
        merchant_oid = (merchant_oid or "").strip()
        if not merchant_oid:
            raise InvalidRequestError("Geçersiz işlem kodu")

        attempt = await self.repo.find_initiated(merchant_oid, user_id=user_id, statuses=ACTIVATABLE_STATUSES)
        if not attempt:
            raise NotFoundError("İşlem kaydı bulunamadı")

        if attempt.status == PaytrLogStatus.COMPLETED.value:
            log.info("paytr.complete.replayed", merchant_oid=merchant_oid, user_id=user_id)
            return await self._prior_result(attempt)

        payload: dict[str, Any] = dict(attempt.payload or {})
        package_id = payload.get("package_id")
        if not package_id:
            raise InvalidRequestError("Paket bilgisi bulunamadı")

        package = await self.packages.get_package(int(package_id), active_only=True)
        if not package:
            raise NotFoundError("Paket bulunamadı veya pasif")

        if not await self.repo.claim_for_completion(attempt.id):
            # Запись уже забрал конкурентный запрос; до захвата в транзакции ничего не изменено
            await self.session.refresh(attempt)
            log.info("paytr.complete.claim_lost", merchant_oid=merchant_oid, user_id=user_id)
            return await self._prior_result(attempt)

        now = now or utcnow()
        purchase = await self.ledger.create_purchase(
            user_id, package, payment_reference=merchant_oid, now=now, commit=False
        )

        attempt.status = PaytrLogStatus.COMPLETED.value
        attempt.payload = {**payload, "purchase_id": purchase.id, "completed_at": now.isoformat()}

        await self.repo.add_log(
            PaytrLogAction.PAYMENT_COMPLETED, PaytrLogStatus.SUCCESS, merchant_oid,
            user_id=user_id, user_email=user_email or attempt.user_email,
            payload={
                "package_id": package.id,
                "package_name": package.name,
                "price": package.price,
                "currency": package.currency,
                "purchase_id": purchase.id,
            },
            setting_id=attempt.setting_id,
        )
        await self.session.commit()
        log.info("paytr.complete.activated", merchant_oid=merchant_oid, user_id=user_id, purchase_id=purchase.id)
        return ActivationResult(purchase=purchase)

    async def handle_callback(self, form: dict[str, Any], ip_address: str | None = None) -> None:
        """Серверное уведомление PayTR. После проверки подписи ответ всегда "OK"."""
        merchant_oid = str(form.get("merchant_oid") or "")
        status = str(form.get("status") or "")
        total_amount = str(form.get("total_amount") or "")

        credentials = await PaymentGatewayAdapter(self.session).load_credentials()
        if not credentials or not credentials.is_complete:
            raise PaymentNotConfiguredError("Ödeme altyapısı yapılandırılmamış")

        if not verify_callback_hash(
            credentials.merchant_key, credentials.merchant_salt,
            merchant_oid, status, total_amount, str(form.get("hash") or ""),
        ):
            log.warning("paytr.callback.bad_hash", merchant_oid=merchant_oid, ip=ip_address)
            raise InvalidRequestError("PAYTR notification failed: bad hash")

        attempt = await self.repo.find_initiated(merchant_oid)
        await self.repo.add_log(
            PaytrLogAction.PAYMENT_CALLBACK,
            PaytrLogStatus.SUCCESS if status == "success" else PaytrLogStatus.FAILED,
            merchant_oid,
            user_id=attempt.user_id if attempt else None,
            user_email=attempt.user_email if attempt else None,
            ip_address=ip_address,
            payload={
                "status": status,
                "total_amount": total_amount,
                "payment_type": form.get("payment_type"),
                "failed_reason_code": form.get("failed_reason_code"),
                "failed_reason_msg": form.get("failed_reason_msg"),
            },
            setting_id=credentials.setting_id,
        )

        if not attempt:
            await self.session.commit()
            log.warning("paytr.callback.unknown_attempt", merchant_oid=merchant_oid)
            return

        if status != "success":
            await self.repo.mark_failed(attempt.id)
            await self.session.commit()
            log.info("paytr.callback.failed", merchant_oid=merchant_oid, user_id=attempt.user_id)
            return

        await self.session.commit()
        if attempt.user_id is None:
            log.warning("paytr.callback.orphan_attempt", merchant_oid=merchant_oid)
            return
        try:
            result = await self.complete(attempt.user_id, merchant_oid)
        except UserActionException as e:
            log.error("paytr.callback.activation_failed", merchant_oid=merchant_oid, error=e.message)
            return
        log.info(
            "paytr.callback.processed", merchant_oid=merchant_oid, user_id=attempt.user_id,
            already_completed=result.already_completed,
        )
