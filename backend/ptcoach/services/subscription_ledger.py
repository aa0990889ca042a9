# backend/ptcoach/services/subscription_ledger.py
import math
from datetime import datetime, timedelta
from typing import Sequence
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.enums import PackageStatus
from ptcoach.core.exceptions import NotFoundError, PermissionDeniedError
from ptcoach.core.timeutils import utcnow, as_utc
from ptcoach.db.models import Package, PackagePurchase, User
from ptcoach.repositories.package import PackageRepository, PurchaseRepository
from ptcoach.repositories.user import UserRepository
from ptcoach.services.audit import record_admin_log
from ptcoach.services.email_templates import package_assigned_email
from ptcoach.services.mail import safe_send

log = structlog.get_logger(__name__)

MANUAL_ASSIGNMENT_REFERENCE = "MANUAL_ASSIGNMENT"


def calculate_expiry(duration_in_days: int, start: datetime) -> datetime:
    """Срок действия считается целыми днями от начала; отрицательная длительность = 0."""
    return start + timedelta(days=max(duration_in_days, 0))


def parse_start_date(value: datetime | str | None) -> datetime | None:
    """Нераспознанная дата начала трактуется как "сейчас"."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def remaining_days(expires_at: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    diff = (as_utc(expires_at) - now).total_seconds()
    if diff <= 0:
        return 0
    return math.ceil(diff / 86400)


class SubscriptionLedger:
    """
    Единственный источник правды о доступе пользователя к платному контенту.
    У пользователя в любой момент не более одной действующей покупки:
    новая покупка всегда вытесняет предыдущую.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.purchases = PurchaseRepository(session)
        self.packages = PackageRepository(session)
        self.users = UserRepository(session)

    async def get_active_purchase(self, user_id: int, now: datetime | None = None) -> PackagePurchase | None:
        return await self.purchases.get_active(user_id, now or utcnow())

    async def list_purchases(self, user_id: int) -> Sequence[PackagePurchase]:
        return await self.purchases.list_for_user(user_id)

    async def _supersede_and_insert(
        self,
        user_id: int,
        package: Package,
        status: PackageStatus,
        starts_at: datetime,
        now: datetime,
        payment_reference: str | None,
    ) -> PackagePurchase:
        # Блокировка строки пользователя сериализует конкурентные покупки
        if await self.users.lock(user_id) is None:
            raise NotFoundError("Kullanıcı bulunamadı")

        superseded = await self.purchases.supersede_current(user_id, now)

        purchase = PackagePurchase(
            user_id=user_id,
            package_id=package.id,
            status=status,
            purchased_at=now,
            starts_at=starts_at,
            expires_at=calculate_expiry(package.duration_in_days, starts_at),
            payment_reference=payment_reference,
        )
        purchase.package = package
        self.session.add(purchase)
        await self.session.flush()

        log.info(
            "subscription.purchase_created",
            user_id=user_id, package_id=package.id, purchase_id=purchase.id,
            status=status.value, superseded=superseded,
        )
        return purchase

    async def create_purchase(
        self,
        user_id: int,
        package: Package,
        payment_reference: str | None = None,
        now: datetime | None = None,
        commit: bool = True,
    ) -> PackagePurchase:
        """
        Создает ACTIVE покупку, начинающуюся сейчас. Все текущие ACTIVE/PENDING
        покупки пользователя переводятся в EXPIRED в той же транзакции.
        """
        now = now or utcnow()
        purchase = await self._supersede_and_insert(
            user_id, package, PackageStatus.ACTIVE, now, now, payment_reference
        )
        if commit:
            await self.session.commit()
        return purchase

    async def assign_manual(
        self,
        trainer: User,
        client_id: int,
        package_id: int,
        start_date: datetime | str | None = None,
        reference: str | None = None,
        now: datetime | None = None,
    ) -> PackagePurchase:
        """Ручное назначение пакета тренером. Будущая дата начала дает статус PENDING."""
        now = now or utcnow()

        client = await self.session.get(User, client_id)
        if not client:
            raise NotFoundError("Danışan bulunamadı")

        package = await self.packages.get_package(package_id)
        if not package:
            raise NotFoundError("Paket bulunamadı")

        await self.users.ensure_trainer_relation(trainer.id, client_id)

        starts_at = parse_start_date(start_date) or now
        status = PackageStatus.PENDING if starts_at > now else PackageStatus.ACTIVE

        purchase = await self._supersede_and_insert(
            client_id, package, status, starts_at, now,
            (reference or "").strip() or MANUAL_ASSIGNMENT_REFERENCE,
        )
        await self.session.commit()

        if client.email:
            await safe_send(
                self.session,
                client.email,
                package_assigned_email(
                    name=client.full_name or client.email,
                    package_name=package.name,
                    duration_in_days=package.duration_in_days,
                    price=package.price,
                    currency=package.currency,
                    trainer_name=trainer.full_name or trainer.email,
                    starts_at=starts_at,
                ),
                label="Paket ataması",
                source="subscription",
                actor=trainer,
                context={
                    "client_id": client_id, "trainer_id": trainer.id, "package_id": package.id,
                    "purchase_id": purchase.id, "status": purchase.status.value,
                },
            )

        await record_admin_log(
            self.session, "Manuel paket ataması yapıldı", source="subscription", actor=trainer,
            context={
                "client_id": client_id,
                "trainer_id": trainer.id,
                "package_id": package.id,
                "purchase_id": purchase.id,
                "status": purchase.status.value,
                "starts_at": purchase.starts_at,
                "expires_at": purchase.expires_at,
            },
        )
        await self.session.commit()
        return purchase

    async def cancel(self, purchase_id: int, now: datetime | None = None, commit: bool = True) -> PackagePurchase:
        """Отмена: статус CANCELLED, срок действия схлопывается до текущего момента."""
        now = now or utcnow()
        purchase = await self.session.get(PackagePurchase, purchase_id)
        if not purchase:
            raise NotFoundError("Paket kaydı bulunamadı")

        purchase.status = PackageStatus.CANCELLED
        purchase.cancelled_at = now
        purchase.expires_at = now
        if commit:
            await self.session.commit()
        log.info("subscription.purchase_cancelled", purchase_id=purchase.id, user_id=purchase.user_id)
        return purchase

    async def cancel_for_client(
        self, trainer: User, client_id: int, purchase_id: int, now: datetime | None = None
    ) -> PackagePurchase:
        if not await self.users.get_trainer_relation(trainer.id, client_id):
            raise PermissionDeniedError("Bu danışanı yönetme yetkiniz yok")

        purchase = await self.session.get(PackagePurchase, purchase_id)
        if not purchase or purchase.user_id != client_id:
            raise NotFoundError("Paket kaydı bulunamadı")

        previous_status = purchase.status
        purchase = await self.cancel(purchase_id, now=now, commit=False)

        await record_admin_log(
            self.session, "Manuel paket iptali yapıldı", source="subscription", actor=trainer,
            context={
                "client_id": client_id,
                "trainer_id": trainer.id,
                "package_id": purchase.package_id,
                "purchase_id": purchase.id,
                "previous_status": previous_status.value,
            },
        )
        await self.session.commit()
        return purchase

    async def expire_elapsed(self, now: datetime | None = None) -> int:
        count = await self.purchases.expire_elapsed(now or utcnow())
        await self.session.commit()
        return count
