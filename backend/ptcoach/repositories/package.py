# backend/ptcoach/repositories/package.py
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, update, func

from ptcoach.core.enums import PackageStatus, ACCESS_STATUSES
from ptcoach.db.models import Package, PackagePurchase
from ptcoach.repositories.base import BaseRepository


class PackageRepository(BaseRepository):

    async def list_packages(self, active_only: bool = True) -> Sequence[Package]:
        query = select(Package)
        if active_only:
            query = query.where(Package.is_active.is_(True)).order_by(Package.price.asc(), Package.created_at.asc())
        else:
            query = query.order_by(Package.created_at.desc())
        return (await self.session.execute(query)).scalars().all()

    async def get_package(self, package_id: int, active_only: bool = False) -> Package | None:
        query = select(Package).where(Package.id == package_id)
        if active_only:
            query = query.where(Package.is_active.is_(True))
        return (await self.session.execute(query)).scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Package | None:
        return (await self.session.execute(select(Package).where(Package.slug == slug))).scalar_one_or_none()

    async def count_purchases(self, package_id: int) -> int:
        query = select(func.count(PackagePurchase.id)).where(PackagePurchase.package_id == package_id)
        return (await self.session.execute(query)).scalar_one()


class PurchaseRepository(BaseRepository):

    async def get_active(self, user_id: int, now: datetime) -> PackagePurchase | None:
        query = (
            select(PackagePurchase)
            .where(
                PackagePurchase.user_id == user_id,
                PackagePurchase.status.in_(ACCESS_STATUSES),
                PackagePurchase.starts_at <= now,
                PackagePurchase.expires_at > now,
            )
            .order_by(PackagePurchase.expires_at.desc())
            .limit(1)
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> Sequence[PackagePurchase]:
        query = (
            select(PackagePurchase)
            .where(PackagePurchase.user_id == user_id)
            .order_by(PackagePurchase.purchased_at.desc(), PackagePurchase.id.desc())
        )
        return (await self.session.execute(query)).scalars().all()

    async def supersede_current(self, user_id: int, now: datetime) -> int:
        """Переводит все еще действующие ACTIVE/PENDING покупки пользователя в EXPIRED."""
        stmt = (
            update(PackagePurchase)
            .where(
                PackagePurchase.user_id == user_id,
                PackagePurchase.status.in_(ACCESS_STATUSES),
                PackagePurchase.expires_at > now,
            )
            .values(status=PackageStatus.EXPIRED, cancelled_at=now)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def expire_elapsed(self, now: datetime) -> int:
        stmt = (
            update(PackagePurchase)
            .where(
                PackagePurchase.status.in_(ACCESS_STATUSES),
                PackagePurchase.expires_at <= now,
            )
            .values(status=PackageStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def list_current_holders(self, now: datetime) -> Sequence[PackagePurchase]:
        """Действующие и будущие (PENDING) покупки, срок которых еще не истек."""
        query = (
            select(PackagePurchase)
            .where(
                PackagePurchase.status.in_(ACCESS_STATUSES),
                PackagePurchase.expires_at > now,
            )
            .order_by(PackagePurchase.user_id)
        )
        return (await self.session.execute(query)).scalars().all()
