# backend/ptcoach/services/package_catalog.py
import re
from typing import Any, Sequence
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.exceptions import InvalidRequestError, NotFoundError
from ptcoach.db.models import Package, User
from ptcoach.repositories.package import PackageRepository
from ptcoach.services.audit import record_admin_log

log = structlog.get_logger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_LIST_SPLIT_RE = re.compile(r"\r?\n|,")


def normalize_slug(value: str) -> str:
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def parse_string_list(value: Any) -> list[str]:
    """Принимает список строк или строку с разделителями (запятая, перевод строки)."""
    if isinstance(value, list):
        items = [item.strip() for item in value if isinstance(item, str)]
    elif isinstance(value, str):
        items = [item.strip() for item in _LIST_SPLIT_RE.split(value)]
    else:
        return []
    return [item for item in items if item]


def normalize_currency(value: str | None, fallback: str = "TRY") -> str:
    if value and len(value.strip()) == 3:
        return value.strip().upper()
    return fallback


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class PackageCatalog:
    """Каталог пакетов: чтение для клиентов и управление для администраторов."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = PackageRepository(session)

    async def list_packages(self, active_only: bool = True) -> Sequence[Package]:
        return await self.repo.list_packages(active_only=active_only)

    async def get_package(self, package_id: int, active_only: bool = True) -> Package:
        package = await self.repo.get_package(package_id, active_only=active_only)
        if not package:
            raise NotFoundError("Paket bulunamadı")
        return package

    async def _ensure_unique_slug(self, slug: str, exclude_id: int | None = None):
        existing = await self.repo.get_by_slug(slug)
        if existing and existing.id != exclude_id:
            raise InvalidRequestError("Bu slug başka bir pakette kullanılıyor")

    async def create_package(self, data: dict[str, Any], admin: User) -> Package:
        name = (data.get("name") or "").strip()
        if not name:
            raise InvalidRequestError("Paket adı zorunludur")

        price = max(0, int(data.get("price") or 0))
        if price <= 0:
            raise InvalidRequestError("Paket fiyatı zorunludur")

        slug = normalize_slug((data.get("slug") or "").strip() or name)
        if not slug:
            raise InvalidRequestError("Slug oluşturulamadı")
        await self._ensure_unique_slug(slug)

        original_price = data.get("original_price")
        package = Package(
            slug=slug,
            name=name,
            headline=_clean(data.get("headline")),
            description=_clean(data.get("description")),
            price=price,
            original_price=max(0, int(original_price)) if original_price is not None else None,
            currency=normalize_currency(data.get("currency")),
            duration_in_days=max(1, int(data.get("duration_in_days") or 30)),
            is_popular=bool(data.get("is_popular", False)),
            is_active=bool(data.get("is_active", True)),
            theme_color=_clean(data.get("theme_color")),
            icon_name=_clean(data.get("icon_name")),
            features=parse_string_list(data.get("features")),
            not_included=parse_string_list(data.get("not_included")),
        )
        self.session.add(package)
        await self.session.flush()

        await record_admin_log(
            self.session, "Paket oluşturuldu", source="subscription", actor=admin,
            context={"package_id": package.id, "name": package.name},
        )
        await self.session.commit()
        log.info("package.created", package_id=package.id, slug=package.slug, admin_id=admin.id)
        return package

    async def update_package(self, package_id: int, data: dict[str, Any], admin: User) -> Package:
        package = await self.get_package(package_id, active_only=False)

        if "name" in data and data["name"] is not None:
            name = data["name"].strip()
            if not name:
                raise InvalidRequestError("Paket adı zorunludur")
            package.name = name

        if "slug" in data or "name" in data:
            slug = normalize_slug((data.get("slug") or "").strip() or package.slug or package.name)
            if not slug:
                raise InvalidRequestError("Geçersiz slug")
            await self._ensure_unique_slug(slug, exclude_id=package.id)
            package.slug = slug

        for field in ("headline", "description", "theme_color", "icon_name"):
            if field in data:
                setattr(package, field, _clean(data[field]))

        if data.get("price") is not None:
            price = max(0, int(data["price"]))
            if price <= 0:
                raise InvalidRequestError("Paket fiyatı zorunludur")
            package.price = price
        if "original_price" in data:
            original_price = data["original_price"]
            package.original_price = max(0, int(original_price)) if original_price is not None else None
        if data.get("duration_in_days") is not None:
            package.duration_in_days = max(1, int(data["duration_in_days"]))
        if "currency" in data:
            package.currency = normalize_currency(data["currency"], fallback=package.currency)
        for field in ("is_popular", "is_active"):
            if data.get(field) is not None:
                setattr(package, field, bool(data[field]))
        for field in ("features", "not_included"):
            if field in data and data[field] is not None:
                setattr(package, field, parse_string_list(data[field]))

        await record_admin_log(
            self.session, "Paket güncellendi", source="subscription", actor=admin,
            context={"package_id": package.id, "name": package.name},
        )
        await self.session.commit()
        await self.session.refresh(package)
        log.info("package.updated", package_id=package.id, admin_id=admin.id)
        return package

    async def delete_package(self, package_id: int, admin: User) -> bool:
        """
        Пакет, на который ссылаются покупки, только деактивируется.
        Возвращает True, если пакет удален физически.
        """
        package = await self.get_package(package_id, active_only=False)
        if await self.repo.count_purchases(package.id) > 0:
            package.is_active = False
            deleted = False
            message = "Paket pasife alındı"
        else:
            await self.session.delete(package)
            deleted = True
            message = "Paket silindi"

        await record_admin_log(
            self.session, message, source="subscription", actor=admin,
            context={"package_id": package_id, "name": package.name},
        )
        await self.session.commit()
        log.info("package.deleted", package_id=package_id, hard_delete=deleted, admin_id=admin.id)
        return deleted
