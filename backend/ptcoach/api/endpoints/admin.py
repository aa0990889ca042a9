# backend/ptcoach/api/endpoints/admin.py
import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import get_client_ip, get_current_admin_user
from ptcoach.api.schemas.admin import (
    AdminLogPage, AdminLogRead, ManualPaymentAccountCreate, ManualPaymentAccountList,
    ManualPaymentAccountRead, ManualPaymentAccountUpdate,
)
from ptcoach.api.schemas.packages import (
    PackageCreate, PackageDeleteResponse, PackageListResponse, PackageRead, PackageUpdate,
)
from ptcoach.api.schemas.paytr import (
    PaytrLogRead, PaytrSettingsResponse, PaytrSettingsTestRequest, PaytrSettingsUpdate,
    PaytrSettingsUpdateResponse, PaytrTestResponse,
)
from ptcoach.core.enums import LogLevel
from ptcoach.core.exceptions import NotFoundError
from ptcoach.db.models import ManualPaymentAccount, User
from ptcoach.db.session import get_db
from ptcoach.repositories.system import AdminLogRepository, ManualPaymentRepository
from ptcoach.services.audit import record_admin_log
from ptcoach.services.package_catalog import PackageCatalog
from ptcoach.services.paytr_settings import PaytrSettingsService

log = structlog.get_logger(__name__)
router = APIRouter()


# --- Пакеты ---

@router.get("/packages", response_model=PackageListResponse)
async def admin_list_packages(
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    packages = await PackageCatalog(db).list_packages(active_only=False)
    return PackageListResponse(packages=[PackageRead.model_validate(p) for p in packages])


@router.post("/packages", response_model=PackageRead, status_code=status.HTTP_201_CREATED)
async def admin_create_package(
    request_data: PackageCreate,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    package = await PackageCatalog(db).create_package(request_data.model_dump(), admin)
    return PackageRead.model_validate(package)


@router.put("/packages/{package_id}", response_model=PackageRead)
async def admin_update_package(
    package_id: int,
    request_data: PackageUpdate,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    package = await PackageCatalog(db).update_package(package_id, request_data.model_dump(exclude_unset=True), admin)
    return PackageRead.model_validate(package)


@router.delete("/packages/{package_id}", response_model=PackageDeleteResponse)
async def admin_delete_package(
    package_id: int,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    deleted = await PackageCatalog(db).delete_package(package_id, admin)
    message = "Paket silindi" if deleted else "Paket satın alımlarda kullanıldığı için pasife alındı"
    return PackageDeleteResponse(deleted=deleted, message=message)


# --- Настройки PayTR ---

@router.get("/paytr-settings", response_model=PaytrSettingsResponse)
async def get_paytr_settings(
    limit: int | None = Query(None),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    view = await PaytrSettingsService(db).get_view(limit)
    return PaytrSettingsResponse(
        setting=view["setting"],
        logs=[PaytrLogRead.model_validate(entry) for entry in view["logs"]],
    )


@router.put("/paytr-settings", response_model=PaytrSettingsUpdateResponse)
async def update_paytr_settings(
    request_data: PaytrSettingsUpdate,
    request: Request,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    setting = await PaytrSettingsService(db).update(request_data.model_dump(), admin, ip_address=get_client_ip(request))
    return PaytrSettingsUpdateResponse(setting=setting)


@router.post("/paytr-settings/test", response_model=PaytrTestResponse)
async def test_paytr_settings(
    request_data: PaytrSettingsTestRequest,
    request: Request,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    result = await PaytrSettingsService(db).run_test(
        request_data.model_dump(exclude_unset=True), admin, ip_address=get_client_ip(request)
    )
    if not result["ok"]:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "detail": result["reason"], "raw": result["raw"]},
        )
    return PaytrTestResponse(success=True, token=result.get("token"), raw=result["raw"])


# --- Журнал аудита ---

@router.get("/logs", response_model=AdminLogPage)
async def list_admin_logs(
    level: LogLevel | None = Query(None),
    source: str | None = Query(None),
    q: str | None = Query(None),
    cursor: int | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    items, next_cursor = await AdminLogRepository(db).page(
        limit, level=level, source=(source or "").strip() or None,
        search=(q or "").strip() or None, cursor=cursor,
    )
    return AdminLogPage(
        items=[AdminLogRead.model_validate(i) for i in items],
        next_cursor=next_cursor,
        has_more=next_cursor is not None,
    )


# --- Банковские счета для перевода ---

async def _get_account(db: AsyncSession, account_id: int) -> ManualPaymentAccount:
    account = await ManualPaymentRepository(db).get(ManualPaymentAccount, account_id)
    if not account:
        raise NotFoundError("Hesap bulunamadı")
    return account


@router.get("/manual-payments", response_model=ManualPaymentAccountList)
async def admin_list_manual_payments(
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    accounts = await ManualPaymentRepository(db).list_accounts(active_only=False)
    return ManualPaymentAccountList(accounts=[ManualPaymentAccountRead.model_validate(a) for a in accounts])


@router.post("/manual-payments", response_model=ManualPaymentAccountRead, status_code=status.HTTP_201_CREATED)
async def admin_create_manual_payment(
    request_data: ManualPaymentAccountCreate,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    account = ManualPaymentAccount(**request_data.model_dump())
    db.add(account)
    await db.flush()
    await record_admin_log(
        db, "Havale hesabı eklendi", source="payments", actor=admin,
        context={"account_id": account.id, "bank_name": account.bank_name},
    )
    await db.commit()
    await db.refresh(account)
    return ManualPaymentAccountRead.model_validate(account)


@router.put("/manual-payments/{account_id}", response_model=ManualPaymentAccountRead)
async def admin_update_manual_payment(
    account_id: int,
    request_data: ManualPaymentAccountUpdate,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    account = await _get_account(db, account_id)
    for key, value in request_data.model_dump(exclude_unset=True).items():
        if value is not None or key in ("account_number", "branch_name", "description"):
            setattr(account, key, value)
    await record_admin_log(
        db, "Havale hesabı güncellendi", source="payments", actor=admin,
        context={"account_id": account.id, "bank_name": account.bank_name},
    )
    await db.commit()
    await db.refresh(account)
    return ManualPaymentAccountRead.model_validate(account)


@router.delete("/manual-payments/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_manual_payment(
    account_id: int,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    account = await _get_account(db, account_id)
    await record_admin_log(
        db, "Havale hesabı silindi", source="payments", actor=admin,
        context={"account_id": account.id, "bank_name": account.bank_name},
    )
    await db.delete(account)
    await db.commit()
