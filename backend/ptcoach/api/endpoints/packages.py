# backend/ptcoach/api/endpoints/packages.py
import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import get_current_user, payment_limiter
from ptcoach.api.schemas.packages import (
    PackageListResponse, PackageRead, PurchaseRequest, PurchaseResponse, purchase_to_read,
)
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.services.package_catalog import PackageCatalog
from ptcoach.services.subscription_ledger import SubscriptionLedger

log = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=PackageListResponse)
async def list_packages(db: AsyncSession = Depends(get_db)):
    packages = await PackageCatalog(db).list_packages(active_only=True)
    return PackageListResponse(packages=[PackageRead.model_validate(p) for p in packages])


@router.post("/purchase", response_model=PurchaseResponse, dependencies=[Depends(payment_limiter)])
async def purchase_package(
    request_data: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Прямая покупка без платежного шлюза."""
    package = await PackageCatalog(db).get_package(request_data.package_id)
    purchase = await SubscriptionLedger(db).create_purchase(current_user.id, package)
    log.info("package.purchased", user_id=current_user.id, package_id=package.id, purchase_id=purchase.id)
    return PurchaseResponse(purchase=purchase_to_read(purchase))
