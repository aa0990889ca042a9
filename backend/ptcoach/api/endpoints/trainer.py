# backend/ptcoach/api/endpoints/trainer.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import get_current_trainer_user
from ptcoach.api.schemas.packages import PurchaseResponse, purchase_to_read
from ptcoach.api.schemas.trainer import ClientPackagesResponse, ManualAssignmentRequest
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.repositories.user import UserRepository
from ptcoach.services.subscription_ledger import SubscriptionLedger

router = APIRouter()


async def _ensure_relation(db: AsyncSession, trainer: User, client_id: int):
    if not await UserRepository(db).get_trainer_relation(trainer.id, client_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Bu danışanı yönetme yetkiniz yok")


@router.get("/clients/{client_id}/packages", response_model=ClientPackagesResponse)
async def list_client_packages(
    client_id: int,
    trainer: User = Depends(get_current_trainer_user),
    db: AsyncSession = Depends(get_db)
):
    await _ensure_relation(db, trainer, client_id)
    ledger = SubscriptionLedger(db)
    active = await ledger.get_active_purchase(client_id)
    purchases = await ledger.list_purchases(client_id)
    return ClientPackagesResponse(
        active_package=purchase_to_read(active) if active else None,
        purchases=[purchase_to_read(p) for p in purchases],
    )


@router.post(
    "/clients/{client_id}/packages",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED
)
async def assign_client_package(
    client_id: int,
    request_data: ManualAssignmentRequest,
    trainer: User = Depends(get_current_trainer_user),
    db: AsyncSession = Depends(get_db)
):
    purchase = await SubscriptionLedger(db).assign_manual(
        trainer, client_id, request_data.package_id,
        start_date=request_data.start_date, reference=request_data.reference,
    )
    return PurchaseResponse(purchase=purchase_to_read(purchase))


@router.delete("/clients/{client_id}/packages/{purchase_id}", response_model=PurchaseResponse)
async def cancel_client_package(
    client_id: int,
    purchase_id: int,
    trainer: User = Depends(get_current_trainer_user),
    db: AsyncSession = Depends(get_db)
):
    purchase = await SubscriptionLedger(db).cancel_for_client(trainer, client_id, purchase_id)
    return PurchaseResponse(purchase=purchase_to_read(purchase))
