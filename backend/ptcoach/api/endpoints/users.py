# backend/ptcoach/api/endpoints/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import get_current_user
from ptcoach.api.schemas.packages import ActivePackageResponse, purchase_to_read
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.services.subscription_ledger import SubscriptionLedger

router = APIRouter()


@router.get("/subscription", response_model=ActivePackageResponse)
async def get_my_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    purchase = await SubscriptionLedger(db).get_active_purchase(current_user.id)
    return ActivePackageResponse(active_package=purchase_to_read(purchase) if purchase else None)
