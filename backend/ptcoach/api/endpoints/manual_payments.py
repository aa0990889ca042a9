# backend/ptcoach/api/endpoints/manual_payments.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.schemas.admin import ManualPaymentAccountList, ManualPaymentAccountRead
from ptcoach.db.session import get_db
from ptcoach.repositories.system import ManualPaymentRepository

router = APIRouter()


@router.get("", response_model=ManualPaymentAccountList)
async def list_manual_payment_accounts(db: AsyncSession = Depends(get_db)):
    accounts = await ManualPaymentRepository(db).list_accounts(active_only=True)
    return ManualPaymentAccountList(accounts=[ManualPaymentAccountRead.model_validate(a) for a in accounts])
