# backend/ptcoach/api/endpoints/paytr.py
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import get_client_ip, get_current_user, payment_limiter
from ptcoach.api.schemas.packages import purchase_to_read
from ptcoach.api.schemas.paytr import CheckoutRequest, CheckoutResponse, CompleteRequest, CompleteResponse
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.services.activation import ActivationReconciler
from ptcoach.services.paytr_gateway import PaymentGatewayAdapter

log = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse, dependencies=[Depends(payment_limiter)])
async def checkout(
    request_data: CheckoutRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await PaymentGatewayAdapter(db).build_checkout_request(
        current_user,
        request_data.package_id,
        installment_count=request_data.installment_count,
        user_ip=get_client_ip(request),
        source=request_data.source,
    )


@router.post("/complete", response_model=CompleteResponse, dependencies=[Depends(payment_limiter)])
async def complete(
    request_data: CompleteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await ActivationReconciler(db).complete(
        current_user.id, request_data.merchant_oid, user_email=current_user.email
    )
    return CompleteResponse(
        purchase=purchase_to_read(result.purchase) if result.purchase else None,
        already_completed=result.already_completed,
        message="İşlem daha önce tamamlanmış" if result.already_completed else None,
    )


@router.post("/callback", response_class=PlainTextResponse, include_in_schema=False)
async def paytr_callback(request: Request, db: AsyncSession = Depends(get_db)):
    form = await request.form()
    await ActivationReconciler(db).handle_callback(dict(form), ip_address=get_client_ip(request))
    return PlainTextResponse("OK")
