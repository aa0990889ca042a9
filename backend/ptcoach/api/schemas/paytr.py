# backend/ptcoach/api/schemas/paytr.py
from datetime import datetime
from typing import Any, List
from pydantic import BaseModel, Field, ConfigDict

from ptcoach.api.schemas.packages import PackageSummary, PurchaseRead
from ptcoach.core.enums import PaytrMode


class CheckoutRequest(BaseModel):
    package_id: int
    installment_count: int | str | None = None
    source: str | None = Field(None, max_length=100)


class CheckoutResponse(BaseModel):
    token: str
    iframe_url: str
    merchant_oid: str
    package: PackageSummary


class CompleteRequest(BaseModel):
    merchant_oid: str = Field(..., min_length=1)


class CompleteResponse(BaseModel):
    purchase: PurchaseRead | None = None
    already_completed: bool = False
    message: str | None = None


class PaytrSettingsUpdate(BaseModel):
    mode: PaytrMode | str = PaytrMode.TEST
    merchant_id: str
    merchant_key: str | None = None
    merchant_salt: str | None = None
    merchant_ok_url: str | None = None
    merchant_fail_url: str | None = None
    merchant_webhook_url: str | None = None
    currency: str | None = None
    language: str | None = None
    iframe_debug: bool = False
    non_3d: bool = False
    max_installment: int | str | None = 0
    payment_methods: dict | list | None = None
    installment_config: dict | list | None = None
    extra_config: dict | list | None = None


class PaytrSettingsTestRequest(BaseModel):
    mode: PaytrMode | str | None = None
    merchant_id: str | None = None
    merchant_key: str | None = None
    merchant_salt: str | None = None
    merchant_ok_url: str | None = None
    merchant_fail_url: str | None = None
    currency: str | None = None
    iframe_debug: bool | None = None
    non_3d: bool | None = None


class PaytrSettingRead(BaseModel):
    id: int
    mode: PaytrMode
    merchant_id: str
    merchant_key: str
    merchant_salt: str
    merchant_ok_url: str | None = None
    merchant_fail_url: str | None = None
    merchant_webhook_url: str | None = None
    currency: str
    language: str
    iframe_debug: bool
    non_3d: bool
    max_installment: int
    payment_methods: Any = None
    installment_config: Any = None
    extra_config: Any = None
    last_synced_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by_email: str | None = None


class PaytrLogRead(BaseModel):
    id: int
    action: str
    status: str
    message: str | None = None
    user_id: int | None = None
    user_email: str | None = None
    ip_address: str | None = None
    payload: Any = None
    error: Any = None
    setting_id: int | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaytrSettingsResponse(BaseModel):
    setting: PaytrSettingRead | None = None
    logs: List[PaytrLogRead] = []


class PaytrSettingsUpdateResponse(BaseModel):
    success: bool = True
    setting: PaytrSettingRead


class PaytrTestResponse(BaseModel):
    success: bool
    token: str | None = None
    raw: Any = None
