# backend/ptcoach/api/schemas/packages.py
from datetime import datetime
from typing import List
from pydantic import BaseModel, Field, ConfigDict

from ptcoach.core.enums import PackageStatus
from ptcoach.services.subscription_ledger import remaining_days


class PackageRead(BaseModel):
    id: int
    slug: str
    name: str
    headline: str | None = None
    description: str | None = None
    price: int
    original_price: int | None = None
    currency: str
    duration_in_days: int
    is_popular: bool
    is_active: bool
    theme_color: str | None = None
    icon_name: str | None = None
    features: List[str] = []
    not_included: List[str] = []
    model_config = ConfigDict(from_attributes=True)


class PackageSummary(BaseModel):
    id: int
    name: str
    price: int
    currency: str
    duration_in_days: int
    model_config = ConfigDict(from_attributes=True)


class PackageListResponse(BaseModel):
    packages: List[PackageRead]


class PurchaseRead(BaseModel):
    id: int
    status: PackageStatus
    purchased_at: datetime
    starts_at: datetime
    expires_at: datetime
    cancelled_at: datetime | None = None
    payment_reference: str | None = None
    remaining_days: int
    package: PackageSummary


class PurchaseRequest(BaseModel):
    package_id: int


class PurchaseResponse(BaseModel):
    purchase: PurchaseRead


class ActivePackageResponse(BaseModel):
    active_package: PurchaseRead | None = None


class PackageCreate(BaseModel):
    name: str = Field(..., max_length=200)
    slug: str | None = Field(None, max_length=200)
    headline: str | None = None
    description: str | None = None
    price: int = Field(..., ge=0)
    original_price: int | None = Field(None, ge=0)
    currency: str | None = None
    duration_in_days: int | None = None
    is_popular: bool = False
    is_active: bool = True
    theme_color: str | None = None
    icon_name: str | None = None
    features: List[str] | str | None = None
    not_included: List[str] | str | None = None


class PackageUpdate(BaseModel):
    name: str | None = Field(None, max_length=200)
    slug: str | None = Field(None, max_length=200)
    headline: str | None = None
    description: str | None = None
    price: int | None = Field(None, ge=0)
    original_price: int | None = Field(None, ge=0)
    currency: str | None = None
    duration_in_days: int | None = None
    is_popular: bool | None = None
    is_active: bool | None = None
    theme_color: str | None = None
    icon_name: str | None = None
    features: List[str] | str | None = None
    not_included: List[str] | str | None = None


class PackageDeleteResponse(BaseModel):
    success: bool = True
    deleted: bool
    message: str


def purchase_to_read(purchase, now: datetime | None = None) -> PurchaseRead:
    return PurchaseRead(
        id=purchase.id,
        status=purchase.status,
        purchased_at=purchase.purchased_at,
        starts_at=purchase.starts_at,
        expires_at=purchase.expires_at,
        cancelled_at=purchase.cancelled_at,
        payment_reference=purchase.payment_reference,
        remaining_days=remaining_days(purchase.expires_at, now),
        package=PackageSummary.model_validate(purchase.package),
    )
