# backend/ptcoach/api/schemas/admin.py
from datetime import datetime
from typing import Any, List
from pydantic import BaseModel, Field, ConfigDict

from ptcoach.core.enums import LogLevel


class AdminLogRead(BaseModel):
    id: int
    level: LogLevel
    message: str
    source: str | None = None
    actor_id: int | None = None
    actor_email: str | None = None
    context: Any = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AdminLogPage(BaseModel):
    items: List[AdminLogRead]
    next_cursor: int | None = None
    has_more: bool = False


class ManualPaymentAccountBase(BaseModel):
    bank_name: str = Field(..., min_length=1, max_length=200)
    account_name: str = Field(..., min_length=1, max_length=200)
    iban: str = Field(..., min_length=1, max_length=64)
    account_number: str | None = Field(None, max_length=64)
    branch_name: str | None = Field(None, max_length=200)
    description: str | None = None
    is_active: bool = True
    sort_order: int = 0


class ManualPaymentAccountCreate(ManualPaymentAccountBase):
    pass


class ManualPaymentAccountUpdate(BaseModel):
    bank_name: str | None = Field(None, min_length=1, max_length=200)
    account_name: str | None = Field(None, min_length=1, max_length=200)
    iban: str | None = Field(None, min_length=1, max_length=64)
    account_number: str | None = Field(None, max_length=64)
    branch_name: str | None = Field(None, max_length=200)
    description: str | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class ManualPaymentAccountRead(ManualPaymentAccountBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


class ManualPaymentAccountList(BaseModel):
    accounts: List[ManualPaymentAccountRead]
