# backend/ptcoach/api/schemas/trainer.py
from typing import List
from pydantic import BaseModel, Field

from ptcoach.api.schemas.packages import PurchaseRead


class ManualAssignmentRequest(BaseModel):
    package_id: int
    start_date: str | None = None
    reference: str | None = Field(None, max_length=200)


class ClientPackagesResponse(BaseModel):
    active_package: PurchaseRead | None = None
    purchases: List[PurchaseRead]
