from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from travel_ledger.models.enums import PackageStatus


class PackageCreate(BaseModel):
    client_name: str
    customer_id: Optional[int] = None
    start_date: date
    end_date: date
    status: PackageStatus = PackageStatus.QUOTE
    target_margin_percent: Decimal = Decimal("0")


class PackageUpdate(BaseModel):
    client_name: Optional[str] = None
    customer_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[PackageStatus] = None
    target_margin_percent: Optional[Decimal] = None


class PackageResponse(BaseModel):
    id: int
    client_name: str
    customer_id: Optional[int]
    start_date: date
    end_date: date
    status: str
    target_margin_percent: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
