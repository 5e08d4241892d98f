from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from travel_ledger.models.enums import TransactionStatus


class TransactionCreate(BaseModel):
    transaction_date: date
    description: str = ""
    amount: Decimal
    package_id: Optional[int] = None
    needs_invoice: bool = True


class TransactionUpdate(BaseModel):
    description: Optional[str] = None
    package_id: Optional[int] = None
    needs_invoice: Optional[bool] = None
    status: Optional[TransactionStatus] = None


class TransactionResponse(BaseModel):
    id: int
    transaction_date: date
    description: str
    amount: Decimal
    package_id: Optional[int]
    needs_invoice: bool
    status: str
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
