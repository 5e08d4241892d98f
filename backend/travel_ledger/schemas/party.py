from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PartyCreate(BaseModel):
    name: str
    vat_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierCreate(PartyCreate):
    pass


class CustomerCreate(PartyCreate):
    pass


class PartyResponse(BaseModel):
    id: int
    name: str
    vat_number: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SupplierResponse(PartyResponse):
    pass


class CustomerResponse(PartyResponse):
    pass
