from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from travel_ledger.models.enums import InvoiceType, InvoiceCategory, PaymentStatus

# The extraction record names its date field "date"
DateValue = date


class ExtractedLineItem(BaseModel):
    description: str
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    total: Optional[Decimal] = None


class ExtractedData(BaseModel):
    """Finished record produced by the external extraction service"""
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[DateValue] = None
    category: Optional[InvoiceCategory] = None
    confidence: Optional[float] = None
    currency: Optional[str] = None
    vat_amount: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    line_items: List[ExtractedLineItem] = []
    raw_text: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def confidence_in_unit_interval(cls, value):
        if value is not None and not 0.0 <= value <= 1.0:
            raise ValueError("confidence must be within [0, 1]")
        return value

    @field_validator("amount", "vat_amount")
    @classmethod
    def non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("amounts must be >= 0")
        return value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value):
        return value.strip().upper() if value else value


class InvoiceCreate(BaseModel):
    type: InvoiceType
    category: InvoiceCategory = InvoiceCategory.OTHER
    package_id: Optional[int] = None
    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None  # EUR unless an extraction record says otherwise
    payment_status: PaymentStatus = PaymentStatus.PENDING
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    extracted_data: Optional[ExtractedData] = None


class InvoiceUpdate(BaseModel):
    type: Optional[InvoiceType] = None
    category: Optional[InvoiceCategory] = None
    package_id: Optional[int] = None
    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class InvoiceResponse(BaseModel):
    id: int
    package_id: Optional[int]
    supplier_id: Optional[int]
    customer_id: Optional[int]
    type: str
    category: str
    merchant: Optional[str]
    amount: Optional[Decimal]
    currency: str
    payment_status: str
    invoice_date: Optional[date]
    due_date: Optional[date]
    file_path: Optional[str]
    file_name: Optional[str]
    extracted_data: Optional[dict]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
