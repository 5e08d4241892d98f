from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal


class LedgerSummary(BaseModel):
    """Read-only aggregate of one package's invoices, optionally scoped to a window"""
    package_id: int
    client_name: str
    month_key: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    invoice_count: int
    expense_count: int
    income_count: int
    pending_extraction_count: int  # Invoices whose amount is still null
    cancelled_count: int
    expense_total: Decimal
    income_total: Decimal
    profit: Decimal
    realized_margin: Optional[float] = None  # (income - expense) / income; None when income is 0
    target_margin_percent: Decimal
    below_target: bool
    outstanding_expense: Decimal  # Pending + overdue expense amounts
    outstanding_income: Decimal  # Pending + overdue income amounts
    totals_by_category: Dict[str, Decimal] = {}
    currencies: List[str] = []

    class Config:
        frozen = True


class PeriodLedgerSummary(BaseModel):
    month_key: str
    start_date: date
    end_date: date
    package_count: int
    invoice_count: int
    expense_total: Decimal
    income_total: Decimal
    packages: List[LedgerSummary]

    class Config:
        frozen = True


class ReceivableItem(BaseModel):
    invoice_id: int
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    package_id: Optional[int] = None
    package_name: Optional[str] = None
    amount: Decimal
    currency: str
    reference_date: date  # due_date when present, else invoice_date
    days_past_due: int


class ReceivablesReport(BaseModel):
    as_of: date
    days_threshold: int
    total: int
    overdue_30: int
    overdue_60: int
    overdue_90_plus: int
    total_amount: Decimal
    items: List[ReceivableItem]
