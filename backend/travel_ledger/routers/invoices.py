from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from travel_ledger.database import get_db
from travel_ledger.models.enums import InvoiceType, PaymentStatus
from travel_ledger.schemas.invoice import (
    ExtractedData,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    PaymentStatusUpdate
)
from travel_ledger.schemas.matching import MatchResponse
from travel_ledger.services.period_resolver import resolve_month_key
from travel_ledger.services.reconciliation_store import ReconciliationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("", response_model=List[InvoiceResponse])
def list_invoices(
    package_id: Optional[int] = Query(None, description="Filter by package ID"),
    type: Optional[InvoiceType] = Query(None, description="expense or income"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    month: Optional[str] = Query(None, description="YYYY-MM; invoice_date within that month"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List invoices with optional filters"""
    start = end = None
    if month:
        window = resolve_month_key(month)
        start, end = window.start_date, window.end_date
    invoices = ReconciliationStore(db).list_invoices(package_id, type, payment_status, start, end)
    return invoices[skip:skip + limit]


@router.post("", response_model=InvoiceResponse, status_code=201)
def create_invoice(data: InvoiceCreate, db: Session = Depends(get_db)):
    """Create an invoice; an attached extraction record fills empty fields"""
    return ReconciliationStore(db).create_invoice(data)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_invoice(invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(invoice_id: int, data: InvoiceUpdate, db: Session = Depends(get_db)):
    return ReconciliationStore(db).update_invoice(invoice_id, data)


@router.put("/{invoice_id}/payment-status", response_model=InvoiceResponse)
def update_payment_status(invoice_id: int, data: PaymentStatusUpdate, db: Session = Depends(get_db)):
    """Set paid / pending / overdue / cancelled"""
    return ReconciliationStore(db).set_payment_status(invoice_id, data.payment_status)


@router.post("/{invoice_id}/extracted-data", response_model=InvoiceResponse)
def attach_extracted_data(invoice_id: int, data: ExtractedData, db: Session = Depends(get_db)):
    """
    Attach the finished record produced by the extraction service.
    Only fields that are still empty on the invoice are filled in.
    """
    return ReconciliationStore(db).attach_extracted_data(invoice_id, data)


@router.get("/{invoice_id}/matches", response_model=List[MatchResponse])
def list_invoice_matches(invoice_id: int, db: Session = Depends(get_db)):
    store = ReconciliationStore(db)
    invoice = store.get_invoice(invoice_id)
    return store.list_matches(invoice_id=invoice.id)
