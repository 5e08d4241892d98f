from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from travel_ledger.database import get_db
from travel_ledger.models.enums import PackageStatus
from travel_ledger.schemas.package import PackageCreate, PackageUpdate, PackageResponse
from travel_ledger.schemas.invoice import InvoiceResponse
from travel_ledger.schemas.ledger import LedgerSummary
from travel_ledger.services.package_ledger import PackageLedger
from travel_ledger.services.period_resolver import resolve_month_key
from travel_ledger.services.reconciliation_store import ReconciliationStore

router = APIRouter(prefix="/api/packages", tags=["packages"])


@router.get("", response_model=List[PackageResponse])
def list_packages(status: Optional[PackageStatus] = None, db: Session = Depends(get_db)):
    """List packages, optionally filtered by status"""
    return ReconciliationStore(db).list_packages(status)


@router.post("", response_model=PackageResponse, status_code=201)
def create_package(data: PackageCreate, db: Session = Depends(get_db)):
    return ReconciliationStore(db).create_package(data)


@router.get("/{package_id}", response_model=PackageResponse)
def get_package(package_id: int, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_package(package_id)


@router.patch("/{package_id}", response_model=PackageResponse)
def update_package(package_id: int, data: PackageUpdate, db: Session = Depends(get_db)):
    """Partial update; status may only move forward (quote -> active -> completed)"""
    return ReconciliationStore(db).update_package(package_id, data)


@router.get("/{package_id}/invoices", response_model=List[InvoiceResponse])
def list_package_invoices(package_id: int, month: Optional[str] = None, db: Session = Depends(get_db)):
    store = ReconciliationStore(db)
    package = store.get_package(package_id)
    if month:
        window = resolve_month_key(month)
        return store.invoices_for_package(package.id, window.start_date, window.end_date)
    return store.invoices_for_package(package.id)


@router.get("/{package_id}/ledger", response_model=LedgerSummary)
def get_package_ledger(
    package_id: int,
    month: Optional[str] = None,
    locale: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Financial summary of a package.
    With ``month`` (YYYY-MM) only invoices dated in that month are counted.
    """
    window = resolve_month_key(month, locale=locale) if month else None
    return PackageLedger(db).summarize(package_id, window)
