from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from travel_ledger.database import get_db
from travel_ledger.schemas.ledger import PeriodLedgerSummary, ReceivablesReport
from travel_ledger.services.package_ledger import PackageLedger
from travel_ledger.services.period_resolver import resolve_month_key

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


@router.get("/receivables", response_model=ReceivablesReport)
def overdue_receivables(
    as_of: Optional[date] = None,
    days: Optional[int] = Query(None, ge=0, description="Minimum days past due"),
    db: Session = Depends(get_db)
):
    """Unpaid income invoices, bucketed 30 / 60 / 90+ days past due"""
    return PackageLedger(db).overdue_receivables(as_of=as_of, days_threshold=days)


@router.get("/{month_key}", response_model=PeriodLedgerSummary)
def summarize_month(month_key: str, locale: Optional[str] = None, db: Session = Depends(get_db)):
    """Ledger summary of every package touched by a month"""
    return PackageLedger(db).summarize_period(resolve_month_key(month_key, locale=locale))
