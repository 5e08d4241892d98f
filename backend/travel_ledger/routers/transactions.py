from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from travel_ledger.database import get_db
from travel_ledger.models.enums import TransactionStatus
from travel_ledger.schemas.matching import MatchResponse, MatchSuggestion
from travel_ledger.schemas.transaction import TransactionCreate, TransactionUpdate, TransactionResponse
from travel_ledger.services.match_engine import MatchEngine
from travel_ledger.services.period_resolver import resolve_month_key
from travel_ledger.services.reconciliation_store import ReconciliationStore

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=List[TransactionResponse])
def list_transactions(
    status: Optional[TransactionStatus] = Query(None, description="pending, matched or ignored"),
    month: Optional[str] = Query(None, description="YYYY-MM; transaction_date within that month"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List bank transactions with optional filters"""
    start = end = None
    if month:
        window = resolve_month_key(month)
        start, end = window.start_date, window.end_date
    transactions = ReconciliationStore(db).list_transactions(status, start, end)
    return transactions[skip:skip + limit]


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(data: TransactionCreate, db: Session = Depends(get_db)):
    return ReconciliationStore(db).create_transaction(data)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_transaction(transaction_id)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(transaction_id: int, data: TransactionUpdate, db: Session = Depends(get_db)):
    """Update description, package link, needs_invoice or pending/ignored status"""
    return ReconciliationStore(db).update_transaction(transaction_id, data)


@router.post("/{transaction_id}/ignore", response_model=TransactionResponse)
def ignore_transaction(transaction_id: int, db: Session = Depends(get_db)):
    """Mark a transaction as not needing an invoice (bank fees, transfers)"""
    return ReconciliationStore(db).ignore_transaction(transaction_id)


@router.get("/{transaction_id}/matches", response_model=List[MatchResponse])
def list_transaction_matches(transaction_id: int, db: Session = Depends(get_db)):
    store = ReconciliationStore(db)
    transaction = store.get_transaction(transaction_id)
    return store.list_matches(transaction_id=transaction.id)


@router.get("/{transaction_id}/suggestions", response_model=List[MatchSuggestion])
def suggest_invoices(
    transaction_id: int,
    limit: Optional[int] = Query(None, ge=1, le=50),
    min_confidence: Optional[float] = Query(None, ge=0, le=1),
    db: Session = Depends(get_db)
):
    """Ranked candidate invoices for a transaction; advisory only"""
    return MatchEngine(db).suggest_for_transaction(transaction_id, limit=limit, min_confidence=min_confidence)
