"""
Matching API router - proposes, confirms and rejects invoice/transaction matches.
"""
import logging
from typing import Dict, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from travel_ledger.database import get_db
from travel_ledger.models.enums import MatchStatus
from travel_ledger.schemas.matching import (
    AutoProposeRequest,
    AutoProposeResponse,
    MatchActionRequest,
    MatchProposeRequest,
    MatchResponse,
    MatchSuggestion
)
from travel_ledger.services.match_engine import MatchEngine
from travel_ledger.services.period_resolver import resolve_month_key
from travel_ledger.services.reconciliation_store import ReconciliationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("", response_model=List[MatchResponse])
def list_matches(
    status: Optional[MatchStatus] = Query(None, description="pending, confirmed or rejected"),
    transaction_id: Optional[int] = None,
    invoice_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """List matches with optional filters"""
    return ReconciliationStore(db).list_matches(transaction_id, invoice_id, status)


@router.post("", response_model=MatchResponse, status_code=201)
def propose_match(data: MatchProposeRequest, db: Session = Depends(get_db)):
    """Create a pending match between an invoice and a transaction"""
    return MatchEngine(db).propose(data.invoice_id, data.transaction_id, timeout=data.timeout_seconds)


@router.get("/suggestions", response_model=Dict[int, List[MatchSuggestion]])
def suggest_for_month(month: str = Query(..., description="YYYY-MM"), db: Session = Depends(get_db)):
    """Suggestions for every pending transaction of a month, keyed by transaction ID"""
    return MatchEngine(db).suggest_for_period(resolve_month_key(month))


@router.post("/auto-propose", response_model=AutoProposeResponse)
def auto_propose(data: AutoProposeRequest, db: Session = Depends(get_db)):
    """
    Propose the best candidate for each pending transaction in a month.
    Proposals stay pending until a user confirms them.
    """
    window = resolve_month_key(data.month)
    return MatchEngine(db).auto_propose(window, min_confidence=data.min_confidence, dry_run=data.dry_run)


@router.get("/{match_id}", response_model=MatchResponse)
def get_match(match_id: UUID, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_match(match_id)


@router.post("/{match_id}/confirm", response_model=MatchResponse)
def confirm_match(match_id: UUID, data: Optional[MatchActionRequest] = None, db: Session = Depends(get_db)):
    """Confirm a pending match; the transaction becomes matched"""
    timeout = data.timeout_seconds if data else None
    return MatchEngine(db).confirm(match_id, timeout=timeout)


@router.post("/{match_id}/reject", response_model=MatchResponse)
def reject_match(match_id: UUID, data: Optional[MatchActionRequest] = None, db: Session = Depends(get_db)):
    """Reject a pending match; the transaction is left untouched"""
    timeout = data.timeout_seconds if data else None
    return MatchEngine(db).reject(match_id, timeout=timeout)
