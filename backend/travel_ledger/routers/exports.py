from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from travel_ledger.database import get_db
from travel_ledger.schemas.export import ExportRequest, ExportLogResponse
from travel_ledger.services.export_recorder import ExportRecorder
from travel_ledger.services.period_resolver import resolve_month_key

router = APIRouter(prefix="/api/exports", tags=["exports"])


@router.post("", response_model=ExportLogResponse, status_code=201)
def record_export(data: ExportRequest, db: Session = Depends(get_db)):
    """Log that a month was sent out; every call appends a new entry"""
    return ExportRecorder(db).record(resolve_month_key(data.month))


@router.get("", response_model=List[ExportLogResponse])
def list_exports(month: Optional[str] = Query(None, description="YYYY-MM"), db: Session = Depends(get_db)):
    """Export history, newest first"""
    return ExportRecorder(db).list_exports(month)
