from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import datetime
from uuid import UUID


class MatchProposeRequest(BaseModel):
    invoice_id: int
    transaction_id: int
    timeout_seconds: Optional[float] = Field(None, gt=0)


class MatchActionRequest(BaseModel):
    """Optional body for confirm/reject: a caller-supplied lock timeout"""
    timeout_seconds: Optional[float] = Field(None, gt=0)


class MatchResponse(BaseModel):
    id: UUID
    invoice_id: int
    transaction_id: int
    status: str
    confidence_score: Optional[float] = None
    reasons: Optional[List[str]] = None
    matched_by: Optional[str] = None
    matched_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MatchSuggestion(BaseModel):
    """Advisory candidate pairing; never confirmed automatically"""
    invoice_id: int
    transaction_id: int
    confidence: float
    confidence_level: Literal["high", "medium", "low"]
    reasons: List[str] = []
    within_window: bool  # Date within the configured window and amount within tolerance


class AutoProposeRequest(BaseModel):
    month: str  # YYYY-MM
    min_confidence: Optional[float] = Field(None, ge=0, le=1)
    dry_run: bool = False


class AutoProposeResponse(BaseModel):
    month_key: str
    transactions_considered: int
    proposed: List[MatchSuggestion]
    skipped: int
    dry_run: bool
