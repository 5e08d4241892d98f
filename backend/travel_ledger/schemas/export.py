from pydantic import BaseModel
from datetime import datetime
from uuid import UUID


class ExportRequest(BaseModel):
    month: str  # YYYY-MM


class ExportLogResponse(BaseModel):
    id: UUID
    month_year: str
    sent_at: datetime
    packages_included: int
    invoices_included: int

    class Config:
        from_attributes = True
