from sqlalchemy import Column, Integer, String, DateTime, Uuid, event
from travel_ledger.database import Base
from travel_ledger.errors import InvalidStateError
from travel_ledger.models.timestamps import utcnow
import uuid


class ExportLog(Base):
    """Write-once record that a month's data was sent out"""
    __tablename__ = "export_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    month_year = Column(String(7), nullable=False, index=True)  # YYYY-MM
    sent_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    packages_included = Column(Integer, nullable=False, default=0)
    invoices_included = Column(Integer, nullable=False, default=0)


@event.listens_for(ExportLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise InvalidStateError(f"Export log {target.id} is write-once and cannot be modified")
