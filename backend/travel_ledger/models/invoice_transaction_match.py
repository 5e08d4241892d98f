from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, JSON, Index, Uuid, text
from sqlalchemy.orm import relationship
from travel_ledger.database import Base
from travel_ledger.models.timestamps import utcnow
import uuid

CONFIRMED_ONLY = text("status = 'confirmed'")


class InvoiceTransactionMatch(Base):
    """Links one invoice to one bank transaction; rejected rows are kept as audit trail"""
    __tablename__ = "invoice_transaction_matches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("bank_transactions.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, confirmed, rejected
    confidence_score = Column(Numeric(3, 2), nullable=True)  # 0.00 to 1.00, set by the suggestion engine
    reasons = Column(JSON, nullable=True)
    matched_by = Column(String(20), nullable=True)  # 'engine' or 'user'
    matched_at = Column(DateTime(timezone=True), nullable=True)  # Set on confirm
    reviewed_at = Column(DateTime(timezone=True), nullable=True)  # Set on confirm or reject
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # At most one confirmed match per transaction and per invoice
    __table_args__ = (
        Index(
            "uq_matches_confirmed_transaction", "transaction_id", unique=True,
            sqlite_where=CONFIRMED_ONLY, postgresql_where=CONFIRMED_ONLY,
        ),
        Index(
            "uq_matches_confirmed_invoice", "invoice_id", unique=True,
            sqlite_where=CONFIRMED_ONLY, postgresql_where=CONFIRMED_ONLY,
        ),
    )

    # Relationships
    invoice = relationship("Invoice", back_populates="matches")
    transaction = relationship("BankTransaction", back_populates="matches")
